"""Pydantic models for dashboards, widgets, layouts and API payloads"""
from enum import Enum
from typing import List, Dict, Any, Optional, Union, Literal, Annotated
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WidgetType(str, Enum):
    """Supported widget visualizations"""
    METRIC_CARD = "metric-card"
    LINE_CHART = "line-chart"
    BAR_CHART = "bar-chart"
    PIE_CHART = "pie-chart"
    AREA_CHART = "area-chart"
    FUNNEL_CHART = "funnel-chart"
    GAUGE_CHART = "gauge-chart"
    HEATMAP = "heatmap"
    RADAR_CHART = "radar-chart"
    SANKEY_CHART = "sankey-chart"
    SCATTER_CHART = "scatter-chart"
    TABLE = "table"


class DataSourceCategory(str, Enum):
    """Metric sources a widget can bind to"""
    TRAFFIC = "traffic"
    SEO = "seo"
    CONVERSIONS = "conversions"
    REVENUE = "revenue"
    SUBSCRIPTIONS = "subscriptions"
    PAYMENTS = "payments"
    UNIT_ECONOMICS = "unitEconomics"
    DEMOGRAPHICS = "demographics"
    SEGMENTATION = "segmentation"
    CAMPAIGNS = "campaigns"
    PREDICTIONS = "predictions"


class WidgetSize(str, Enum):
    """Size presets for quick sizing"""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    WIDE = "wide"
    TALL = "tall"
    FULL = "full"


class WidgetCategory(str, Enum):
    """Groupings used by the widget picker"""
    METRICS = "metrics"
    CHARTS = "charts"
    TABLES = "tables"
    ADVANCED = "advanced"


class DashboardVisibility(str, Enum):
    """Sharing scope (stored flag only)"""
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class TimeRange(str, Enum):
    """Time ranges a dashboard can default to"""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_12_MONTHS = "12m"
    YEAR_TO_DATE = "ytd"


class CompactType(str, Enum):
    """How the layout engine closes gaps"""
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# Widget configuration

class GridPosition(CamelModel):
    """Grid coordinates in grid units"""
    x: int = Field(0, ge=0)
    y: int = Field(0, ge=0)
    w: int = Field(1, ge=1)
    h: int = Field(1, ge=1)
    min_w: Optional[int] = Field(None, ge=1)
    min_h: Optional[int] = Field(None, ge=1)
    max_w: Optional[int] = Field(None, ge=1)
    max_h: Optional[int] = Field(None, ge=1)

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def overlaps(self, other: "GridPosition") -> bool:
        return not (
            self.right <= other.x
            or other.right <= self.x
            or self.bottom <= other.y
            or other.bottom <= self.y
        )


class WidgetDataBinding(CamelModel):
    """Which external metric a widget displays"""
    source: DataSourceCategory
    field: str = Field(..., min_length=1)
    transform: Optional[Literal["sum", "average", "count", "min", "max", "latest"]] = None
    filters: Optional[Dict[str, Union[str, int, float, bool]]] = None

    @field_validator("field")
    @classmethod
    def field_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Data field is required")
        return value


class ChartOptions(CamelModel):
    """Sparse chart toggles; a missing key means 'use the default'"""
    show_legend: Optional[bool] = None
    legend_position: Optional[Literal["top", "bottom", "left", "right"]] = None
    show_grid: Optional[bool] = None
    show_data_labels: Optional[bool] = None
    animate: Optional[bool] = None
    smooth: Optional[bool] = None
    stacked: Optional[bool] = None
    inner_radius: Optional[float] = Field(None, ge=0, le=1)
    orientation: Optional[Literal["horizontal", "vertical"]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class MetricCardOptions(CamelModel):
    """Metric card display options"""
    format: Optional[Literal["number", "currency", "percent"]] = None
    show_comparison: Optional[bool] = None
    show_trend: Optional[bool] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class TableColumn(CamelModel):
    """Column definition for table widgets"""
    key: str
    label: str
    format: Optional[Literal["number", "currency", "percent", "text", "date"]] = None
    sortable: Optional[bool] = None
    width: Optional[Union[int, str]] = None


class TableOptions(CamelModel):
    """Table widget options"""
    columns: Optional[List[TableColumn]] = None
    paginate: Optional[bool] = None
    page_size: Optional[int] = Field(None, ge=1)
    sortable: Optional[bool] = None
    selectable: Optional[bool] = None


class WidgetStyle(CamelModel):
    """Visual styling overrides"""
    color: Optional[str] = None
    background_color: Optional[str] = None
    border_radius: Optional[str] = None
    show_border: Optional[bool] = None
    class_name: Optional[str] = None


class WidgetConfig(CamelModel):
    """
    Complete widget configuration.

    ``type`` is kept as a raw string so that dashboards stored with a type this
    build does not know still load; such widgets render as placeholders.
    """
    type: str
    data_binding: WidgetDataBinding
    chart_options: ChartOptions = Field(default_factory=ChartOptions)
    metric_options: Optional[MetricCardOptions] = None
    table_options: Optional[TableOptions] = None
    style: Optional[WidgetStyle] = None
    refresh_interval: int = Field(0, ge=0)

    @property
    def widget_type(self) -> Optional[WidgetType]:
        """Known widget type, or None for unrecognized tags"""
        try:
            return WidgetType(self.type)
        except ValueError:
            return None


class Widget(CamelModel):
    """A widget instance placed on a dashboard"""
    id: str = Field(..., min_length=1)
    title: str
    description: Optional[str] = None
    config: WidgetConfig
    # Keyed by breakpoint name; missing breakpoints are scaled by the layout engine
    position: Dict[str, GridPosition]
    visible: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("position")
    @classmethod
    def position_not_empty(cls, value: Dict[str, GridPosition]) -> Dict[str, GridPosition]:
        if not value:
            raise ValueError("Widget must have a position for at least one breakpoint")
        return value


# Layout

def _default_breakpoints() -> Dict[str, int]:
    return {"lg": 1200, "md": 996, "sm": 768, "xs": 480}


def _default_columns_per_breakpoint() -> Dict[str, int]:
    return {"lg": 12, "md": 10, "sm": 6, "xs": 4}


class DashboardLayout(CamelModel):
    """Responsive grid configuration"""
    columns: int = Field(12, ge=1)
    row_height: int = Field(80, ge=1)
    gap: int = Field(16, ge=0)
    padding: int = Field(16, ge=0)
    breakpoints: Dict[str, int] = Field(default_factory=_default_breakpoints)
    columns_per_breakpoint: Dict[str, int] = Field(default_factory=_default_columns_per_breakpoint)
    allow_overlap: bool = False
    compact_type: Optional[CompactType] = CompactType.VERTICAL

    @model_validator(mode="after")
    def breakpoints_have_columns(self) -> "DashboardLayout":
        if not self.breakpoints:
            raise ValueError("Layout must define at least one breakpoint")
        missing = [bp for bp in self.breakpoints if bp not in self.columns_per_breakpoint]
        if missing:
            raise ValueError(f"columnsPerBreakpoint is missing breakpoints: {', '.join(missing)}")
        invalid = [bp for bp, cols in self.columns_per_breakpoint.items() if cols < 1]
        if invalid:
            raise ValueError(f"Column count must be positive for: {', '.join(invalid)}")
        return self

    def ordered_breakpoints(self) -> List[str]:
        """Breakpoint names from widest to narrowest"""
        return sorted(self.breakpoints, key=lambda bp: self.breakpoints[bp], reverse=True)

    @property
    def base_breakpoint(self) -> str:
        return self.ordered_breakpoints()[0]

    def columns_for(self, breakpoint: str) -> int:
        return self.columns_per_breakpoint[breakpoint]


def default_layout() -> DashboardLayout:
    """Default 12-column layout with lg/md/sm/xs breakpoints"""
    return DashboardLayout()


# Dashboards

def _check_unique_widget_ids(widgets: List[Widget]) -> List[Widget]:
    seen = set()
    duplicates = []
    for widget in widgets:
        if widget.id in seen:
            duplicates.append(widget.id)
        seen.add(widget.id)
    if duplicates:
        raise ValueError(f"Duplicate widget ids: {', '.join(sorted(set(duplicates)))}")
    return widgets


class DashboardMeta(CamelModel):
    """Dashboard metadata for listings"""
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    visibility: DashboardVisibility = DashboardVisibility.PRIVATE
    is_template: bool = False
    thumbnail_url: Optional[str] = None
    created_at: str
    updated_at: str
    widget_count: int = 0


class SavedDashboard(DashboardMeta):
    """Complete persisted dashboard"""
    widgets: List[Widget] = Field(default_factory=list)
    layout: DashboardLayout = Field(default_factory=default_layout)
    default_time_range: Optional[TimeRange] = None
    tags: List[str] = Field(default_factory=list)
    version: int = Field(1, ge=1)

    @field_validator("widgets")
    @classmethod
    def unique_widget_ids(cls, value: List[Widget]) -> List[Widget]:
        return _check_unique_widget_ids(value)

    @model_validator(mode="after")
    def derive_widget_count(self) -> "SavedDashboard":
        self.widget_count = len(self.widgets)
        return self

    def to_meta(self) -> DashboardMeta:
        return DashboardMeta(**self.model_dump(include=set(DashboardMeta.model_fields)))


class DashboardInput(CamelModel):
    """Editable dashboard fields, replaced wholesale on every save"""
    name: str = Field(..., max_length=100)
    description: Optional[str] = None
    visibility: DashboardVisibility = DashboardVisibility.PRIVATE
    is_template: bool = False
    thumbnail_url: Optional[str] = None
    widgets: List[Widget] = Field(default_factory=list)
    layout: DashboardLayout = Field(default_factory=default_layout)
    default_time_range: TimeRange = TimeRange.LAST_30_DAYS
    tags: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Dashboard name is required")
        return value

    @field_validator("description")
    @classmethod
    def strip_description(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None

    @field_validator("widgets")
    @classmethod
    def unique_widget_ids(cls, value: List[Widget]) -> List[Widget]:
        return _check_unique_widget_ids(value)


# Editor drafts

class DashboardDraft(CamelModel):
    """
    In-progress editor state.

    Looser than DashboardInput: the name may be blank while editing and is
    only checked when the draft is saved.
    """
    name: str = "Untitled Dashboard"
    description: Optional[str] = None
    visibility: DashboardVisibility = DashboardVisibility.PRIVATE
    is_template: bool = False
    thumbnail_url: Optional[str] = None
    widgets: List[Widget] = Field(default_factory=list)
    layout: DashboardLayout = Field(default_factory=default_layout)
    default_time_range: TimeRange = TimeRange.LAST_30_DAYS
    tags: List[str] = Field(default_factory=list)


# Editor actions

class AddWidget(CamelModel):
    """Add a widget; without a position it goes below all others"""
    action: Literal["add_widget"] = "add_widget"
    type: str
    title: str
    data_binding: WidgetDataBinding
    position: Optional[GridPosition] = None


class RemoveWidget(CamelModel):
    action: Literal["remove_widget"] = "remove_widget"
    widget_id: str


class MoveWidget(CamelModel):
    action: Literal["move_widget"] = "move_widget"
    widget_id: str
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    breakpoint: Optional[str] = None


class ResizeWidget(CamelModel):
    action: Literal["resize_widget"] = "resize_widget"
    widget_id: str
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)
    breakpoint: Optional[str] = None


class ReconfigureWidget(CamelModel):
    action: Literal["reconfigure_widget"] = "reconfigure_widget"
    widget_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    config: Optional[WidgetConfig] = None
    visible: Optional[bool] = None


class DuplicateWidget(CamelModel):
    action: Literal["duplicate_widget"] = "duplicate_widget"
    widget_id: str


class UpdateMetadata(CamelModel):
    action: Literal["update_metadata"] = "update_metadata"
    name: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[DashboardVisibility] = None
    is_template: Optional[bool] = None
    default_time_range: Optional[TimeRange] = None
    tags: Optional[List[str]] = None
    layout: Optional[DashboardLayout] = None


class LoadTemplate(CamelModel):
    action: Literal["load_template"] = "load_template"
    template_key: str


class ClearWidgets(CamelModel):
    action: Literal["clear_widgets"] = "clear_widgets"


EditorAction = Annotated[
    Union[
        AddWidget,
        RemoveWidget,
        MoveWidget,
        ResizeWidget,
        ReconfigureWidget,
        DuplicateWidget,
        UpdateMetadata,
        LoadTemplate,
        ClearWidgets,
    ],
    Field(discriminator="action"),
]


# Rendering

class RenderedWidget(CamelModel):
    """Output of a widget renderer, ready for a chart component"""
    widget_id: str
    title: str
    type: str
    breakpoint: str
    position: GridPosition
    options: Dict[str, Any] = Field(default_factory=dict)
    data: Any = None
    placeholder: bool = False
    error: Optional[str] = None


class DashboardView(CamelModel):
    """A dashboard resolved for one viewport width"""
    dashboard_id: str
    name: str
    breakpoint: str
    columns: int
    row_height: int
    gap: int
    padding: int
    time_range: TimeRange
    widgets: List[RenderedWidget]


# API request/response models

class DashboardListResponse(CamelModel):
    """Paginated dashboard listing"""
    data: List[DashboardMeta]
    total: int
    page: int
    page_size: int
    timestamp: str


class DeploymentResponse(CamelModel):
    """Deployment registry state after a deploy/undeploy"""
    dashboard_id: str
    deployed: bool
    deployed_ids: List[str]


class CreateSessionRequest(CamelModel):
    """Open an editor session"""
    mode: Literal["create", "edit"]
    dashboard_id: Optional[str] = None


class SaveSessionRequest(CamelModel):
    """Save the draft; save_as always creates a new dashboard"""
    name: Optional[str] = None
    save_as: bool = False


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    timestamp: str
    dependencies: Dict[str, str]


class SessionSnapshot(CamelModel):
    """Externally visible state of an editor session"""
    session_id: str
    mode: Literal["create", "edit"]
    state: str
    dashboard_id: Optional[str] = None
    loaded_version: Optional[int] = None
    draft: Optional[DashboardDraft] = None
    has_unsaved_changes: bool = False
    last_error: Optional[str] = None
    error_reason: Optional[str] = None
    saved_dashboard: Optional[SavedDashboard] = None
