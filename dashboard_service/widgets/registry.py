"""
Widget registry

Catalogue of every widget type with its metadata, default dimensions and
default options, plus the data-source presets and dashboard templates used
by the editor.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from pydantic import ValidationError

from ..errors import DashboardValidationError
from ..models import (
    ChartOptions,
    DataSourceCategory,
    GridPosition,
    MetricCardOptions,
    TableOptions,
    Widget,
    WidgetCategory,
    WidgetConfig,
    WidgetDataBinding,
    WidgetSize,
    WidgetType,
)

logger = logging.getLogger(__name__)

ALL_SOURCES = list(DataSourceCategory)


@dataclass(frozen=True)
class WidgetTypeInfo:
    """Registry entry for one widget type"""
    type: WidgetType
    name: str
    description: str
    icon: str
    category: WidgetCategory
    compatible_sources: List[DataSourceCategory]
    default_size: WidgetSize
    # w, h, min_w, min_h
    default_dimensions: Dict[str, int]
    chart_options: Dict[str, Any] = field(default_factory=dict)
    metric_options: Optional[Dict[str, Any]] = None
    table_options: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "category": self.category.value,
            "compatibleSources": [source.value for source in self.compatible_sources],
            "defaultSize": self.default_size.value,
            "defaultDimensions": {
                "w": self.default_dimensions["w"],
                "h": self.default_dimensions["h"],
                "minW": self.default_dimensions["min_w"],
                "minH": self.default_dimensions["min_h"],
            },
        }


S = DataSourceCategory

WIDGET_REGISTRY: Dict[WidgetType, WidgetTypeInfo] = {
    WidgetType.METRIC_CARD: WidgetTypeInfo(
        type=WidgetType.METRIC_CARD,
        name="Metric Card",
        description="Display a single key metric with comparison",
        icon="hash",
        category=WidgetCategory.METRICS,
        compatible_sources=[
            S.TRAFFIC, S.SEO, S.CONVERSIONS, S.REVENUE, S.SUBSCRIPTIONS,
            S.PAYMENTS, S.UNIT_ECONOMICS, S.DEMOGRAPHICS, S.CAMPAIGNS, S.PREDICTIONS,
        ],
        default_size=WidgetSize.SMALL,
        default_dimensions={"w": 3, "h": 2, "min_w": 2, "min_h": 2},
        metric_options={"format": "number", "show_comparison": True, "show_trend": True},
    ),
    WidgetType.LINE_CHART: WidgetTypeInfo(
        type=WidgetType.LINE_CHART,
        name="Line Chart",
        description="Show trends over time",
        icon="trending-up",
        category=WidgetCategory.CHARTS,
        compatible_sources=[
            S.TRAFFIC, S.REVENUE, S.SUBSCRIPTIONS, S.CONVERSIONS, S.CAMPAIGNS, S.PREDICTIONS,
        ],
        default_size=WidgetSize.MEDIUM,
        default_dimensions={"w": 6, "h": 3, "min_w": 4, "min_h": 3},
        chart_options={
            "show_legend": True,
            "legend_position": "bottom",
            "show_grid": True,
            "animate": True,
            "smooth": True,
        },
    ),
    WidgetType.AREA_CHART: WidgetTypeInfo(
        type=WidgetType.AREA_CHART,
        name="Area Chart",
        description="Visualize cumulative trends",
        icon="layers",
        category=WidgetCategory.CHARTS,
        compatible_sources=[S.TRAFFIC, S.REVENUE, S.SUBSCRIPTIONS, S.CONVERSIONS, S.PREDICTIONS],
        default_size=WidgetSize.MEDIUM,
        default_dimensions={"w": 6, "h": 3, "min_w": 4, "min_h": 3},
        chart_options={
            "show_legend": True,
            "legend_position": "bottom",
            "show_grid": True,
            "animate": True,
            "smooth": True,
            "stacked": False,
        },
    ),
    WidgetType.BAR_CHART: WidgetTypeInfo(
        type=WidgetType.BAR_CHART,
        name="Bar Chart",
        description="Compare values across categories",
        icon="bar-chart-2",
        category=WidgetCategory.CHARTS,
        compatible_sources=[
            S.TRAFFIC, S.SEO, S.CONVERSIONS, S.REVENUE, S.DEMOGRAPHICS, S.SEGMENTATION, S.CAMPAIGNS,
        ],
        default_size=WidgetSize.MEDIUM,
        default_dimensions={"w": 6, "h": 4, "min_w": 4, "min_h": 3},
        chart_options={
            "show_legend": False,
            "show_grid": True,
            "animate": True,
            "orientation": "vertical",
            "stacked": False,
        },
    ),
    WidgetType.PIE_CHART: WidgetTypeInfo(
        type=WidgetType.PIE_CHART,
        name="Pie Chart",
        description="Show distribution and proportions",
        icon="pie-chart",
        category=WidgetCategory.CHARTS,
        compatible_sources=[S.TRAFFIC, S.DEMOGRAPHICS, S.SEGMENTATION, S.PAYMENTS, S.CAMPAIGNS],
        default_size=WidgetSize.MEDIUM,
        default_dimensions={"w": 4, "h": 4, "min_w": 3, "min_h": 3},
        chart_options={
            "show_legend": True,
            "legend_position": "right",
            "animate": True,
            "show_data_labels": True,
            "inner_radius": 0,
        },
    ),
    WidgetType.FUNNEL_CHART: WidgetTypeInfo(
        type=WidgetType.FUNNEL_CHART,
        name="Funnel Chart",
        description="Visualize conversion stages",
        icon="filter",
        category=WidgetCategory.ADVANCED,
        compatible_sources=[S.CONVERSIONS, S.CAMPAIGNS],
        default_size=WidgetSize.TALL,
        default_dimensions={"w": 4, "h": 5, "min_w": 3, "min_h": 4},
        chart_options={"show_legend": False, "animate": True, "show_data_labels": True},
    ),
    WidgetType.GAUGE_CHART: WidgetTypeInfo(
        type=WidgetType.GAUGE_CHART,
        name="Gauge",
        description="Show progress toward a goal",
        icon="gauge",
        category=WidgetCategory.METRICS,
        compatible_sources=[S.CONVERSIONS, S.REVENUE, S.SUBSCRIPTIONS, S.UNIT_ECONOMICS, S.CAMPAIGNS],
        default_size=WidgetSize.SMALL,
        default_dimensions={"w": 3, "h": 3, "min_w": 2, "min_h": 2},
        chart_options={"animate": True, "show_data_labels": True},
    ),
    WidgetType.TABLE: WidgetTypeInfo(
        type=WidgetType.TABLE,
        name="Data Table",
        description="Display detailed data in rows",
        icon="table",
        category=WidgetCategory.TABLES,
        compatible_sources=[
            S.TRAFFIC, S.SEO, S.CONVERSIONS, S.REVENUE, S.SUBSCRIPTIONS,
            S.PAYMENTS, S.DEMOGRAPHICS, S.SEGMENTATION, S.CAMPAIGNS,
        ],
        default_size=WidgetSize.WIDE,
        default_dimensions={"w": 8, "h": 4, "min_w": 4, "min_h": 3},
        table_options={"columns": [], "paginate": True, "page_size": 10, "sortable": True},
    ),
    WidgetType.HEATMAP: WidgetTypeInfo(
        type=WidgetType.HEATMAP,
        name="Heatmap",
        description="Show patterns in two dimensions",
        icon="grid",
        category=WidgetCategory.ADVANCED,
        compatible_sources=[S.TRAFFIC, S.CONVERSIONS, S.CAMPAIGNS, S.DEMOGRAPHICS],
        default_size=WidgetSize.LARGE,
        default_dimensions={"w": 6, "h": 4, "min_w": 4, "min_h": 3},
        chart_options={"show_legend": True, "animate": True},
    ),
    WidgetType.SCATTER_CHART: WidgetTypeInfo(
        type=WidgetType.SCATTER_CHART,
        name="Scatter Plot",
        description="Explore correlations between metrics",
        icon="scatter-chart",
        category=WidgetCategory.ADVANCED,
        compatible_sources=[S.TRAFFIC, S.CONVERSIONS, S.REVENUE, S.UNIT_ECONOMICS, S.SEGMENTATION],
        default_size=WidgetSize.LARGE,
        default_dimensions={"w": 6, "h": 4, "min_w": 4, "min_h": 3},
        chart_options={"show_legend": True, "show_grid": True, "animate": True},
    ),
    WidgetType.RADAR_CHART: WidgetTypeInfo(
        type=WidgetType.RADAR_CHART,
        name="Radar Chart",
        description="Compare multiple dimensions",
        icon="radar",
        category=WidgetCategory.ADVANCED,
        compatible_sources=[S.SEO, S.UNIT_ECONOMICS, S.SEGMENTATION, S.CAMPAIGNS],
        default_size=WidgetSize.MEDIUM,
        default_dimensions={"w": 4, "h": 4, "min_w": 3, "min_h": 3},
        chart_options={"show_legend": True, "animate": True},
    ),
    WidgetType.SANKEY_CHART: WidgetTypeInfo(
        type=WidgetType.SANKEY_CHART,
        name="Sankey Diagram",
        description="Visualize flow between stages",
        icon="git-branch",
        category=WidgetCategory.ADVANCED,
        compatible_sources=[S.TRAFFIC, S.CONVERSIONS, S.SEGMENTATION],
        default_size=WidgetSize.WIDE,
        default_dimensions={"w": 8, "h": 4, "min_w": 6, "min_h": 3},
        chart_options={"show_legend": False, "animate": True},
    ),
}

# Fallback footprint for widgets whose type is not registered
PLACEHOLDER_DIMENSIONS = {"w": 3, "h": 2, "min_w": 1, "min_h": 1}

WIDGET_SIZE_PRESETS: Dict[WidgetSize, Dict[str, int]] = {
    WidgetSize.SMALL: {"w": 3, "h": 2},
    WidgetSize.MEDIUM: {"w": 4, "h": 3},
    WidgetSize.LARGE: {"w": 6, "h": 4},
    WidgetSize.WIDE: {"w": 8, "h": 3},
    WidgetSize.TALL: {"w": 4, "h": 6},
    WidgetSize.FULL: {"w": 12, "h": 4},
}

WIDGET_CATEGORIES = [
    {"id": WidgetCategory.METRICS.value, "name": "Metrics", "description": "Key performance indicators"},
    {"id": WidgetCategory.CHARTS.value, "name": "Charts", "description": "Visualize trends and distributions"},
    {"id": WidgetCategory.TABLES.value, "name": "Tables", "description": "Detailed data views"},
    {"id": WidgetCategory.ADVANCED.value, "name": "Advanced", "description": "Complex visualizations"},
]

DATA_SOURCE_PRESETS: Dict[DataSourceCategory, List[Dict[str, str]]] = {
    S.TRAFFIC: [
        {"field": "sessions", "label": "Sessions", "format": "number"},
        {"field": "uniqueVisitors", "label": "Unique Visitors", "format": "number"},
        {"field": "newVisitors", "label": "New Visitors", "format": "number"},
        {"field": "bounceRate", "label": "Bounce Rate", "format": "percent"},
        {"field": "pagesPerSession", "label": "Pages/Session", "format": "number"},
        {"field": "avgSessionDuration", "label": "Avg Session Duration", "format": "number"},
    ],
    S.SEO: [
        {"field": "impressions", "label": "Impressions", "format": "number"},
        {"field": "clicks", "label": "Clicks", "format": "number"},
        {"field": "ctr", "label": "CTR", "format": "percent"},
        {"field": "averagePosition", "label": "Avg Position", "format": "number"},
        {"field": "backlinks", "label": "Backlinks", "format": "number"},
        {"field": "domainAuthority", "label": "Domain Authority", "format": "number"},
    ],
    S.CONVERSIONS: [
        {"field": "conversionRate", "label": "Conversion Rate", "format": "percent"},
        {"field": "totalConversions", "label": "Total Conversions", "format": "number"},
        {"field": "addToCartRate", "label": "Add to Cart Rate", "format": "percent"},
        {"field": "cartAbandonmentRate", "label": "Cart Abandonment", "format": "percent"},
        {"field": "checkoutCompletionRate", "label": "Checkout Completion", "format": "percent"},
    ],
    S.REVENUE: [
        {"field": "grossRevenue", "label": "Gross Revenue", "format": "currency"},
        {"field": "netRevenue", "label": "Net Revenue", "format": "currency"},
        {"field": "transactions", "label": "Transactions", "format": "number"},
        {"field": "aov", "label": "AOV", "format": "currency"},
        {"field": "revenuePerVisitor", "label": "Revenue/Visitor", "format": "currency"},
        {"field": "refundRate", "label": "Refund Rate", "format": "percent"},
    ],
    S.SUBSCRIPTIONS: [
        {"field": "activeSubscribers", "label": "Active Subscribers", "format": "number"},
        {"field": "newSubscribers", "label": "New Subscribers", "format": "number"},
        {"field": "mrr", "label": "MRR", "format": "currency"},
        {"field": "arr", "label": "ARR", "format": "currency"},
        {"field": "retentionRate", "label": "Retention Rate", "format": "percent"},
        {"field": "churnRate.monthly", "label": "Monthly Churn", "format": "percent"},
    ],
    S.PAYMENTS: [
        {"field": "successfulPayments", "label": "Successful Payments", "format": "number"},
        {"field": "failedPayments", "label": "Failed Payments", "format": "number"},
        {"field": "failureRate", "label": "Failure Rate", "format": "percent"},
        {"field": "recoveryRate", "label": "Recovery Rate", "format": "percent"},
        {"field": "recoveredRevenue", "label": "Recovered Revenue", "format": "currency"},
        {"field": "atRiskRevenue", "label": "At-Risk Revenue", "format": "currency"},
    ],
    S.UNIT_ECONOMICS: [
        {"field": "cac", "label": "CAC", "format": "currency"},
        {"field": "ltv", "label": "LTV", "format": "currency"},
        {"field": "ltvCacRatio", "label": "LTV:CAC Ratio", "format": "number"},
        {"field": "cacPaybackPeriod", "label": "CAC Payback", "format": "number"},
        {"field": "arpu", "label": "ARPU", "format": "currency"},
        {"field": "nrr", "label": "NRR", "format": "percent"},
    ],
    S.DEMOGRAPHICS: [
        {"field": "geographic.byCountry", "label": "Users by Country", "format": "number"},
        {"field": "device.byType", "label": "Users by Device", "format": "number"},
        {"field": "technology.byBrowser", "label": "Users by Browser", "format": "number"},
    ],
    S.SEGMENTATION: [
        {"field": "byLeadScore", "label": "Lead Score Distribution", "format": "number"},
        {"field": "byLifecycle", "label": "Lifecycle Stage", "format": "number"},
        {"field": "byBehavior", "label": "Behavior Segments", "format": "number"},
    ],
    S.CAMPAIGNS: [
        {"field": "summary.sent", "label": "Messages Sent", "format": "number"},
        {"field": "summary.delivered", "label": "Delivered", "format": "number"},
        {"field": "engagement.openRate", "label": "Open Rate", "format": "percent"},
        {"field": "engagement.ctr", "label": "CTR", "format": "percent"},
        {"field": "conversions.revenue", "label": "Revenue", "format": "currency"},
        {"field": "conversions.roi", "label": "ROI", "format": "percent"},
    ],
    S.PREDICTIONS: [
        {"field": "revenueForecast.currentValue", "label": "Current Revenue", "format": "currency"},
        {"field": "revenueForecast.forecastedEndValue", "label": "Forecasted Revenue", "format": "currency"},
        {"field": "churnPrediction.summary.totalAtRisk", "label": "At-Risk Customers", "format": "number"},
        {"field": "churnPrediction.summary.revenueAtRisk", "label": "Revenue at Risk", "format": "currency"},
        {"field": "ltvProjection.currentLTV", "label": "Current LTV", "format": "currency"},
        {"field": "ltvProjection.projectedLTV", "label": "Projected LTV", "format": "currency"},
    ],
}


def _template_widget(widget_type: str, title: str, source: str, field_name: str, **position) -> Dict[str, Any]:
    return {
        "type": widget_type,
        "title": title,
        "data_binding": {"source": source, "field": field_name},
        "position": position,
    }


DASHBOARD_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "overview": {
        "name": "Overview Dashboard",
        "description": "Key metrics at a glance",
        "widgets": [
            _template_widget("metric-card", "Total Sessions", "traffic", "sessions", x=0, y=0),
            _template_widget("metric-card", "Conversion Rate", "conversions", "conversionRate", x=3, y=0),
            _template_widget("metric-card", "Revenue", "revenue", "netRevenue", x=6, y=0),
            _template_widget("metric-card", "MRR", "subscriptions", "mrr", x=9, y=0),
            _template_widget("area-chart", "Revenue Trend", "revenue", "revenueTrend", x=0, y=2, w=8),
            _template_widget("pie-chart", "Traffic Sources", "traffic", "trafficBySource", x=8, y=2, w=4),
        ],
    },
    "revenue": {
        "name": "Revenue Dashboard",
        "description": "Revenue and subscription metrics",
        "widgets": [
            _template_widget("metric-card", "Gross Revenue", "revenue", "grossRevenue", x=0, y=0),
            _template_widget("metric-card", "Net Revenue", "revenue", "netRevenue", x=3, y=0),
            _template_widget("metric-card", "AOV", "revenue", "aov", x=6, y=0),
            _template_widget("metric-card", "Transactions", "revenue", "transactions", x=9, y=0),
            _template_widget("line-chart", "Revenue Trend", "revenue", "revenueTrend", x=0, y=2, w=12),
            _template_widget("bar-chart", "Revenue by Product", "revenue", "revenueByProduct", x=0, y=5, w=6),
            _template_widget("pie-chart", "Revenue by Channel", "revenue", "revenueByChannel", x=6, y=5, w=6),
        ],
    },
    "marketing": {
        "name": "Marketing Dashboard",
        "description": "Campaign and acquisition metrics",
        "widgets": [
            _template_widget("metric-card", "Campaign ROI", "campaigns", "conversions.roi", x=0, y=0),
            _template_widget("metric-card", "Open Rate", "campaigns", "engagement.openRate", x=3, y=0),
            _template_widget("metric-card", "CTR", "campaigns", "engagement.ctr", x=6, y=0),
            _template_widget("metric-card", "CAC", "unitEconomics", "cac", x=9, y=0),
            _template_widget("funnel-chart", "Conversion Funnel", "conversions", "funnel", x=0, y=2, w=4),
            _template_widget("bar-chart", "Traffic by Source", "traffic", "trafficBySource", x=4, y=2, w=8),
        ],
    },
}


# Lookups

def get_all_widget_types() -> List[WidgetTypeInfo]:
    """Get all widget types"""
    return list(WIDGET_REGISTRY.values())


def get_widgets_by_category(category: WidgetCategory) -> List[WidgetTypeInfo]:
    """Get widget types by picker category"""
    return [info for info in WIDGET_REGISTRY.values() if info.category == category]


def get_widgets_for_data_source(source: DataSourceCategory) -> List[WidgetTypeInfo]:
    """Get widget types compatible with a data source"""
    return [info for info in WIDGET_REGISTRY.values() if source in info.compatible_sources]


def get_widget_type_info(widget_type: str) -> Optional[WidgetTypeInfo]:
    """Get registry entry for a type tag, None if the tag is unknown"""
    try:
        return WIDGET_REGISTRY[WidgetType(widget_type)]
    except ValueError:
        return None


def get_default_dimensions(widget_type: str) -> Dict[str, int]:
    """Default footprint for a type tag; unknown tags get the placeholder footprint"""
    info = get_widget_type_info(widget_type)
    return dict(info.default_dimensions) if info else dict(PLACEHOLDER_DIMENSIONS)


def get_size_preset_dimensions(size: WidgetSize) -> Dict[str, int]:
    """Get size preset dimensions"""
    return dict(WIDGET_SIZE_PRESETS[WidgetSize(size)])


# Factories

def generate_widget_id() -> str:
    """Generate a unique widget ID"""
    return f"widget-{uuid.uuid4().hex[:12]}"


def create_widget(
    widget_type: str,
    title: str,
    data_binding: Any,
    position: Optional[Dict[str, int]] = None,
    breakpoint: str = "lg",
    widget_id: Optional[str] = None,
    now: Optional[str] = None,
) -> Widget:
    """
    Create a new widget instance with registry defaults.

    Args:
        widget_type: Widget type tag, must be registered
        title: Display title
        data_binding: WidgetDataBinding or mapping with source/field
        position: Partial grid position (x, y, w, h)
        breakpoint: Breakpoint the position belongs to
        widget_id: Explicit id, generated when omitted
        now: Creation timestamp

    Returns:
        Widget with default options and dimensions

    Raises:
        DashboardValidationError: Unknown type or invalid data binding
    """
    info = get_widget_type_info(widget_type)
    if info is None:
        raise DashboardValidationError([f"Unknown widget type: {widget_type}"])

    position = position or {}
    dims = info.default_dimensions
    timestamp = now or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    try:
        binding = (
            data_binding
            if isinstance(data_binding, WidgetDataBinding)
            else WidgetDataBinding.model_validate(data_binding)
        )
        config = WidgetConfig(
            type=info.type.value,
            data_binding=binding,
            chart_options=ChartOptions(**info.chart_options),
            metric_options=MetricCardOptions(**info.metric_options) if info.metric_options else None,
            table_options=TableOptions(**info.table_options) if info.table_options else None,
        )
        grid = GridPosition(
            x=position.get("x", 0),
            y=position.get("y", 0),
            w=position.get("w", dims["w"]),
            h=position.get("h", dims["h"]),
            min_w=dims["min_w"],
            min_h=dims["min_h"],
        )
    except ValidationError as e:
        raise DashboardValidationError([err["msg"] for err in e.errors()]) from e

    return Widget(
        id=widget_id or generate_widget_id(),
        title=title,
        config=config,
        position={breakpoint: grid},
        visible=True,
        created_at=timestamp,
        updated_at=timestamp,
    )


def create_template_widgets(template_key: str, breakpoint: str = "lg", now: Optional[str] = None) -> List[Widget]:
    """Instantiate fresh widgets for a dashboard template"""
    template = DASHBOARD_TEMPLATES.get(template_key)
    if template is None:
        raise DashboardValidationError([f"Unknown dashboard template: {template_key}"])

    return [
        create_widget(
            spec["type"],
            spec["title"],
            spec["data_binding"],
            position=spec["position"],
            breakpoint=breakpoint,
            now=now,
        )
        for spec in template["widgets"]
    ]


def validate_widget_config(config: Any) -> List[str]:
    """
    Validate a widget configuration.

    Accepts a WidgetConfig or a raw mapping (camelCase or snake_case keys).

    Returns:
        List of error messages, empty when valid
    """
    errors: List[str] = []

    if isinstance(config, WidgetConfig):
        raw = config.model_dump(by_alias=True)
    elif isinstance(config, dict):
        raw = config
    else:
        return ["Widget config must be an object"]

    widget_type = raw.get("type")
    if not widget_type:
        errors.append("Widget type is required")
    elif get_widget_type_info(widget_type) is None:
        errors.append(f"Unknown widget type: {widget_type}")

    binding = raw.get("dataBinding", raw.get("data_binding"))
    if not binding:
        errors.append("Data binding is required")
    else:
        if not binding.get("source"):
            errors.append("Data source is required")
        elif binding["source"] not in [source.value for source in DataSourceCategory]:
            errors.append(f"Unknown data source: {binding['source']}")
        if not str(binding.get("field") or "").strip():
            errors.append("Data field is required")

    return errors
