"""
Unit tests for the widget registry
"""

import pytest

from dashboard_service.errors import DashboardValidationError
from dashboard_service.models import DataSourceCategory, WidgetCategory, WidgetSize, WidgetType
from dashboard_service.widgets.registry import (
    DASHBOARD_TEMPLATES,
    DATA_SOURCE_PRESETS,
    WIDGET_REGISTRY,
    create_template_widgets,
    create_widget,
    get_all_widget_types,
    get_default_dimensions,
    get_size_preset_dimensions,
    get_widget_type_info,
    get_widgets_by_category,
    get_widgets_for_data_source,
    validate_widget_config,
)


class TestWidgetCatalogue:
    """Test cases for registry lookups"""

    def test_every_widget_type_is_registered(self):
        assert set(WIDGET_REGISTRY) == set(WidgetType)
        assert len(get_all_widget_types()) == 12

    @pytest.mark.parametrize("widget_type,dims", [
        ("metric-card", {"w": 3, "h": 2, "min_w": 2, "min_h": 2}),
        ("bar-chart", {"w": 6, "h": 4, "min_w": 4, "min_h": 3}),
        ("funnel-chart", {"w": 4, "h": 5, "min_w": 3, "min_h": 4}),
        ("sankey-chart", {"w": 8, "h": 4, "min_w": 6, "min_h": 3}),
    ])
    def test_default_dimensions(self, widget_type, dims):
        assert get_widget_type_info(widget_type).default_dimensions == dims

    def test_unknown_type_lookup(self):
        assert get_widget_type_info("hologram") is None
        assert get_default_dimensions("hologram")["w"] == 3

    def test_widgets_by_category(self):
        metrics = {info.type for info in get_widgets_by_category(WidgetCategory.METRICS)}
        assert metrics == {WidgetType.METRIC_CARD, WidgetType.GAUGE_CHART}

        tables = get_widgets_by_category(WidgetCategory.TABLES)
        assert [info.type for info in tables] == [WidgetType.TABLE]

    def test_widgets_for_data_source(self):
        conversions = {info.type for info in get_widgets_for_data_source(DataSourceCategory.CONVERSIONS)}
        assert WidgetType.FUNNEL_CHART in conversions
        assert WidgetType.RADAR_CHART not in conversions

    def test_size_presets(self):
        assert get_size_preset_dimensions(WidgetSize.WIDE) == {"w": 8, "h": 3}
        assert get_size_preset_dimensions("full") == {"w": 12, "h": 4}

    def test_to_dict_uses_camel_case(self):
        data = get_widget_type_info("pie-chart").to_dict()
        assert data["defaultDimensions"] == {"w": 4, "h": 4, "minW": 3, "minH": 3}
        assert "traffic" in data["compatibleSources"]

    def test_presets_cover_every_source(self):
        assert set(DATA_SOURCE_PRESETS) == set(DataSourceCategory)
        revenue_fields = [preset["field"] for preset in DATA_SOURCE_PRESETS[DataSourceCategory.REVENUE]]
        assert "netRevenue" in revenue_fields


class TestCreateWidget:
    """Test cases for widget construction"""

    def test_create_widget_applies_defaults(self):
        widget = create_widget(
            "metric-card",
            "Sessions",
            {"source": "traffic", "field": "sessions"},
            now="2024-01-01T00:00:00Z",
        )

        assert widget.id.startswith("widget-")
        assert widget.visible is True
        assert widget.created_at == "2024-01-01T00:00:00Z"
        position = widget.position["lg"]
        assert (position.x, position.y, position.w, position.h) == (0, 0, 3, 2)
        assert (position.min_w, position.min_h) == (2, 2)
        assert widget.config.metric_options.format == "number"

    def test_create_widget_with_partial_position(self):
        widget = create_widget(
            "line-chart",
            "Trend",
            {"source": "revenue", "field": "netRevenue"},
            position={"x": 6, "y": 4},
        )
        position = widget.position["lg"]
        assert (position.x, position.y, position.w, position.h) == (6, 4, 6, 3)
        assert widget.config.chart_options.smooth is True

    def test_unknown_type_rejected(self):
        with pytest.raises(DashboardValidationError) as exc_info:
            create_widget("hologram", "Nope", {"source": "traffic", "field": "sessions"})
        assert "Unknown widget type" in exc_info.value.errors[0]

    def test_unknown_source_rejected(self):
        with pytest.raises(DashboardValidationError):
            create_widget("bar-chart", "Nope", {"source": "weather", "field": "rain"})

    def test_blank_field_rejected(self):
        with pytest.raises(DashboardValidationError):
            create_widget("bar-chart", "Nope", {"source": "traffic", "field": "   "})

    def test_template_widgets(self):
        widgets = create_template_widgets("overview")
        assert len(widgets) == len(DASHBOARD_TEMPLATES["overview"]["widgets"])
        assert len({w.id for w in widgets}) == len(widgets)
        assert widgets[4].position["lg"].w == 8

    def test_unknown_template(self):
        with pytest.raises(DashboardValidationError):
            create_template_widgets("finance")


class TestValidateWidgetConfig:
    """Test cases for config validation"""

    def test_valid_config(self):
        widget = create_widget("table", "Rows", {"source": "seo", "field": "clicks"})
        assert validate_widget_config(widget.config) == []

    def test_invalid_config_collects_errors(self):
        errors = validate_widget_config({"type": "hologram", "dataBinding": {"source": "weather", "field": ""}})
        assert "Unknown widget type: hologram" in errors
        assert "Unknown data source: weather" in errors
        assert "Data field is required" in errors

    def test_missing_binding(self):
        assert validate_widget_config({"type": "table"}) == ["Data binding is required"]
