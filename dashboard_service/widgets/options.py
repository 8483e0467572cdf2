"""
Option resolution for widgets.

Stored options are sparse. Resolution layers global defaults, then the
widget type's registry defaults, then whatever the user set, so every
recognized key always has an effective value.
"""
from typing import Dict, Any, Optional

from ..models import ChartOptions, MetricCardOptions, TableOptions, WidgetConfig
from .registry import get_widget_type_info

GLOBAL_CHART_DEFAULTS: Dict[str, Any] = {
    "show_legend": True,
    "legend_position": "bottom",
    "show_grid": True,
    "show_data_labels": False,
    "animate": True,
    "smooth": False,
    "stacked": False,
    "inner_radius": 0,
    "orientation": "vertical",
}

METRIC_DEFAULTS: Dict[str, Any] = {
    "format": "number",
    "show_comparison": True,
    "show_trend": True,
    "prefix": "",
    "suffix": "",
}

TABLE_DEFAULTS: Dict[str, Any] = {
    "columns": [],
    "paginate": True,
    "page_size": 10,
    "sortable": True,
    "selectable": False,
}


def _set_values(options: Any) -> Dict[str, Any]:
    if options is None:
        return {}
    if isinstance(options, dict):
        return {k: v for k, v in options.items() if v is not None}
    return options.model_dump(exclude_none=True)


def resolve_chart_options(widget_type: str, options: Optional[ChartOptions] = None) -> ChartOptions:
    """
    Produce fully-defaulted chart options for a widget type.

    Unknown types resolve against the global defaults only.
    """
    resolved = dict(GLOBAL_CHART_DEFAULTS)
    info = get_widget_type_info(widget_type)
    if info:
        resolved.update(info.chart_options)
    resolved.update(_set_values(options))
    return ChartOptions(**resolved)


def resolve_metric_options(widget_type: str, options: Optional[MetricCardOptions] = None) -> MetricCardOptions:
    """Produce fully-defaulted metric card options"""
    resolved = dict(METRIC_DEFAULTS)
    info = get_widget_type_info(widget_type)
    if info and info.metric_options:
        resolved.update(info.metric_options)
    resolved.update(_set_values(options))
    return MetricCardOptions(**resolved)


def resolve_table_options(widget_type: str, options: Optional[TableOptions] = None) -> TableOptions:
    """Produce fully-defaulted table options"""
    resolved = dict(TABLE_DEFAULTS)
    info = get_widget_type_info(widget_type)
    if info and info.table_options:
        resolved.update(info.table_options)
    resolved.update(_set_values(options))
    return TableOptions(**resolved)


def resolve_widget_config(config: WidgetConfig) -> WidgetConfig:
    """Copy of a widget config with every option block fully resolved"""
    return config.model_copy(update={
        "chart_options": resolve_chart_options(config.type, config.chart_options),
        "metric_options": resolve_metric_options(config.type, config.metric_options),
        "table_options": resolve_table_options(config.type, config.table_options),
    })
