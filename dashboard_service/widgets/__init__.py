"""
Widget catalogue and option resolution
"""
from .registry import (
    WIDGET_REGISTRY,
    WIDGET_CATEGORIES,
    WIDGET_SIZE_PRESETS,
    DATA_SOURCE_PRESETS,
    DASHBOARD_TEMPLATES,
    WidgetTypeInfo,
    create_widget,
    create_template_widgets,
    get_all_widget_types,
    get_widget_type_info,
    get_widgets_by_category,
    get_widgets_for_data_source,
    get_size_preset_dimensions,
    validate_widget_config,
)
from .options import resolve_chart_options, resolve_metric_options, resolve_table_options

__all__ = [
    'WIDGET_REGISTRY',
    'WIDGET_CATEGORIES',
    'WIDGET_SIZE_PRESETS',
    'DATA_SOURCE_PRESETS',
    'DASHBOARD_TEMPLATES',
    'WidgetTypeInfo',
    'create_widget',
    'create_template_widgets',
    'get_all_widget_types',
    'get_widget_type_info',
    'get_widgets_by_category',
    'get_widgets_for_data_source',
    'get_size_preset_dimensions',
    'validate_widget_config',
    'resolve_chart_options',
    'resolve_metric_options',
    'resolve_table_options',
]
