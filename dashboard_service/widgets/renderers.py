"""
Widget renderers.

One renderer per widget type, each resolving the widget's data binding and
shaping the fetched data for its chart component. Unrecognized type tags
and empty data render as placeholders instead of failing.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..layout.engine import LayoutEngine
from ..models import (
    DashboardView,
    GridPosition,
    RenderedWidget,
    SavedDashboard,
    TimeRange,
    Widget,
    WidgetConfig,
    WidgetType,
)
from .options import resolve_chart_options, resolve_metric_options, resolve_table_options

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_series(data: Any) -> List[Dict[str, Any]]:
    """
    Coerce fetched data into a list of {label, value} points.

    Accepts a scalar, a list of numbers, a list of point-like dicts, a
    {"series": [...]} wrapper or a flat {label: number} mapping. Anything
    non-numeric is dropped.
    """
    if data is None:
        return []
    if _is_number(data):
        return [{"label": "value", "value": data}]
    if isinstance(data, dict):
        if "series" in data:
            return normalize_series(data["series"])
        return [{"label": str(k), "value": v} for k, v in data.items() if _is_number(v)]
    if isinstance(data, list):
        points = []
        for index, item in enumerate(data):
            if _is_number(item):
                points.append({"label": str(index + 1), "value": item})
            elif isinstance(item, dict):
                value = item.get("value", item.get("y"))
                if not _is_number(value):
                    continue
                label = item.get("label") or item.get("name") or item.get("date") or item.get("x") or str(index + 1)
                points.append({"label": str(label), "value": value})
        return points
    return []


class WidgetRenderer:
    """Base renderer: fetch the bound data, then shape it"""

    placeholder = False

    async def resolve_data(self, config: WidgetConfig, fetcher, time_range: TimeRange) -> Any:
        binding = config.data_binding
        return await fetcher.fetch(binding.source.value, binding.field, time_range)

    def options(self, config: WidgetConfig) -> Dict[str, Any]:
        return resolve_chart_options(config.type, config.chart_options).model_dump(by_alias=True)

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        """Shape data for the chart component; None means 'nothing to show'"""
        points = normalize_series(data)
        if not points:
            return None
        return {"points": points}


class MetricCardRenderer(WidgetRenderer):
    """Latest value with comparison against the previous point"""

    def options(self, config: WidgetConfig) -> Dict[str, Any]:
        return resolve_metric_options(config.type, config.metric_options).model_dump(by_alias=True)

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None

        current = points[-1]["value"]
        previous = points[-2]["value"] if len(points) > 1 else None
        change = None
        trend = "flat"
        if previous is not None:
            if previous:
                change = round((current - previous) / abs(previous) * 100, 2)
            if current > previous:
                trend = "up"
            elif current < previous:
                trend = "down"

        return {
            "value": current,
            "previousValue": previous,
            "changePercent": change,
            "trend": trend,
            "sparkline": [p["value"] for p in points],
        }


class SeriesChartRenderer(WidgetRenderer):
    """Line, area, bar and scatter charts: categories plus one series"""

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None
        return {
            "categories": [p["label"] for p in points],
            "series": [{"name": config.data_binding.field, "data": [p["value"] for p in points]}],
        }


class DistributionRenderer(WidgetRenderer):
    """Pie and funnel charts: named slices"""

    def __init__(self, sort_descending: bool = False):
        self.sort_descending = sort_descending

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None
        items = [{"name": p["label"], "value": p["value"]} for p in points]
        if self.sort_descending:
            items.sort(key=lambda item: item["value"], reverse=True)
        return {"items": items, "total": sum(item["value"] for item in items)}


class GaugeRenderer(WidgetRenderer):
    """Single value against a 0..max scale"""

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None
        value = points[-1]["value"]
        peak = max(p["value"] for p in points)
        maximum = 100 if 0 <= peak <= 100 else peak
        return {"value": value, "min": 0, "max": maximum}


class TableRenderer(WidgetRenderer):
    """Rows for the configured columns, or label/value when none are configured"""

    def options(self, config: WidgetConfig) -> Dict[str, Any]:
        return resolve_table_options(config.type, config.table_options).model_dump(by_alias=True)

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        if isinstance(data, list) and data and all(isinstance(row, dict) for row in data):
            rows = data
        else:
            rows = [{"label": p["label"], "value": p["value"]} for p in normalize_series(data)]
        if not rows:
            return None

        table_options = resolve_table_options(config.type, config.table_options)
        if table_options.columns:
            columns = [column.model_dump(by_alias=True, exclude_none=True) for column in table_options.columns]
        else:
            columns = [{"key": key, "label": key.replace("_", " ").title()} for key in rows[0].keys()]
        return {"columns": columns, "rows": rows, "totalRows": len(rows)}


class HeatmapRenderer(WidgetRenderer):
    """Cells laid out along one axis with a value scale"""

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None
        values = [p["value"] for p in points]
        return {
            "xLabels": [p["label"] for p in points],
            "cells": [[index, 0, p["value"]] for index, p in enumerate(points)],
            "min": min(values),
            "max": max(values),
        }


class RadarRenderer(WidgetRenderer):
    """One indicator per point"""

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        points = normalize_series(data)
        if not points:
            return None
        peak = max(p["value"] for p in points) or 1
        return {
            "indicators": [{"name": p["label"], "max": peak} for p in points],
            "values": [p["value"] for p in points],
        }


class SankeyRenderer(WidgetRenderer):
    """Flow between consecutive stages"""

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        if isinstance(data, dict) and "nodes" in data and "links" in data:
            return {"nodes": data["nodes"], "links": data["links"]} if data["nodes"] else None
        points = normalize_series(data)
        if not points:
            return None
        nodes = [{"name": p["label"]} for p in points]
        links = [
            {"source": points[i]["label"], "target": points[i + 1]["label"], "value": points[i + 1]["value"]}
            for i in range(len(points) - 1)
        ]
        return {"nodes": nodes, "links": links}


class PlaceholderRenderer(WidgetRenderer):
    """Fallback for unrecognized widget types; never fetches"""

    placeholder = True

    async def resolve_data(self, config: WidgetConfig, fetcher, time_range: TimeRange) -> Any:
        return None

    def render(self, config: WidgetConfig, data: Any) -> Optional[Dict[str, Any]]:
        return None


PLACEHOLDER_RENDERER = PlaceholderRenderer()

RENDERERS: Dict[str, WidgetRenderer] = {
    WidgetType.METRIC_CARD.value: MetricCardRenderer(),
    WidgetType.LINE_CHART.value: SeriesChartRenderer(),
    WidgetType.AREA_CHART.value: SeriesChartRenderer(),
    WidgetType.BAR_CHART.value: SeriesChartRenderer(),
    WidgetType.SCATTER_CHART.value: SeriesChartRenderer(),
    WidgetType.PIE_CHART.value: DistributionRenderer(),
    WidgetType.FUNNEL_CHART.value: DistributionRenderer(sort_descending=True),
    WidgetType.GAUGE_CHART.value: GaugeRenderer(),
    WidgetType.TABLE.value: TableRenderer(),
    WidgetType.HEATMAP.value: HeatmapRenderer(),
    WidgetType.RADAR_CHART.value: RadarRenderer(),
    WidgetType.SANKEY_CHART.value: SankeyRenderer(),
}


def get_renderer(widget_type: str) -> WidgetRenderer:
    """Renderer for a type tag, the placeholder for anything unrecognized"""
    return RENDERERS.get(widget_type, PLACEHOLDER_RENDERER)


async def render_widget(
    widget: Widget,
    position: GridPosition,
    breakpoint: str,
    fetcher,
    time_range: TimeRange,
) -> RenderedWidget:
    """Fetch and render one widget; failures degrade to a placeholder"""
    config = widget.config
    renderer = get_renderer(config.type)
    rendered = RenderedWidget(
        widget_id=widget.id,
        title=widget.title,
        type=config.type,
        breakpoint=breakpoint,
        position=position,
        options=renderer.options(config),
    )

    if renderer.placeholder:
        logger.warning(f"Unknown widget type '{config.type}' for widget {widget.id}, rendering placeholder")
        rendered.placeholder = True
        rendered.error = f"Unsupported widget type: {config.type}"
        return rendered

    try:
        data = await renderer.resolve_data(config, fetcher, time_range)
    except Exception as e:
        logger.warning(
            f"Data fetch failed for widget {widget.id} "
            f"({config.data_binding.source.value}.{config.data_binding.field}): {e}"
        )
        rendered.placeholder = True
        rendered.error = f"Failed to load data: {e}"
        return rendered

    payload = renderer.render(config, data)
    if payload is None:
        rendered.placeholder = True
    else:
        rendered.data = payload
    return rendered


async def render_dashboard(
    dashboard: SavedDashboard,
    viewport_width: int,
    fetcher,
    time_range: Optional[TimeRange] = None,
) -> DashboardView:
    """
    Resolve a dashboard for a viewport width.

    Selects the breakpoint, arranges the visible widgets through the layout
    engine and renders each one. A failing widget never fails the view.
    """
    time_range = TimeRange(time_range or dashboard.default_time_range or TimeRange.LAST_30_DAYS)
    engine = LayoutEngine(dashboard.layout)
    breakpoint = engine.breakpoint_for(viewport_width)

    visible = [w for w in dashboard.widgets if w.visible]
    positions = engine.arrange(visible, breakpoint)

    widgets = await asyncio.gather(*[
        render_widget(widget, positions[widget.id], breakpoint, fetcher, time_range)
        for widget in visible
    ])
    widgets = sorted(widgets, key=lambda r: (r.position.y, r.position.x))

    logger.info(f"Rendered dashboard {dashboard.id} at {breakpoint} with {len(widgets)} widgets")

    return DashboardView(
        dashboard_id=dashboard.id,
        name=dashboard.name,
        breakpoint=breakpoint,
        columns=engine.columns_for(breakpoint),
        row_height=dashboard.layout.row_height,
        gap=dashboard.layout.gap,
        padding=dashboard.layout.padding,
        time_range=time_range,
        widgets=widgets,
    )
