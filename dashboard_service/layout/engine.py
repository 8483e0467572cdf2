"""
Layout engine

Resolves widget positions for a breakpoint and repacks them so that no two
widgets overlap and every widget stays inside the active column count.
"""
import logging
from typing import Dict, List, Optional, Tuple

from ..models import CompactType, DashboardLayout, GridPosition, Widget
from ..widgets.registry import get_default_dimensions

logger = logging.getLogger(__name__)


def select_breakpoint(layout: DashboardLayout, viewport_width: int) -> str:
    """
    Pick the active breakpoint for a viewport width.

    The largest breakpoint whose threshold is <= the width wins; narrower
    viewports fall back to the smallest breakpoint.
    """
    ordered = layout.ordered_breakpoints()
    for breakpoint in ordered:
        if layout.breakpoints[breakpoint] <= viewport_width:
            return breakpoint
    return ordered[-1]


def clamp_position(position: GridPosition, columns: int) -> GridPosition:
    """Clamp width to the column count, then x so the widget stays in bounds"""
    w = min(position.w, columns)
    x = min(position.x, columns - w)
    min_w = min(position.min_w, columns) if position.min_w else position.min_w
    max_w = max(position.max_w, min_w or 1) if position.max_w else position.max_w
    return position.model_copy(update={"x": x, "w": w, "min_w": min_w, "max_w": max_w})


def scale_position(position: GridPosition, from_columns: int, to_columns: int) -> GridPosition:
    """Scale x/w proportionally between two column counts"""
    if from_columns == to_columns:
        return clamp_position(position, to_columns)

    ratio = to_columns / from_columns
    scaled = position.model_copy(update={
        "x": int(round(position.x * ratio)),
        "w": max(1, int(round(position.w * ratio))),
    })
    return clamp_position(scaled, to_columns)


def clamp_size(position: GridPosition, w: int, h: int, columns: int) -> GridPosition:
    """Apply a resize honouring the position's min/max constraints and the column count"""
    if position.min_w:
        w = max(w, position.min_w)
    if position.max_w:
        w = min(w, position.max_w)
    if position.min_h:
        h = max(h, position.min_h)
    if position.max_h:
        h = min(h, position.max_h)
    return clamp_position(position.model_copy(update={"w": max(1, w), "h": max(1, h)}), columns)


def _source_breakpoint(widget: Widget, layout: DashboardLayout, breakpoint: str) -> Optional[str]:
    """Breakpoint to scale from: the base one, else the nearest wider, else any known"""
    ordered = layout.ordered_breakpoints()
    if ordered[0] in widget.position:
        return ordered[0]

    index = ordered.index(breakpoint) if breakpoint in ordered else len(ordered)
    for candidate in reversed(ordered[:index]):
        if candidate in widget.position:
            return candidate
    for candidate in ordered[index:]:
        if candidate in widget.position:
            return candidate
    return None


def resolve_position(widget: Widget, layout: DashboardLayout, breakpoint: str) -> GridPosition:
    """
    Position of a widget at a breakpoint.

    An explicit position for the breakpoint is used as is (clamped); otherwise
    it is scaled from the base breakpoint's position.
    """
    columns = layout.columns_for(breakpoint)
    if breakpoint in widget.position:
        return clamp_position(widget.position[breakpoint], columns)

    source = _source_breakpoint(widget, layout, breakpoint)
    if source is None:
        # Positions keyed by breakpoints the layout does not define
        position = next(iter(widget.position.values()))
        return scale_position(position, layout.columns, columns)

    return scale_position(widget.position[source], layout.columns_for(source), columns)


def _collision(position: GridPosition, placed: List[GridPosition]) -> Optional[GridPosition]:
    for other in placed:
        if position.overlaps(other):
            return other
    return None


def _bottom(placed: List[GridPosition]) -> int:
    return max((p.bottom for p in placed), default=0)


def _place_vertical(position: GridPosition, placed: List[GridPosition]) -> GridPosition:
    candidate = position.model_copy(update={"y": 0})
    for _ in range(len(placed) + 1):
        other = _collision(candidate, placed)
        if other is None:
            return candidate
        candidate = candidate.model_copy(update={"y": other.bottom})
    return position.model_copy(update={"y": _bottom(placed)})


def _place_horizontal(position: GridPosition, placed: List[GridPosition], columns: int) -> GridPosition:
    limit = _bottom(placed)
    y = position.y
    while y <= limit:
        for x in range(0, columns - position.w + 1):
            candidate = position.model_copy(update={"x": x, "y": y})
            if _collision(candidate, placed) is None:
                return candidate
        y += 1
    return position.model_copy(update={"x": 0, "y": limit})


def _place_fixed(position: GridPosition, placed: List[GridPosition]) -> GridPosition:
    candidate = position
    for _ in range(len(placed) + 1):
        other = _collision(candidate, placed)
        if other is None:
            return candidate
        candidate = candidate.model_copy(update={"y": other.bottom})
    return position.model_copy(update={"y": _bottom(placed)})


def compact(
    positions: Dict[str, GridPosition],
    columns: int,
    compact_type: Optional[CompactType] = CompactType.VERTICAL,
    pinned: Optional[str] = None,
) -> Dict[str, GridPosition]:
    """
    Repack positions so none overlap.

    Widgets are placed in ascending (y, x) order. Vertical compaction slides
    each one to the first free row from the top; horizontal slides it left
    within its row; without a compact type explicit rows are kept and only
    overlaps are pushed down. The pinned key wins ties for a cell, so a
    widget that was just moved keeps its spot.

    Returns:
        New positions keyed like the input, in placement order
    """
    ordered: List[Tuple[str, GridPosition]] = sorted(
        ((key, clamp_position(pos, columns)) for key, pos in positions.items()),
        key=lambda item: (item[1].y, item[1].x, item[0] != pinned),
    )

    placed: List[GridPosition] = []
    result: Dict[str, GridPosition] = {}
    for key, position in ordered:
        if compact_type == CompactType.VERTICAL:
            final = _place_vertical(position, placed)
        elif compact_type == CompactType.HORIZONTAL:
            final = _place_horizontal(position, placed, columns)
        else:
            final = _place_fixed(position, placed)

        if _collision(final, placed) is not None:
            logger.warning(f"Could not resolve overlap for {key}, stacking below all widgets")
            final = final.model_copy(update={"y": _bottom(placed)})

        placed.append(final)
        result[key] = final

    return result


def next_position(existing: List[GridPosition], widget_type: str, columns: int) -> GridPosition:
    """Position for a new widget with no explicit placement: below everything, at x=0"""
    dims = get_default_dimensions(widget_type)
    return clamp_position(
        GridPosition(
            x=0,
            y=_bottom(existing),
            w=dims["w"],
            h=dims["h"],
            min_w=dims["min_w"],
            min_h=dims["min_h"],
        ),
        columns,
    )


class LayoutEngine:
    """Applies a DashboardLayout to a set of widgets"""

    def __init__(self, layout: DashboardLayout):
        self.layout = layout

    def breakpoint_for(self, viewport_width: int) -> str:
        return select_breakpoint(self.layout, viewport_width)

    def columns_for(self, breakpoint: str) -> int:
        return self.layout.columns_for(breakpoint)

    def arrange(self, widgets: List[Widget], breakpoint: str, pinned: Optional[str] = None) -> Dict[str, GridPosition]:
        """Resolve and compact the positions of widgets at a breakpoint, keyed by widget id"""
        columns = self.columns_for(breakpoint)
        positions = {
            widget.id: resolve_position(widget, self.layout, breakpoint)
            for widget in widgets
        }
        return compact(positions, columns, self.layout.compact_type, pinned)

    def apply(self, widgets: List[Widget], breakpoint: str, pinned: Optional[str] = None) -> List[Widget]:
        """Copies of the widgets with compacted positions written back for a breakpoint"""
        arranged = self.arrange(widgets, breakpoint, pinned)
        updated = []
        for widget in widgets:
            position = dict(widget.position)
            position[breakpoint] = arranged[widget.id]
            updated.append(widget.model_copy(update={"position": position}))
        return updated

    def next_position(self, widgets: List[Widget], widget_type: str, breakpoint: str) -> GridPosition:
        existing = [resolve_position(w, self.layout, breakpoint) for w in widgets]
        return next_position(existing, widget_type, self.columns_for(breakpoint))
