"""
Responsive grid layout engine
"""
from .engine import LayoutEngine, compact, select_breakpoint, resolve_position, scale_position

__all__ = ['LayoutEngine', 'compact', 'select_breakpoint', 'resolve_position', 'scale_position']
