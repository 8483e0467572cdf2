"""Widget catalogue API routes"""
import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, status

from ..models import DataSourceCategory, WidgetCategory
from ..widgets.registry import (
    DASHBOARD_TEMPLATES,
    DATA_SOURCE_PRESETS,
    WIDGET_CATEGORIES,
    WIDGET_SIZE_PRESETS,
    get_all_widget_types,
    get_widget_type_info,
    get_widgets_by_category,
    get_widgets_for_data_source,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/widgets", tags=["Widgets"])


@router.get("/types")
async def list_widget_types(
    category: Optional[WidgetCategory] = None,
    source: Optional[DataSourceCategory] = None
):
    """List widget types, optionally filtered by category and compatible data source"""
    types = get_widgets_by_category(category) if category else get_all_widget_types()
    if source:
        compatible = {info.type for info in get_widgets_for_data_source(source)}
        types = [info for info in types if info.type in compatible]
    return [info.to_dict() for info in types]


@router.get("/types/{widget_type}")
async def get_widget_type(widget_type: str):
    """Get one widget type"""
    info = get_widget_type_info(widget_type)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown widget type: {widget_type}"
        )
    return info.to_dict()


@router.get("/categories")
async def list_categories():
    """Widget picker categories"""
    return WIDGET_CATEGORIES


@router.get("/sizes")
async def list_size_presets():
    """Size presets in grid units"""
    return {size.value: dims for size, dims in WIDGET_SIZE_PRESETS.items()}


@router.get("/presets")
async def list_data_source_presets():
    """Common fields per data source"""
    return {source.value: presets for source, presets in DATA_SOURCE_PRESETS.items()}


@router.get("/presets/{source}")
async def get_data_source_presets(source: DataSourceCategory):
    """Common fields for one data source"""
    return DATA_SOURCE_PRESETS.get(source, [])


@router.get("/templates")
async def list_templates():
    """Dashboard templates available to the editor"""
    return [
        {
            "key": key,
            "name": template["name"],
            "description": template["description"],
            "widgetCount": len(template["widgets"]),
        }
        for key, template in DASHBOARD_TEMPLATES.items()
    ]
