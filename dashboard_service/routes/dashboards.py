"""Dashboard API routes"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..errors import DashboardError
from ..models import DashboardListResponse, DashboardView, DeploymentResponse, SavedDashboard, TimeRange
from ..services.dashboard_service import DashboardService, get_dashboard_service
from .error_mapping import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboards", tags=["Dashboards"])


@router.get("", response_model=DashboardListResponse)
async def list_dashboards(
    include_templates: bool = True,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard_service)
):
    """List dashboards, most recently updated first"""
    try:
        return await service.list_dashboards(include_templates, page, page_size)
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("Failed to list dashboards")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list dashboards: {str(e)}"
        )


@router.get("/deployed", response_model=List[SavedDashboard])
async def list_deployed_dashboards(service: DashboardService = Depends(get_dashboard_service)):
    """List deployed dashboards"""
    try:
        return await service.list_deployed_dashboards()
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("Failed to list deployed dashboards")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list deployed dashboards: {str(e)}"
        )


@router.get("/{dashboard_id}", response_model=SavedDashboard)
async def get_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Get dashboard by ID"""
    try:
        return await service.get_dashboard(dashboard_id)
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to get dashboard {dashboard_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get dashboard: {str(e)}"
        )


@router.get("/{dashboard_id}/view", response_model=DashboardView)
async def view_dashboard(
    dashboard_id: str,
    width: int = Query(1280, ge=0),
    time_range: Optional[TimeRange] = None,
    service: DashboardService = Depends(get_dashboard_service)
):
    """Render a dashboard for a viewport width with its widget data"""
    try:
        return await service.render(dashboard_id, width, time_range)
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to render dashboard {dashboard_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to render dashboard: {str(e)}"
        )


@router.delete("/{dashboard_id}")
async def delete_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Delete dashboard; also removes it from the deployed set"""
    try:
        deleted = await service.delete_dashboard(dashboard_id)
        return {"dashboardId": dashboard_id, "deleted": deleted}
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to delete dashboard {dashboard_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete dashboard: {str(e)}"
        )


@router.post("/{dashboard_id}/deploy", response_model=DeploymentResponse)
async def deploy_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Promote a dashboard to the deployed surface"""
    try:
        return await service.deploy(dashboard_id)
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to deploy dashboard {dashboard_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to deploy dashboard: {str(e)}"
        )


@router.delete("/{dashboard_id}/deploy", response_model=DeploymentResponse)
async def undeploy_dashboard(dashboard_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Remove a dashboard from the deployed surface"""
    try:
        return await service.undeploy(dashboard_id)
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to undeploy dashboard {dashboard_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to undeploy dashboard: {str(e)}"
        )
