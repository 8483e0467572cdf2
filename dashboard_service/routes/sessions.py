"""Editor session API routes"""
import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..errors import DashboardError
from ..models import CreateSessionRequest, SaveSessionRequest, SessionSnapshot
from ..services.dashboard_service import DashboardService, get_dashboard_service
from ..services.editor_session import SessionMode
from .error_mapping import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sessions", tags=["Editor Sessions"])


@router.post("", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    service: DashboardService = Depends(get_dashboard_service)
):
    """Open an editor session for a new or existing dashboard"""
    try:
        session = await service.create_session(SessionMode(request.mode), request.dashboard_id)
        return session.snapshot()
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("Failed to create editor session")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create editor session: {str(e)}"
        )


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Get editor session state and draft"""
    try:
        return service.get_session(session_id).snapshot()
    except DashboardError as e:
        raise http_error(e)


@router.post("/{session_id}/actions", response_model=SessionSnapshot)
async def apply_action(
    session_id: str,
    action: Dict[str, Any] = Body(...),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Apply an edit action (discriminated by its "action" field) to the session's draft"""
    try:
        session = service.get_session(session_id)
        session.mutate(action)
        return session.snapshot()
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to apply action to session {session_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to apply action: {str(e)}"
        )


@router.post("/{session_id}/save", response_model=SessionSnapshot)
async def save_session(
    session_id: str,
    request: Optional[SaveSessionRequest] = None,
    service: DashboardService = Depends(get_dashboard_service)
):
    """Save the draft; on failure the session is Failed and keeps the draft"""
    try:
        request = request or SaveSessionRequest()
        session = service.get_session(session_id)
        if request.save_as:
            await session.save_as(request.name or "")
        else:
            await session.save(request.name)
        return session.snapshot()
    except DashboardError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception(f"Failed to save session {session_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to save dashboard: {str(e)}"
        )


@router.delete("/{session_id}")
async def close_session(session_id: str, service: DashboardService = Depends(get_dashboard_service)):
    """Close an editor session, discarding unsaved changes"""
    try:
        session = service.close_session(session_id)
        return {"sessionId": session.id, "closed": True, "hadUnsavedChanges": session.has_unsaved_changes}
    except DashboardError as e:
        raise http_error(e)
