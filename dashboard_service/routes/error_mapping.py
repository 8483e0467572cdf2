"""Translate engine errors into HTTP responses"""
from fastapi import HTTPException, status

from ..errors import (
    DashboardError,
    DashboardNotFoundError,
    DashboardSaveError,
    DashboardValidationError,
    EditorSessionNotFoundError,
    InvalidSessionStateError,
    VersionConflictError,
)


def http_error(error: DashboardError) -> HTTPException:
    """HTTPException for an engine error; unknown subclasses map to 500"""
    if isinstance(error, (DashboardNotFoundError, EditorSessionNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, DashboardValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.errors)
    if isinstance(error, (VersionConflictError, InvalidSessionStateError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, DashboardSaveError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
