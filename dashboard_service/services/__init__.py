"""
Dashboard engine services
"""
from .aggregate import create_dashboard, update_dashboard
from .persistence import DashboardRepository
from .deployment_registry import DeploymentRegistry
from .editor_session import EditorSession, SessionManager, SessionMode, SessionState
from .dashboard_service import DashboardService, get_dashboard_service

__all__ = [
    'create_dashboard',
    'update_dashboard',
    'DashboardRepository',
    'DeploymentRegistry',
    'EditorSession',
    'SessionManager',
    'SessionMode',
    'SessionState',
    'DashboardService',
    'get_dashboard_service',
]
