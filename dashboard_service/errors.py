"""Error taxonomy for the dashboard engine"""
from typing import List, Optional


class DashboardError(Exception):
    """Base class for all dashboard engine errors"""


class DashboardNotFoundError(DashboardError):
    """Requested dashboard id has no matching record"""

    def __init__(self, dashboard_id: str):
        self.dashboard_id = dashboard_id
        super().__init__(f"Dashboard {dashboard_id} not found")


class DashboardSerializationError(DashboardError):
    """Stored data is present but could not be parsed"""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to parse stored document '{key}': {reason}")


class DashboardSaveError(DashboardError):
    """A write to the underlying store failed"""

    def __init__(self, message: str, reason: str = "storage_error"):
        self.reason = reason
        super().__init__(message)


class VersionConflictError(DashboardSaveError):
    """A save carried a stale version token"""

    def __init__(self, dashboard_id: str, expected_version: int, actual_version: Optional[int]):
        self.dashboard_id = dashboard_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Dashboard {dashboard_id} was modified elsewhere "
            f"(expected version {expected_version}, found {actual_version})",
            reason="conflict",
        )


class DashboardValidationError(DashboardError):
    """Input failed model validation"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid dashboard input")


class InvalidSessionStateError(DashboardError):
    """Operation is not permitted in the editor session's current state"""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while session is {state}")


class EditorSessionNotFoundError(DashboardError):
    """No open editor session has the given id"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Editor session {session_id} not found")
