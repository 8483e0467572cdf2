"""
Dashboard aggregate: pure create/update over DashboardInput.

Neither function reads ambient state; the clock and id generator are passed in.
"""
import uuid
from datetime import datetime, timezone
from typing import Callable

from ..models import DashboardInput, SavedDashboard

Clock = Callable[[], str]
IdGenerator = Callable[[], str]


def utc_now() -> str:
    """Current UTC time as a sortable ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_dashboard_id() -> str:
    return f"dashboard-{uuid.uuid4()}"


def create_dashboard(
    data: DashboardInput,
    owner_id: str,
    clock: Clock = utc_now,
    id_generator: IdGenerator = generate_dashboard_id,
) -> SavedDashboard:
    """
    Build a new SavedDashboard from editor input.

    Returns a dashboard at version 1 with a fresh id and both timestamps
    set to the same instant; widgetCount is derived from the widgets.
    """
    now = clock()
    return SavedDashboard(
        id=id_generator(),
        owner_id=owner_id,
        created_at=now,
        updated_at=now,
        version=1,
        **data.model_dump(),
    )


def update_dashboard(existing: SavedDashboard, data: DashboardInput, clock: Clock = utc_now) -> SavedDashboard:
    """
    Replace an existing dashboard's editable fields.

    id, createdAt and ownerId are carried over, the version is bumped by one
    and updatedAt is refreshed; everything else comes from ``data``.
    """
    return SavedDashboard(
        id=existing.id,
        owner_id=existing.owner_id,
        created_at=existing.created_at,
        updated_at=clock(),
        version=existing.version + 1,
        **data.model_dump(),
    )


def to_input(dashboard: SavedDashboard) -> DashboardInput:
    """Editable fields of a stored dashboard, used to seed an edit draft"""
    return DashboardInput(**dashboard.model_dump(include=set(DashboardInput.model_fields), exclude_none=True))
