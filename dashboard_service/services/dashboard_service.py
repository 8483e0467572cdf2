"""Dashboard business logic"""
import asyncio
import logging
from typing import List, Optional

from ..config import settings
from ..errors import DashboardNotFoundError
from ..models import (
    DashboardListResponse,
    DashboardView,
    DashboardVisibility,
    DeploymentResponse,
    SavedDashboard,
    TimeRange,
    default_layout,
)
from ..storage import KeyValueStore, create_store
from ..widgets.registry import DASHBOARD_TEMPLATES, create_template_widgets
from ..widgets.renderers import render_dashboard
from .aggregate import Clock, IdGenerator, generate_dashboard_id, utc_now
from .data_fetcher import AnalyticsFetcher, get_data_fetcher
from .deployment_registry import DEFAULT_DEPLOYED_KEY, DeploymentRegistry
from .editor_session import EditorSession, SessionManager, SessionMode, SessionState, Sleep
from .persistence import DEFAULT_DASHBOARDS_KEY, DashboardRepository

logger = logging.getLogger(__name__)

TEMPLATE_OWNER_ID = "system"


class DashboardService:
    """
    Entry point used by the API layer.

    Wires the persistence gateway, deployment registry and editor sessions
    over one key-value store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        fetcher: AnalyticsFetcher,
        dashboards_key: str = DEFAULT_DASHBOARDS_KEY,
        deployed_key: str = DEFAULT_DEPLOYED_KEY,
        owner_id: str = "demo-user",
        save_delay: float = 0.0,
        enforce_version: bool = True,
        clock: Clock = utc_now,
        id_generator: IdGenerator = generate_dashboard_id,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.fetcher = fetcher
        self.repository = DashboardRepository(store, dashboards_key, enforce_version=enforce_version)
        self.deployments = DeploymentRegistry(store, deployed_key)
        self.sessions = SessionManager()
        self.owner_id = owner_id
        self.save_delay = save_delay
        self.clock = clock
        self.id_generator = id_generator
        self.sleep = sleep

    # Dashboards

    async def list_dashboards(
        self,
        include_templates: bool = True,
        page: int = 1,
        page_size: int = 20,
    ) -> DashboardListResponse:
        """
        List dashboard metadata, most recently updated first.

        Args:
            include_templates: Include dashboards flagged as templates
            page: 1-based page number
            page_size: Items per page

        Returns:
            One page of metadata with the total count
        """
        dashboards = await self.repository.list()
        if not include_templates:
            dashboards = [d for d in dashboards if not d.is_template]

        dashboards.sort(key=lambda d: d.updated_at, reverse=True)
        start = (page - 1) * page_size

        return DashboardListResponse(
            data=[d.to_meta() for d in dashboards[start:start + page_size]],
            total=len(dashboards),
            page=page,
            page_size=page_size,
            timestamp=utc_now(),
        )

    async def get_dashboard(self, dashboard_id: str) -> SavedDashboard:
        dashboard = await self.repository.get(dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError(dashboard_id)
        return dashboard

    async def delete_dashboard(self, dashboard_id: str) -> bool:
        """
        Delete a dashboard and drop it from the deployed set; missing ids are a no-op.

        The deployed set is updated first so a failed delete never leaves a
        deployed id pointing at a removed dashboard.
        """
        await self.deployments.undeploy(dashboard_id)
        return await self.repository.delete(dashboard_id)

    async def render(
        self,
        dashboard_id: str,
        viewport_width: int,
        time_range: Optional[TimeRange] = None,
    ) -> DashboardView:
        dashboard = await self.get_dashboard(dashboard_id)
        return await render_dashboard(dashboard, viewport_width, self.fetcher, time_range)

    # Deployment

    async def deploy(self, dashboard_id: str) -> DeploymentResponse:
        if not await self.repository.exists(dashboard_id):
            raise DashboardNotFoundError(dashboard_id)
        ids = await self.deployments.deploy(dashboard_id)
        return DeploymentResponse(dashboard_id=dashboard_id, deployed=True, deployed_ids=ids)

    async def undeploy(self, dashboard_id: str) -> DeploymentResponse:
        ids = await self.deployments.undeploy(dashboard_id)
        return DeploymentResponse(dashboard_id=dashboard_id, deployed=False, deployed_ids=ids)

    async def list_deployed_dashboards(self) -> List[SavedDashboard]:
        """Deployed dashboards in deployment order, skipping ids with no stored dashboard"""
        ids = await self.deployments.list_ids()
        by_id = {d.id: d for d in await self.repository.list()}
        return [by_id[i] for i in ids if i in by_id]

    # Editor sessions

    async def create_session(self, mode: SessionMode, dashboard_id: Optional[str] = None) -> EditorSession:
        """
        Open and load an editor session.

        Raises:
            DashboardNotFoundError: Edit mode targets a missing dashboard
            DashboardValidationError: Edit mode without a dashboard id
        """
        session = EditorSession(
            self.repository,
            mode=mode,
            dashboard_id=dashboard_id,
            owner_id=self.owner_id,
            clock=self.clock,
            id_generator=self.id_generator,
            sleep=self.sleep,
            save_delay=self.save_delay,
            on_saved=self._dispose_saved_session,
        )
        await session.load()

        if session.state == SessionState.NOT_FOUND:
            raise DashboardNotFoundError(dashboard_id)

        self.sessions.add(session)
        return session

    def get_session(self, session_id: str) -> EditorSession:
        return self.sessions.get(session_id)

    def close_session(self, session_id: str) -> EditorSession:
        return self.sessions.remove(session_id)

    def _dispose_saved_session(self, session: EditorSession) -> None:
        # Saved is terminal; the caller keeps its own reference for the snapshot
        self.sessions.discard(session.id)
        logger.info(f"Disposed saved session {session.id}")

    # Templates

    async def seed_templates(self) -> int:
        """Store each built-in template as a dashboard unless its id already exists"""
        seeded = 0
        for key, template in DASHBOARD_TEMPLATES.items():
            dashboard_id = f"template-{key}"
            if await self.repository.exists(dashboard_id):
                continue

            now = self.clock()
            layout = default_layout()
            dashboard = SavedDashboard(
                id=dashboard_id,
                name=template["name"],
                description=template["description"],
                owner_id=TEMPLATE_OWNER_ID,
                visibility=DashboardVisibility.PUBLIC,
                is_template=True,
                created_at=now,
                updated_at=now,
                widgets=create_template_widgets(key, breakpoint=layout.base_breakpoint, now=now),
                layout=layout,
                default_time_range=TimeRange.LAST_30_DAYS,
                tags=["template", key],
                version=1,
            )
            await self.repository.save(dashboard)
            seeded += 1

        if seeded:
            logger.info(f"Seeded {seeded} dashboard templates")
        return seeded

    async def health_check(self) -> dict:
        return {
            "storage": "healthy" if await self.store.health_check() else "unhealthy",
            "analytics_service": "healthy" if await self.fetcher.health_check() else "unhealthy",
        }

    async def close(self) -> None:
        for session_id in self.sessions.ids():
            self.sessions.remove(session_id)
        await self.store.close()


# Singleton instance
_service = None


def get_dashboard_service() -> DashboardService:
    """Get global dashboard service instance"""
    global _service
    if _service is None:
        _service = DashboardService(
            store=create_store(settings),
            fetcher=get_data_fetcher(),
            dashboards_key=settings.DASHBOARDS_KEY,
            deployed_key=settings.DEPLOYED_KEY,
            owner_id=settings.DEFAULT_OWNER_ID,
            save_delay=settings.SAVE_DELAY_SECONDS,
            enforce_version=settings.ENFORCE_VERSION_CHECK,
        )
    return _service
