"""
Unit tests for the editor session state machine
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from dashboard_service.errors import (
    DashboardSaveError,
    DashboardValidationError,
    EditorSessionNotFoundError,
    InvalidSessionStateError,
    VersionConflictError,
)
from dashboard_service.models import AddWidget, DashboardInput, WidgetDataBinding
from dashboard_service.services.aggregate import create_dashboard
from dashboard_service.services.editor_session import EditorSession, SessionManager, SessionState
from dashboard_service.widgets.registry import create_widget


def add_action(widget_type, title, source="traffic", field="sessions"):
    return {
        "action": "add_widget",
        "type": widget_type,
        "title": title,
        "dataBinding": {"source": source, "field": field},
    }


def by_title(session, title):
    return next(w for w in session.draft.widgets if w.title == title)


@pytest.fixture
def make_session(repository, clock, id_generator, sleep):
    async def _make(mode="create", dashboard_id=None, **kwargs):
        options = {"clock": clock, "id_generator": id_generator, "sleep": sleep, "save_delay": 0.5}
        options.update(kwargs)
        session = EditorSession(repository, mode=mode, dashboard_id=dashboard_id, owner_id="user-1", **options)
        await session.load()
        return session
    return _make


@pytest_asyncio.fixture
async def stored_dashboard(repository, clock, id_generator):
    widgets = [
        create_widget("metric-card", "Sessions", {"source": "traffic", "field": "sessions"}, widget_id="w1"),
        create_widget(
            "bar-chart", "Clicks", {"source": "seo", "field": "clicks"}, position={"y": 2}, widget_id="w2"
        ),
    ]
    dashboard = create_dashboard(DashboardInput(name="Existing", widgets=widgets), "user-1", clock, id_generator)
    return await repository.save(dashboard)


class TestLoading:
    """Test cases for opening sessions"""

    @pytest.mark.asyncio
    async def test_create_mode_starts_with_empty_draft(self, make_session):
        session = await make_session()

        assert session.state == SessionState.READY
        assert session.draft.name == "Untitled Dashboard"
        assert session.draft.widgets == []
        assert session.has_unsaved_changes is False
        assert session.loaded_version is None

    @pytest.mark.asyncio
    async def test_edit_mode_loads_dashboard(self, make_session, stored_dashboard):
        session = await make_session("edit", stored_dashboard.id)

        assert session.state == SessionState.READY
        assert session.draft.name == "Existing"
        assert [w.id for w in session.draft.widgets] == ["w1", "w2"]
        assert session.loaded_version == 1

    @pytest.mark.asyncio
    async def test_edit_mode_missing_dashboard(self, make_session):
        session = await make_session("edit", "dashboard-404")

        assert session.state == SessionState.NOT_FOUND
        with pytest.raises(InvalidSessionStateError):
            session.mutate({"action": "clear_widgets"})

    def test_edit_mode_requires_dashboard_id(self, repository):
        with pytest.raises(DashboardValidationError):
            EditorSession(repository, mode="edit")

    @pytest.mark.asyncio
    async def test_load_only_once(self, make_session):
        session = await make_session()
        with pytest.raises(InvalidSessionStateError):
            await session.load()

    @pytest.mark.asyncio
    async def test_snapshot(self, make_session, stored_dashboard):
        session = await make_session("edit", stored_dashboard.id)
        snapshot = session.snapshot().model_dump(by_alias=True, mode="json")

        assert snapshot["state"] == "ready"
        assert snapshot["dashboardId"] == stored_dashboard.id
        assert snapshot["loadedVersion"] == 1
        assert snapshot["hasUnsavedChanges"] is False
        assert len(snapshot["draft"]["widgets"]) == 2


class TestMutations:
    """Test cases for editor actions"""

    @pytest.mark.asyncio
    async def test_add_widgets_stack_below(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        session.mutate(AddWidget(type="bar-chart", title="Clicks", data_binding=WidgetDataBinding(source="seo", field="clicks")))

        metric = by_title(session, "Sessions").position["lg"]
        bar = by_title(session, "Clicks").position["lg"]
        assert (metric.x, metric.y, metric.w, metric.h) == (0, 0, 3, 2)
        assert (bar.x, bar.y, bar.w, bar.h) == (0, 2, 6, 4)
        assert session.has_unsaved_changes is True

    @pytest.mark.asyncio
    async def test_add_unknown_type_rejected(self, make_session):
        session = await make_session()
        with pytest.raises(DashboardValidationError):
            session.mutate(add_action("hologram", "Nope"))
        assert session.draft.widgets == []
        assert session.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_malformed_action_rejected(self, make_session):
        session = await make_session()
        with pytest.raises(DashboardValidationError):
            session.mutate({"action": "explode"})
        with pytest.raises(DashboardValidationError):
            session.mutate(add_action("bar-chart", "Rain", source="weather"))

    @pytest.mark.asyncio
    async def test_remove_compacts_remaining(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        session.mutate(add_action("bar-chart", "Clicks"))
        session.mutate(add_action("line-chart", "Trend"))

        session.mutate({"action": "remove_widget", "widgetId": by_title(session, "Sessions").id})

        assert [w.title for w in session.draft.widgets] == ["Clicks", "Trend"]
        assert by_title(session, "Clicks").position["lg"].y == 0
        assert by_title(session, "Trend").position["lg"].y == 4

    @pytest.mark.asyncio
    async def test_unknown_widget_id_rejected(self, make_session):
        session = await make_session()
        with pytest.raises(DashboardValidationError):
            session.mutate({"action": "remove_widget", "widgetId": "missing"})

    @pytest.mark.asyncio
    async def test_move_keeps_moved_widget_in_place(self, make_session):
        session = await make_session()
        session.mutate(add_action("bar-chart", "Clicks"))
        session.mutate(add_action("line-chart", "Trend"))

        session.mutate({"action": "move_widget", "widgetId": by_title(session, "Trend").id, "x": 6, "y": 0})

        trend = by_title(session, "Trend").position["lg"]
        assert (trend.x, trend.y) == (6, 0)
        assert by_title(session, "Clicks").position["lg"].y == 0

    @pytest.mark.asyncio
    async def test_move_clamps_x_into_grid(self, make_session):
        session = await make_session()
        session.mutate(add_action("bar-chart", "Clicks"))
        session.mutate({"action": "move_widget", "widgetId": by_title(session, "Clicks").id, "x": 10, "y": 0})

        position = by_title(session, "Clicks").position["lg"]
        assert position.x + position.w <= 12
        assert position.x == 6

    @pytest.mark.asyncio
    async def test_move_at_other_breakpoint(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        widget_id = by_title(session, "Sessions").id

        session.mutate({"action": "move_widget", "widgetId": widget_id, "x": 2, "y": 0, "breakpoint": "sm"})

        widget = by_title(session, "Sessions")
        assert widget.position["sm"].x == 2
        assert widget.position["lg"].x == 0

        with pytest.raises(DashboardValidationError):
            session.mutate({"action": "move_widget", "widgetId": widget_id, "x": 0, "y": 0, "breakpoint": "tv"})

    @pytest.mark.asyncio
    async def test_resize_honours_constraints(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        widget_id = by_title(session, "Sessions").id

        session.mutate({"action": "resize_widget", "widgetId": widget_id, "w": 1, "h": 1})
        position = by_title(session, "Sessions").position["lg"]
        assert (position.w, position.h) == (2, 2)

        session.mutate({"action": "resize_widget", "widgetId": widget_id, "w": 20, "h": 3})
        position = by_title(session, "Sessions").position["lg"]
        assert (position.w, position.h) == (12, 3)

    @pytest.mark.asyncio
    async def test_reconfigure(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        widget = by_title(session, "Sessions")

        config = widget.config.model_dump(by_alias=True)
        config["dataBinding"]["field"] = "users"
        session.mutate({
            "action": "reconfigure_widget",
            "widgetId": widget.id,
            "title": "Users",
            "visible": False,
            "config": config,
        })

        updated = session.draft.widgets[0]
        assert updated.title == "Users"
        assert updated.visible is False
        assert updated.config.data_binding.field == "users"

    @pytest.mark.asyncio
    async def test_reconfigure_rejects_unknown_type(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        widget = session.draft.widgets[0]

        config = widget.config.model_dump(by_alias=True)
        config["type"] = "hologram"
        with pytest.raises(DashboardValidationError) as exc_info:
            session.mutate({"action": "reconfigure_widget", "widgetId": widget.id, "config": config})

        assert "Unknown widget type: hologram" in exc_info.value.errors
        assert session.draft.widgets[0].config.type == "metric-card"

    @pytest.mark.asyncio
    async def test_duplicate(self, make_session):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        source = session.draft.widgets[0]

        session.mutate({"action": "duplicate_widget", "widgetId": source.id})

        copy = by_title(session, "Sessions (copy)")
        assert copy.id != source.id
        assert copy.config == source.config
        assert (copy.position["lg"].x, copy.position["lg"].y) == (0, 2)

    @pytest.mark.asyncio
    async def test_update_metadata(self, make_session):
        session = await make_session()
        session.mutate({"action": "update_metadata", "name": "Growth", "tags": ["q1"], "defaultTimeRange": "7d"})

        assert session.draft.name == "Growth"
        assert session.draft.tags == ["q1"]
        assert session.draft.default_time_range.value == "7d"

    @pytest.mark.asyncio
    async def test_load_template_and_clear(self, make_session):
        session = await make_session()
        session.mutate({"action": "load_template", "templateKey": "overview"})

        assert session.draft.name == "Overview Dashboard"
        assert len(session.draft.widgets) == 6

        session.mutate({"action": "clear_widgets"})
        assert session.draft.widgets == []

        with pytest.raises(DashboardValidationError):
            session.mutate({"action": "load_template", "templateKey": "finance"})


class TestSaving:
    """Test cases for the save lifecycle"""

    @pytest.mark.asyncio
    async def test_create_and_save(self, make_session, repository, sleep):
        session = await make_session()
        session.mutate({"action": "update_metadata", "name": "Growth"})
        session.mutate(add_action("metric-card", "Sessions"))

        stored = await session.save()

        sleep.assert_awaited_once_with(0.5)
        assert session.state == SessionState.SAVED
        assert session.saved_dashboard == stored
        assert session.has_unsaved_changes is False
        assert stored.version == 1
        assert stored.owner_id == "user-1"
        assert stored.widget_count == 1
        assert await repository.get(stored.id) == stored

    @pytest.mark.asyncio
    async def test_saved_is_terminal(self, make_session):
        session = await make_session()
        await session.save()

        with pytest.raises(InvalidSessionStateError):
            session.mutate({"action": "clear_widgets"})
        with pytest.raises(InvalidSessionStateError):
            await session.save()

    @pytest.mark.asyncio
    async def test_blank_name_rejected_without_state_change(self, make_session, sleep, repository):
        session = await make_session()
        session.mutate({"action": "update_metadata", "name": "   "})

        with pytest.raises(DashboardValidationError):
            await session.save()

        assert session.state == SessionState.READY
        sleep.assert_not_awaited()
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_edit_save_bumps_version(self, make_session, stored_dashboard):
        session = await make_session("edit", stored_dashboard.id)
        session.mutate({"action": "update_metadata", "name": "Renamed"})

        stored = await session.save()

        assert stored.id == stored_dashboard.id
        assert stored.version == 2
        assert stored.created_at == stored_dashboard.created_at
        assert stored.updated_at > stored_dashboard.updated_at

    @pytest.mark.asyncio
    async def test_failed_save_keeps_draft_and_can_retry(self, make_session, store, repository):
        session = await make_session()
        session.mutate(add_action("metric-card", "Sessions"))
        session.mutate(add_action("bar-chart", "Clicks"))

        store.fail_writes = True
        with pytest.raises(DashboardSaveError):
            await session.save()

        assert session.state == SessionState.FAILED
        assert session.error_reason == "storage_error"
        assert "quota exceeded" in session.last_error
        assert len(session.draft.widgets) == 2
        assert session.has_unsaved_changes is True

        store.fail_writes = False
        stored = await session.save()

        assert session.state == SessionState.SAVED
        assert session.last_error is None
        assert stored.widget_count == 2
        assert len(await repository.list()) == 1

    @pytest.mark.asyncio
    async def test_failed_session_accepts_edits(self, make_session, store):
        session = await make_session()
        store.fail_writes = True
        with pytest.raises(DashboardSaveError):
            await session.save()

        session.mutate({"action": "update_metadata", "name": "Retry"})
        assert session.state == SessionState.READY

    @pytest.mark.asyncio
    async def test_read_failure_during_save_keeps_other_dashboards(
        self, make_session, stored_dashboard, store, repository
    ):
        session = await make_session()
        session.mutate({"action": "update_metadata", "name": "New one"})

        store.fail_reads = True
        with pytest.raises(DashboardSaveError):
            await session.save()

        assert session.state == SessionState.FAILED
        assert session.error_reason == "storage_error"

        store.fail_reads = False
        stored = await session.save()
        assert [d.id for d in await repository.list()] == [stored_dashboard.id, stored.id]

    @pytest.mark.asyncio
    async def test_unexpected_error_leaves_session_retryable(self, make_session, repository):
        sleep = AsyncMock(side_effect=[RuntimeError("timer broke"), None])
        session = await make_session(sleep=sleep)
        session.mutate(add_action("metric-card", "Sessions"))

        with pytest.raises(RuntimeError):
            await session.save()

        assert session.state == SessionState.FAILED
        assert session.error_reason == "unexpected_error"
        assert session.last_error == "timer broke"
        assert len(session.draft.widgets) == 1

        stored = await session.save()
        assert session.state == SessionState.SAVED
        assert await repository.get(stored.id) is not None

    @pytest.mark.asyncio
    async def test_cancelled_save_restores_ready(self, make_session, repository):
        session = await make_session(sleep=AsyncMock(side_effect=asyncio.CancelledError()))
        session.mutate({"action": "update_metadata", "name": "Halfway"})

        with pytest.raises(asyncio.CancelledError):
            await session.save()

        assert session.state == SessionState.READY
        assert session.has_unsaved_changes is True
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_on_saved_called_once_saved(self, make_session, store):
        on_saved = MagicMock()
        session = await make_session(on_saved=on_saved)

        store.fail_writes = True
        with pytest.raises(DashboardSaveError):
            await session.save()
        on_saved.assert_not_called()

        store.fail_writes = False
        await session.save()
        on_saved.assert_called_once_with(session)

    @pytest.mark.asyncio
    async def test_concurrent_edit_conflict(self, make_session, stored_dashboard, repository):
        first = await make_session("edit", stored_dashboard.id)
        second = await make_session("edit", stored_dashboard.id)

        first.mutate({"action": "update_metadata", "name": "From first"})
        await first.save()

        second.mutate({"action": "update_metadata", "name": "From second"})
        with pytest.raises(VersionConflictError):
            await second.save()

        assert second.state == SessionState.FAILED
        assert second.error_reason == "conflict"
        assert (await repository.get(stored_dashboard.id)).name == "From first"

    @pytest.mark.asyncio
    async def test_save_as_creates_new_dashboard(self, make_session, stored_dashboard, repository):
        session = await make_session("edit", stored_dashboard.id)
        copy = await session.save_as("Existing copy")

        assert copy.id != stored_dashboard.id
        assert copy.version == 1
        assert copy.name == "Existing copy"
        assert (await repository.get(stored_dashboard.id)).version == 1
        assert len(await repository.list()) == 2

    @pytest.mark.asyncio
    async def test_save_as_requires_name(self, make_session):
        session = await make_session()
        with pytest.raises(DashboardValidationError):
            await session.save_as("  ")
        assert session.state == SessionState.READY

    @pytest.mark.asyncio
    async def test_close_during_save_discards_result(self, make_session, repository):
        holder = {}

        async def closing_sleep(delay):
            holder["session"].close()

        session = await make_session(sleep=closing_sleep)
        holder["session"] = session

        stored = await session.save()

        assert stored is not None
        assert await repository.get(stored.id) is not None
        assert session.state == SessionState.SAVING
        assert session.saved_dashboard is None

    @pytest.mark.asyncio
    async def test_close_during_failed_save_is_silent(self, make_session, store):
        holder = {}

        async def closing_sleep(delay):
            holder["session"].close()

        session = await make_session(sleep=closing_sleep)
        holder["session"] = session
        store.fail_writes = True

        assert await session.save() is None
        assert session.last_error is None


class TestSessionManager:
    """Test cases for SessionManager"""

    @pytest.mark.asyncio
    async def test_add_get_remove(self, make_session):
        manager = SessionManager()
        session = manager.add(await make_session())

        assert manager.get(session.id) is session
        assert len(manager) == 1

        manager.remove(session.id)
        assert session.closed is True
        assert len(manager) == 0
        with pytest.raises(EditorSessionNotFoundError):
            manager.get(session.id)

    @pytest.mark.asyncio
    async def test_discard(self, make_session):
        manager = SessionManager()
        session = manager.add(await make_session())

        assert manager.discard(session.id) is session
        assert session.closed is True
        assert manager.discard(session.id) is None
        assert manager.ids() == []
