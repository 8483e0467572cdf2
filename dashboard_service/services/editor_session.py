"""
Editor session

Holds an in-memory draft of a dashboard and walks it through the
Loading -> Ready -> Saving -> Saved/Failed state machine. Edit actions are
synchronous mutations of the draft; only load and save touch storage.
"""
import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from ..errors import (
    DashboardSaveError,
    DashboardValidationError,
    InvalidSessionStateError,
    EditorSessionNotFoundError,
)
from ..layout.engine import LayoutEngine, clamp_size, resolve_position
from ..models import (
    AddWidget,
    ClearWidgets,
    DashboardDraft,
    DashboardInput,
    DuplicateWidget,
    EditorAction,
    LoadTemplate,
    MoveWidget,
    ReconfigureWidget,
    RemoveWidget,
    ResizeWidget,
    SavedDashboard,
    SessionSnapshot,
    UpdateMetadata,
    Widget,
)
from ..widgets.registry import (
    DASHBOARD_TEMPLATES,
    create_template_widgets,
    create_widget,
    generate_widget_id,
    validate_widget_config,
)
from .aggregate import Clock, IdGenerator, create_dashboard, generate_dashboard_id, update_dashboard, utc_now
from .persistence import DashboardRepository

logger = logging.getLogger(__name__)

_action_adapter = TypeAdapter(EditorAction)

Sleep = Callable[[float], Awaitable[Any]]


class SessionState(str, Enum):
    """Editor session lifecycle"""
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class SessionMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


# Mutations are accepted while the draft is live; Failed keeps the draft for retry
EDITABLE_STATES = {SessionState.READY, SessionState.FAILED}


def _validation_messages(error: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" if err["loc"] else err["msg"]
        for err in error.errors()
    ]


def draft_from_dashboard(dashboard: SavedDashboard) -> DashboardDraft:
    return DashboardDraft(**dashboard.model_dump(include=set(DashboardDraft.model_fields), exclude_none=True))


def draft_to_input(draft: DashboardDraft, name: Optional[str] = None) -> DashboardInput:
    """
    Validate a draft into DashboardInput.

    Raises:
        DashboardValidationError: Blank or too long name, duplicate widget ids
    """
    data = draft.model_dump(exclude_none=True)
    if name is not None:
        data["name"] = name
    try:
        return DashboardInput(**data)
    except ValidationError as e:
        raise DashboardValidationError(_validation_messages(e)) from e


class EditorSession:
    """
    One editing session over a new or existing dashboard.

    Args:
        repository: Persistence gateway
        mode: create or edit
        dashboard_id: Dashboard to edit (edit mode only)
        owner_id: Owner recorded on dashboards this session creates
        clock: Timestamp source
        id_generator: Dashboard id source
        sleep: Awaitable delay, injected so tests need not wait
        save_delay: Simulated save latency in seconds
        on_saved: Called once the session reaches Saved, used to dispose it
    """

    def __init__(
        self,
        repository: DashboardRepository,
        mode: SessionMode = SessionMode.CREATE,
        dashboard_id: Optional[str] = None,
        owner_id: str = "demo-user",
        clock: Clock = utc_now,
        id_generator: IdGenerator = generate_dashboard_id,
        sleep: Sleep = asyncio.sleep,
        save_delay: float = 0.0,
        session_id: Optional[str] = None,
        on_saved: Optional[Callable[["EditorSession"], None]] = None,
    ):
        mode = SessionMode(mode)
        if mode == SessionMode.EDIT and not dashboard_id:
            raise DashboardValidationError(["dashboard_id is required to edit a dashboard"])

        self.id = session_id or f"session-{uuid.uuid4().hex[:12]}"
        self.repository = repository
        self.mode = mode
        self.dashboard_id = dashboard_id
        self.owner_id = owner_id
        self.clock = clock
        self.id_generator = id_generator
        self.sleep = sleep
        self.save_delay = save_delay
        self.on_saved = on_saved

        self.state = SessionState.LOADING
        self.draft: Optional[DashboardDraft] = None
        self.original: Optional[SavedDashboard] = None
        self.saved_dashboard: Optional[SavedDashboard] = None
        self.last_error: Optional[str] = None
        self.error_reason: Optional[str] = None
        self.closed = False
        self._dirty = False

    # Lifecycle

    async def load(self) -> SessionState:
        """Fetch the target dashboard (edit) or start an empty draft (create)"""
        if self.state != SessionState.LOADING:
            raise InvalidSessionStateError("load", self.state.value)

        if self.mode == SessionMode.CREATE:
            self.draft = DashboardDraft()
            self.state = SessionState.READY
            logger.info(f"Session {self.id}: new dashboard draft ready")
            return self.state

        dashboard = await self.repository.get(self.dashboard_id)
        if self.closed:
            return self.state
        if dashboard is None:
            self.state = SessionState.NOT_FOUND
            logger.warning(f"Session {self.id}: dashboard {self.dashboard_id} not found")
            return self.state

        self.original = dashboard
        self.draft = draft_from_dashboard(dashboard)
        self.state = SessionState.READY
        logger.info(f"Session {self.id}: editing {dashboard.id} (v{dashboard.version})")
        return self.state

    def close(self) -> None:
        """Dispose the session; an in-flight save completes but its result is discarded"""
        self.closed = True
        logger.info(f"Session {self.id} closed in state {self.state.value}")

    @property
    def has_unsaved_changes(self) -> bool:
        return self._dirty

    @property
    def loaded_version(self) -> Optional[int]:
        return self.original.version if self.original else None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            mode=self.mode.value,
            state=self.state.value,
            dashboard_id=self.original.id if self.original else self.dashboard_id,
            loaded_version=self.loaded_version,
            draft=self.draft,
            has_unsaved_changes=self.has_unsaved_changes,
            last_error=self.last_error,
            error_reason=self.error_reason,
            saved_dashboard=self.saved_dashboard,
        )

    def _require_editable(self, operation: str) -> None:
        if self.closed:
            raise InvalidSessionStateError(operation, "closed")
        if self.state not in EDITABLE_STATES:
            raise InvalidSessionStateError(operation, self.state.value)

    # Mutations

    def mutate(self, action: Any) -> DashboardDraft:
        """
        Apply an editor action to the draft.

        Args:
            action: An EditorAction model or its JSON form

        Returns:
            The updated draft

        Raises:
            InvalidSessionStateError: Session is not Ready or Failed
            DashboardValidationError: Malformed action or unknown widget id
        """
        self._require_editable("edit")

        if isinstance(action, dict):
            try:
                action = _action_adapter.validate_python(action)
            except ValidationError as e:
                raise DashboardValidationError(_validation_messages(e)) from e

        handlers = {
            AddWidget: self._add_widget,
            RemoveWidget: self._remove_widget,
            MoveWidget: self._move_widget,
            ResizeWidget: self._resize_widget,
            ReconfigureWidget: self._reconfigure_widget,
            DuplicateWidget: self._duplicate_widget,
            UpdateMetadata: self._update_metadata,
            LoadTemplate: self._load_template,
            ClearWidgets: self._clear_widgets,
        }
        handler = handlers.get(type(action))
        if handler is None:
            raise DashboardValidationError([f"Unsupported editor action: {type(action).__name__}"])

        try:
            draft = handler(action)
        except ValidationError as e:
            raise DashboardValidationError(_validation_messages(e)) from e

        self.draft = draft
        self._dirty = True
        if self.state == SessionState.FAILED:
            self.state = SessionState.READY
        logger.debug(f"Session {self.id}: applied {action.action}")
        return draft

    @property
    def _engine(self) -> LayoutEngine:
        return LayoutEngine(self.draft.layout)

    def _breakpoint(self, breakpoint: Optional[str]) -> str:
        layout = self.draft.layout
        if breakpoint is None:
            return layout.base_breakpoint
        if breakpoint not in layout.breakpoints:
            raise DashboardValidationError([f"Unknown breakpoint: {breakpoint}"])
        return breakpoint

    def _find(self, widget_id: str) -> Widget:
        for widget in self.draft.widgets:
            if widget.id == widget_id:
                return widget
        raise DashboardValidationError([f"Widget {widget_id} not found in draft"])

    def _replace(self, widget: Widget) -> List[Widget]:
        return [widget if w.id == widget.id else w for w in self.draft.widgets]

    def _with_widgets(self, widgets: List[Widget], **updates) -> DashboardDraft:
        return self.draft.model_copy(update={"widgets": widgets, **updates})

    def _add_widget(self, action: AddWidget) -> DashboardDraft:
        breakpoint = self.draft.layout.base_breakpoint
        engine = self._engine
        if action.position is not None:
            position = action.position.model_dump(include={"x", "y", "w", "h"})
        else:
            position = engine.next_position(self.draft.widgets, action.type, breakpoint).model_dump(
                include={"x", "y", "w", "h"}
            )

        widget = create_widget(
            action.type,
            action.title,
            action.data_binding,
            position=position,
            breakpoint=breakpoint,
            now=self.clock(),
        )
        widgets = engine.apply(self.draft.widgets + [widget], breakpoint, pinned=widget.id)
        return self._with_widgets(widgets)

    def _remove_widget(self, action: RemoveWidget) -> DashboardDraft:
        self._find(action.widget_id)
        remaining = [w for w in self.draft.widgets if w.id != action.widget_id]

        engine = self._engine
        layout = self.draft.layout
        stored = {bp for w in remaining for bp in w.position if bp in layout.breakpoints}
        for breakpoint in layout.ordered_breakpoints():
            if breakpoint in stored:
                remaining = engine.apply(remaining, breakpoint)
        return self._with_widgets(remaining)

    def _move_widget(self, action: MoveWidget) -> DashboardDraft:
        breakpoint = self._breakpoint(action.breakpoint)
        widget = self._find(action.widget_id)
        current = resolve_position(widget, self.draft.layout, breakpoint)
        columns = self.draft.layout.columns_for(breakpoint)

        moved = current.model_copy(update={"x": min(action.x, max(0, columns - current.w)), "y": action.y})
        widget = widget.model_copy(update={
            "position": {**widget.position, breakpoint: moved},
            "updated_at": self.clock(),
        })
        widgets = self._engine.apply(self._replace(widget), breakpoint, pinned=widget.id)
        return self._with_widgets(widgets)

    def _resize_widget(self, action: ResizeWidget) -> DashboardDraft:
        breakpoint = self._breakpoint(action.breakpoint)
        widget = self._find(action.widget_id)
        current = resolve_position(widget, self.draft.layout, breakpoint)
        resized = clamp_size(current, action.w, action.h, self.draft.layout.columns_for(breakpoint))

        widget = widget.model_copy(update={
            "position": {**widget.position, breakpoint: resized},
            "updated_at": self.clock(),
        })
        widgets = self._engine.apply(self._replace(widget), breakpoint, pinned=widget.id)
        return self._with_widgets(widgets)

    def _reconfigure_widget(self, action: ReconfigureWidget) -> DashboardDraft:
        widget = self._find(action.widget_id)
        updates: Dict[str, Any] = {"updated_at": self.clock()}

        if action.config is not None:
            errors = validate_widget_config(action.config)
            if errors:
                raise DashboardValidationError(errors)
            updates["config"] = action.config
        if action.title is not None:
            updates["title"] = action.title
        if action.description is not None:
            updates["description"] = action.description
        if action.visible is not None:
            updates["visible"] = action.visible

        return self._with_widgets(self._replace(widget.model_copy(update=updates)))

    def _duplicate_widget(self, action: DuplicateWidget) -> DashboardDraft:
        source = self._find(action.widget_id)
        breakpoint = self.draft.layout.base_breakpoint
        engine = self._engine

        below = engine.next_position(self.draft.widgets, source.config.type, breakpoint)
        current = resolve_position(source, self.draft.layout, breakpoint)
        now = self.clock()
        duplicate = source.model_copy(deep=True, update={
            "id": generate_widget_id(),
            "title": f"{source.title} (copy)",
            "position": {breakpoint: current.model_copy(update={"x": 0, "y": below.y})},
            "created_at": now,
            "updated_at": now,
        })
        widgets = engine.apply(self.draft.widgets + [duplicate], breakpoint)
        return self._with_widgets(widgets)

    def _update_metadata(self, action: UpdateMetadata) -> DashboardDraft:
        updates = action.model_dump(exclude={"action"}, exclude_none=True)
        if "layout" in updates:
            updates["layout"] = action.layout
        draft = self.draft.model_copy(update=updates)

        if action.layout is not None:
            engine = LayoutEngine(draft.layout)
            draft = draft.model_copy(update={
                "widgets": engine.apply(draft.widgets, draft.layout.base_breakpoint)
            })
        return draft

    def _load_template(self, action: LoadTemplate) -> DashboardDraft:
        template = DASHBOARD_TEMPLATES.get(action.template_key)
        if template is None:
            raise DashboardValidationError([f"Unknown dashboard template: {action.template_key}"])

        breakpoint = self.draft.layout.base_breakpoint
        widgets = create_template_widgets(action.template_key, breakpoint=breakpoint, now=self.clock())
        return self._with_widgets(
            self._engine.apply(widgets, breakpoint),
            name=template["name"],
            description=template["description"],
        )

    def _clear_widgets(self, action: ClearWidgets) -> DashboardDraft:
        return self._with_widgets([])

    # Saving

    async def save(self, name: Optional[str] = None) -> Optional[SavedDashboard]:
        """
        Persist the draft.

        Creates a dashboard in create mode; in edit mode updates the loaded
        dashboard with its version as the optimistic-lock token.

        Returns:
            The stored dashboard, or None if the session was closed mid-save
            and the save failed

        Raises:
            DashboardValidationError: Draft is not saveable; state is unchanged
            DashboardSaveError: Write failed; the session is Failed, draft kept

        Any other failure also leaves the session Failed (or Ready when the
        save is cancelled) so the draft can be saved again.
        """
        return await self._save(name, as_new=False)

    async def save_as(self, name: str) -> Optional[SavedDashboard]:
        """Persist the draft as a brand new dashboard under a new name"""
        if not name or not name.strip():
            raise DashboardValidationError(["Please enter a name for the new dashboard"])
        return await self._save(name, as_new=True)

    async def _save(self, name: Optional[str], as_new: bool) -> Optional[SavedDashboard]:
        self._require_editable("save")
        data = draft_to_input(self.draft, name)

        self.state = SessionState.SAVING
        self.last_error = None
        self.error_reason = None
        logger.info(f"Session {self.id}: saving{' as new' if as_new else ''}")

        try:
            await self.sleep(self.save_delay)
            if as_new or self.original is None:
                dashboard = create_dashboard(data, self.owner_id, self.clock, self.id_generator)
                expected_version = None
            else:
                dashboard = update_dashboard(self.original, data, self.clock)
                expected_version = self.original.version
            stored = await self.repository.save(dashboard, expected_version=expected_version)
        except DashboardSaveError as e:
            if self.closed:
                logger.info(f"Session {self.id}: save failed after close, discarding ({e})")
                return None
            self.state = SessionState.FAILED
            self.last_error = str(e)
            self.error_reason = e.reason
            logger.warning(f"Session {self.id}: save failed ({e.reason}): {e}")
            raise
        except asyncio.CancelledError:
            if not self.closed:
                self.state = SessionState.READY
                logger.warning(f"Session {self.id}: save cancelled, draft kept")
            raise
        except Exception as e:
            if not self.closed:
                self.state = SessionState.FAILED
                self.last_error = str(e)
                self.error_reason = "unexpected_error"
                logger.exception(f"Session {self.id}: save failed unexpectedly: {e}")
            raise

        if self.closed:
            logger.info(f"Session {self.id}: saved {stored.id} after close, result discarded")
            return stored

        self.original = stored
        self.saved_dashboard = stored
        self.draft = draft_from_dashboard(stored)
        self._dirty = False
        self.state = SessionState.SAVED
        logger.info(f"✅ Session {self.id}: saved {stored.id} (v{stored.version})")
        if self.on_saved is not None:
            self.on_saved(self)
        return stored


class SessionManager:
    """Open editor sessions keyed by session id"""

    def __init__(self):
        self._sessions: Dict[str, EditorSession] = {}

    def add(self, session: EditorSession) -> EditorSession:
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> EditorSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise EditorSessionNotFoundError(session_id)
        return session

    def remove(self, session_id: str) -> EditorSession:
        session = self.get(session_id)
        session.close()
        del self._sessions[session_id]
        return session

    def discard(self, session_id: str) -> Optional[EditorSession]:
        """Drop a session if it is still registered"""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
        return session

    def ids(self) -> List[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
