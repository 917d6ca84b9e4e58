"""Single writer of the workspace ``ProjectState``.

Every mutation goes through a ``ProjectStore`` command. A command changes the
in-memory state synchronously, then persists the whole document and publishes
a ``StudioEvent`` so observers see partial progress while a stage runs.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from studio.core.errors import (
    InvalidTransitionError,
    RunInProgressError,
    SnapshotModeError,
    UnknownFileError,
    UnknownPluginError,
    UnknownSnapshotError,
)
from studio.core.event_bus import EventBus
from studio.core.persistence import StateStorage
from studio.core.state import (
    MILESTONE_LABELS,
    RUNNABLE_STATUSES,
    AgentStatus,
    DesignSystem,
    HistorySnapshot,
    NeuralPlugin,
    PluginHook,
    PluginMutation,
    ProjectState,
    Resources,
    ReviewComment,
    ReviewReport,
    can_transition,
    default_state,
    milestone_label,
)
from studio.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Fields a stage may set alongside a status transition.
_STAGE_FIELDS = frozenset(
    {"srs", "plan", "design_system", "file_system", "current_file", "active_review", "iteration_count"}
)


def restore_state(payload: Optional[Dict[str, Any]]) -> ProjectState:
    """Rebuild a state document, defaulting whatever is missing or invalid."""
    if not payload:
        return default_state()
    try:
        state = ProjectState.model_validate(payload)
    except ValidationError as exc:
        LOGGER.warning("Stored workspace failed validation (%d errors); salvaging fields", exc.error_count())
        state = _salvage(payload)

    if state.status not in RUNNABLE_STATUSES:
        # A run cannot survive a restart; never come back stuck mid-stage
        state.status = AgentStatus.IDLE
    if state.selected_history_id and state.find_snapshot(state.selected_history_id) is None:
        state.selected_history_id = None
    state.terminal_logs.append(f"> Workspace restored. Last saved: {state.last_saved or 'N/A'}")
    _reconcile_current_file(state)
    return state


def _salvage(payload: Dict[str, Any]) -> ProjectState:
    kept: Dict[str, Any] = {}
    for name, field in ProjectState.model_fields.items():
        alias = field.alias or name
        key = alias if alias in payload else name
        if key not in payload:
            continue
        try:
            ProjectState.model_validate({alias: payload[key]})
        except ValidationError:
            LOGGER.warning("Dropping invalid stored field '%s'", alias)
            continue
        kept[alias] = payload[key]
    return ProjectState.model_validate(kept)


def _reconcile_current_file(state: ProjectState) -> None:
    files = state.active_file_system
    if state.current_file is not None and state.current_file not in files:
        state.current_file = next(iter(files), None)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectStore:

    def __init__(
        self,
        storage: StateStorage,
        *,
        key: str,
        bus: Optional[EventBus] = None,
        state: Optional[ProjectState] = None,
    ) -> None:
        self._storage = storage
        self._key = key
        self._bus = bus or EventBus()
        self._state = state if state is not None else default_state()
        self._generation = 0
        self._revision = 0
        self._persist_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls, storage: StateStorage, *, key: str, bus: Optional[EventBus] = None
    ) -> "ProjectStore":
        await storage.open()
        try:
            payload = await storage.load(key)
        except Exception:
            LOGGER.exception("Failed to load workspace '%s'; starting fresh", key)
            payload = None
        state = restore_state(payload) if payload else default_state()
        LOGGER.info("Workspace '%s' opened (status=%s, files=%d)", key, state.status.value, len(state.file_system))
        return cls(storage, key=key, bus=bus, state=state)

    # ------------------------------------------------------------------ reads

    @property
    def state(self) -> ProjectState:
        """Deep copy of the live state; mutating it has no effect."""
        return self._state.model_copy(deep=True)

    @property
    def status(self) -> AgentStatus:
        return self._state.status

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def key(self) -> str:
        return self._key

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def revision(self) -> int:
        return self._revision

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def file_content(self, path: str) -> Optional[str]:
        return self._state.file_system.get(path)

    # Narrow reads for the pipeline and the ticker; ``state`` copies the whole
    # timeline and is meant for API responses.

    @property
    def resources(self) -> Resources:
        return self._state.resources.model_copy(deep=True)

    @property
    def iteration_count(self) -> int:
        return self._state.iteration_count

    @property
    def in_snapshot_mode(self) -> bool:
        return self._state.selected_history_id is not None

    def files(self) -> Dict[str, str]:
        return dict(self._state.file_system)

    def review_comments(self) -> List[ReviewComment]:
        review = self._state.active_review
        return [c.model_copy(deep=True) for c in review.comments] if review else []

    def find_plugin(self, plugin_id: str) -> Optional[NeuralPlugin]:
        plugin = self._state.find_plugin(plugin_id)
        return plugin.model_copy() if plugin is not None else None

    def enabled_plugins(self, hook: Optional[PluginHook] = None) -> List[NeuralPlugin]:
        return [
            p.model_copy()
            for p in self._state.installed_plugins
            if p.enabled and (hook is None or p.hook == hook)
        ]

    def working_state(self) -> ProjectState:
        """Deep copy of the live state without history or terminal logs."""
        return self._state.model_copy(update={"history": [], "terminal_logs": []}).model_copy(deep=True)

    def public_state(self) -> Dict[str, Any]:
        """Wire form of the live state with history reduced to summaries."""
        payload = self._state.to_wire()
        payload["history"] = [
            {"id": s.id, "label": s.label, "timestamp": s.timestamp, "status": s.status.value}
            for s in self._state.history
        ]
        payload["revision"] = self._revision
        return payload

    def view(self) -> Dict[str, Any]:
        """What the editor renders: the selected snapshot read-only, else live state."""
        snapshot = self._state.selected_snapshot
        if snapshot is None:
            return {
                "readOnly": False,
                "snapshotId": None,
                "label": "Live",
                "status": self._state.status.value,
                "fileSystem": dict(self._state.file_system),
                "designSystem": self._state.design_system.to_wire() if self._state.design_system else None,
                "terminalLogs": list(self._state.terminal_logs),
                "review": self._state.active_review.to_wire() if self._state.active_review else None,
                "currentFile": self._state.current_file,
            }
        wire = snapshot.to_wire()
        return {
            "readOnly": True,
            "snapshotId": snapshot.id,
            "label": snapshot.label,
            "status": wire["status"],
            "fileSystem": wire["fileSystem"],
            "designSystem": wire["designSystem"],
            "terminalLogs": wire["terminalLogs"],
            "review": wire["reviewReport"],
            "currentFile": self._state.current_file,
        }

    # --------------------------------------------------------------- internals

    async def _commit(
        self,
        event_type: str,
        msg: str = "",
        *,
        persist: bool = True,
        level: str = "info",
        agent: str = "system",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        _reconcile_current_file(self._state)
        self._revision += 1
        if persist:
            await self._persist()
        payload = {"revision": self._revision, "status": self._state.status.value}
        payload.update(data or {})
        await self._bus.emit(event_type, msg, agent=agent, level=level, data=payload)

    async def _persist(self) -> None:
        generation = self._generation
        document = self._state.to_wire()
        async with self._persist_lock:
            if generation != self._generation:
                # Captured before a reset or rollback; the newer state owns the key
                LOGGER.debug("Dropping stale save of workspace '%s'", self._key)
                return
            try:
                await self._storage.save(self._key, document)
            except Exception:
                # Storage is best effort; the in-memory state stays authoritative
                LOGGER.exception("Failed to persist workspace '%s'", self._key)

    def _capture(self, label: str) -> HistorySnapshot:
        state = self._state
        snapshot = HistorySnapshot(
            label=label,
            status=state.status,
            file_system=dict(state.file_system),
            design_system=state.design_system.model_copy(deep=True) if state.design_system else None,
            terminal_logs=list(state.terminal_logs),
            review_report=state.active_review.model_copy(deep=True) if state.active_review else None,
        )
        state.history.append(snapshot)
        LOGGER.info("Snapshot %s captured: %s", snapshot.id, label)
        return snapshot

    def _require_live(self, action: str) -> None:
        if self._state.selected_history_id is not None:
            raise SnapshotModeError(action)

    def _require_plugin(self, plugin_id: str) -> NeuralPlugin:
        plugin = self._state.find_plugin(plugin_id)
        if plugin is None:
            raise UnknownPluginError(plugin_id)
        return plugin

    # ----------------------------------------------------------- run lifecycle

    async def start_run(self, prompt: str) -> int:
        """Begin a new run from a runnable status and return its generation."""
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValueError("Prompt must not be empty")
        state = self._state
        if state.status not in RUNNABLE_STATUSES:
            raise RunInProgressError(state.status.value)

        self._generation += 1
        state.user_prompt = prompt
        state.srs = None
        state.plan = None
        state.design_system = None
        state.file_system = {}
        state.current_file = None
        state.active_review = None
        state.iteration_count = 0
        state.terminal_logs.append(f'> Starting workflow for: "{prompt}"')
        state.status = AgentStatus.MANAGING
        snapshot = self._capture(MILESTONE_LABELS[AgentStatus.MANAGING])
        LOGGER.info("Run %d started for prompt %r", self._generation, prompt[:80])
        await self._commit(
            "status",
            f"Run started: {prompt}",
            data={"generation": self._generation, "snapshotId": snapshot.id},
        )
        return self._generation

    async def transition(self, to: AgentStatus, *, log: Optional[str] = None, **changes: Any) -> None:
        """Move to ``to`` and apply stage output in one step.

        Entering a stage status appends a milestone snapshot taken after the
        changes are applied.
        """
        state = self._state
        if not can_transition(state.status, to):
            raise InvalidTransitionError(state.status.value, to.value)
        unknown = set(changes) - _STAGE_FIELDS
        if unknown:
            raise TypeError(f"transition() got unexpected fields: {sorted(unknown)}")

        previous = state.status
        for name, value in changes.items():
            setattr(state, name, value)
        if log:
            state.terminal_logs.append(log)
        state.status = to

        data: Dict[str, Any] = {"from": previous.value}
        label = milestone_label(previous, to)
        if label is not None:
            data["snapshotId"] = self._capture(label).id
        LOGGER.info("Status %s -> %s", previous.value, to.value)
        await self._commit("status", log or f"Status: {to.value}", data=data)

    async def fail(self, stage: str, error: BaseException) -> None:
        """Halt the current run; any stage status may enter ``error``."""
        state = self._state
        message = f"Error in {stage}: {error}"
        state.terminal_logs.append(message)
        if can_transition(state.status, AgentStatus.ERROR):
            previous = state.status
            state.status = AgentStatus.ERROR
            LOGGER.error("Run halted in %s (%s): %s", stage, previous.value, error)
        else:
            LOGGER.warning("Failure in %s reported while status=%s", stage, state.status.value)
        await self._commit("status", message, level="error", agent=stage.lower())

    async def log(self, msg: str, *, agent: str = "system", level: str = "info") -> None:
        self._state.terminal_logs.append(msg)
        await self._commit("log", msg, agent=agent, level=level)

    async def set_current_file(self, path: Optional[str]) -> None:
        if path is not None and path not in self._state.file_system:
            raise UnknownFileError(path)
        self._state.current_file = path
        await self._commit("state", data={"currentFile": path})

    async def write_file(self, path: str, content: str) -> None:
        self._state.file_system[path] = content
        await self._commit("state", data={"file": path, "bytes": len(content.encode("utf-8"))})

    async def apply_mutations(self, mutations: Iterable[PluginMutation], *, source: str) -> List[str]:
        """Merge plugin file mutations by path; later mutations win."""
        touched: List[str] = []
        for mutation in mutations:
            if not mutation.file:
                continue
            self._state.file_system[mutation.file] = mutation.content
            if mutation.file not in touched:
                touched.append(mutation.file)
        if touched:
            await self._commit("plugin", f"{source} mutated {len(touched)} file(s)", data={"files": touched})
        return touched

    async def append_review_comments(self, comments: Iterable[ReviewComment], *, source: str) -> int:
        comments = list(comments)
        if not comments:
            return 0
        if self._state.active_review is None:
            self._state.active_review = ReviewReport()
        self._state.active_review.comments.extend(c.model_copy(deep=True) for c in comments)
        await self._commit("plugin", f"{source} added {len(comments)} comment(s)", data={"comments": len(comments)})
        return len(comments)

    # ------------------------------------------------------------ user actions

    async def select_file(self, path: str) -> None:
        if path not in self._state.active_file_system:
            raise UnknownFileError(path)
        self._state.current_file = path
        await self._commit("state", data={"currentFile": path})

    async def edit_file(self, path: str, content: str) -> None:
        self._require_live("edit files")
        if path not in self._state.file_system:
            raise UnknownFileError(path)
        self._state.file_system[path] = content
        await self._commit("state", data={"file": path, "bytes": len(content.encode("utf-8"))})

    async def update_design(self, patch: Dict[str, Any]) -> DesignSystem:
        """Merge a partial token set into the live design system."""
        self._require_live("edit the theme")
        current = self._state.design_system or DesignSystem()
        merged = current.to_wire()
        for section, values in (patch or {}).items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        design = DesignSystem.model_validate(merged)
        self._state.design_system = design
        await self._commit("state", "Theme updated", data={"designSystem": design.to_wire()})
        return design.model_copy(deep=True)

    async def capture_snapshot(self, label: str) -> HistorySnapshot:
        snapshot = self._capture(label)
        await self._commit("snapshot", label, data={"snapshotId": snapshot.id})
        return snapshot

    async def select_history(self, snapshot_id: Optional[str]) -> None:
        if snapshot_id is not None and self._state.find_snapshot(snapshot_id) is None:
            raise UnknownSnapshotError(snapshot_id)
        self._state.selected_history_id = snapshot_id
        await self._commit("state", data={"selectedHistoryId": snapshot_id})

    async def rollback(self, snapshot_id: str) -> None:
        """Restore a snapshot into live state without touching the timeline."""
        snapshot = self._state.find_snapshot(snapshot_id)
        if snapshot is None:
            raise UnknownSnapshotError(snapshot_id)
        state = self._state
        # Results of a run still in flight must not land on the restored state
        self._generation += 1
        state.file_system = dict(snapshot.file_system)
        state.design_system = snapshot.design_system.model_copy(deep=True) if snapshot.design_system else None
        state.active_review = snapshot.review_report.model_copy(deep=True) if snapshot.review_report else None
        state.status = AgentStatus.READY
        state.selected_history_id = None
        message = f"> Rolled back to snapshot: {snapshot.label}"
        state.terminal_logs.append(message)
        LOGGER.info("Rolled back to snapshot %s (%s)", snapshot.id, snapshot.label)
        await self._commit("status", message, data={"snapshotId": snapshot.id})

    async def set_plugin_enabled(self, plugin_id: str, enabled: bool) -> NeuralPlugin:
        plugin = self._require_plugin(plugin_id)
        plugin.enabled = enabled
        await self._commit(
            "plugin",
            f"Plugin {plugin.name} {'enabled' if enabled else 'disabled'}",
            data={"pluginId": plugin.id, "enabled": enabled},
        )
        return plugin.model_copy()

    async def toggle_plugin(self, plugin_id: str) -> NeuralPlugin:
        plugin = self._require_plugin(plugin_id)
        return await self.set_plugin_enabled(plugin_id, not plugin.enabled)

    async def update_resources(self, resources: Resources) -> None:
        self._state.resources = resources
        # Cosmetic; not worth a storage write per tick
        await self._commit("resources", persist=False, data={"resources": resources.to_wire()})

    async def save(self) -> str:
        self._state.last_saved = _now()
        await self._commit("state", f"Workspace saved at {self._state.last_saved}")
        return self._state.last_saved

    async def reset(self) -> None:
        """Replace the state with defaults and clear persisted storage."""
        self._generation += 1
        self._state = default_state()
        async with self._persist_lock:
            try:
                await self._storage.delete(self._key)
            except Exception:
                LOGGER.exception("Failed to clear stored workspace '%s'", self._key)
        LOGGER.info("Workspace '%s' reset", self._key)
        await self._commit("reset", "Workspace reset", persist=False)
