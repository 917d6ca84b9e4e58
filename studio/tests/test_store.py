import asyncio

import pytest

from studio.core.errors import (
    InvalidTransitionError,
    RunInProgressError,
    SnapshotModeError,
    UnknownFileError,
    UnknownSnapshotError,
)
from studio.core.event_bus import EventBus
from studio.core.persistence import MemoryStateStorage
from studio.core.state import WELCOME_LOG, AgentStatus, DesignSystem, Plan
from studio.core.store import ProjectStore, restore_state


def _store():
    storage = MemoryStateStorage()
    return ProjectStore(storage, key="test", bus=EventBus()), storage


async def _scaffold(store):
    """Drive a store by hand up to the coding stage."""
    await store.start_run("todo app")
    await store.transition(AgentStatus.PLANNING, srs="## Overview")
    await store.transition(AgentStatus.DESIGNING, plan=Plan(files=["src/App.tsx", "src/lib/mockData.ts"]))
    await store.transition(AgentStatus.ARCHITECTING, design_system=DesignSystem())
    await store.transition(
        AgentStatus.CODING,
        file_system={"src/App.tsx": "// a", "src/lib/mockData.ts": "// b"},
        current_file="src/App.tsx",
    )


def test_default_state():
    store, _ = _store()
    state = store.state
    assert state.status == AgentStatus.IDLE
    assert state.file_system == {}
    assert state.history == []
    assert state.terminal_logs == [WELCOME_LOG]
    assert [p.id for p in state.installed_plugins] == [
        "a11y-auditor",
        "security-scanner",
        "perf-optimizer",
        "docs-writer",
    ]


def test_start_run_resets_run_fields_and_snapshots():
    async def inner():
        store, storage = _store()
        generation = await store.start_run("  todo app  ")
        state = store.state
        assert generation == 1
        assert state.status == AgentStatus.MANAGING
        assert state.user_prompt == "todo app"
        assert state.terminal_logs[-1] == '> Starting workflow for: "todo app"'
        assert [s.label for s in state.history] == ["Run started"]
        assert "test" in storage

        with pytest.raises(RunInProgressError):
            await store.start_run("another")

    asyncio.run(inner())


def test_start_run_rejects_empty_prompt():
    async def inner():
        store, _ = _store()
        with pytest.raises(ValueError):
            await store.start_run("   ")
        assert store.status == AgentStatus.IDLE

    asyncio.run(inner())


def test_invalid_transition_is_rejected_without_changes():
    async def inner():
        store, _ = _store()
        with pytest.raises(InvalidTransitionError):
            await store.transition(AgentStatus.CODING)
        assert store.status == AgentStatus.IDLE
        assert store.state.history == []

        await store.start_run("todo app")
        with pytest.raises(InvalidTransitionError):
            await store.transition(AgentStatus.READY, srs="skipped")
        assert store.status == AgentStatus.MANAGING
        assert store.state.srs is None

    asyncio.run(inner())


def test_transition_rejects_unknown_fields():
    async def inner():
        store, _ = _store()
        await store.start_run("todo app")
        with pytest.raises(TypeError):
            await store.transition(AgentStatus.PLANNING, history=[])

    asyncio.run(inner())


def test_snapshot_is_independent_of_live_state():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        snapshot = await store.capture_snapshot("Before edit")

        await store.write_file("src/App.tsx", "// rewritten")
        await store.log("more output")
        await store.update_design({"colors": {"primary": "#000000"}})

        stored = store.state.find_snapshot(snapshot.id)
        assert stored.file_system["src/App.tsx"] == "// a"
        assert "more output" not in stored.terminal_logs
        assert stored.design_system.colors.primary != "#000000"

    asyncio.run(inner())


def test_state_property_returns_a_copy():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        copy = store.state
        copy.file_system["src/App.tsx"] = "mutated"
        assert store.file_content("src/App.tsx") == "// a"

    asyncio.run(inner())


def test_rollback_is_idempotent_and_keeps_history():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        target = store.state.history[-1]
        await store.write_file("src/App.tsx", "// later work")
        await store.capture_snapshot("Later")
        history_len = len(store.state.history)

        await store.rollback(target.id)
        once = store.state
        await store.rollback(target.id)
        twice = store.state

        assert once.file_system == twice.file_system == target.file_system
        assert once.design_system == twice.design_system
        assert twice.status == AgentStatus.READY
        assert twice.selected_history_id is None
        assert len(twice.history) == history_len
        assert twice.terminal_logs[-1] == f"> Rolled back to snapshot: {target.label}"

    asyncio.run(inner())


def test_rollback_unknown_snapshot():
    async def inner():
        store, _ = _store()
        with pytest.raises(UnknownSnapshotError):
            await store.rollback("missing")

    asyncio.run(inner())


def test_snapshot_mode_blocks_edits():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        first = store.state.history[0]
        await store.select_history(first.id)

        view = store.view()
        assert view["readOnly"] is True
        assert view["label"] == "Run started"
        assert view["fileSystem"] == {}

        with pytest.raises(SnapshotModeError):
            await store.edit_file("src/App.tsx", "nope")
        with pytest.raises(SnapshotModeError):
            await store.update_design({"colors": {"primary": "#111111"}})

        await store.select_history(None)
        assert store.view()["readOnly"] is False
        await store.edit_file("src/App.tsx", "ok")
        assert store.file_content("src/App.tsx") == "ok"

    asyncio.run(inner())


def test_select_file_requires_existing_path():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        await store.select_file("src/lib/mockData.ts")
        assert store.state.current_file == "src/lib/mockData.ts"
        with pytest.raises(UnknownFileError):
            await store.select_file("src/missing.ts")

    asyncio.run(inner())


def test_update_design_merges_sections():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        design = await store.update_design({"colors": {"primary": "#ff0000"}, "metadata": {"appName": "Todo"}})
        assert design.colors.primary == "#ff0000"
        assert design.colors.background == DesignSystem().colors.background
        assert design.metadata.app_name == "Todo"

    asyncio.run(inner())


def test_reset_clears_state_and_storage():
    async def inner():
        store, storage = _store()
        await _scaffold(store)
        generation = store.generation
        await store.reset()

        state = store.state
        assert state.file_system == {}
        assert state.status == AgentStatus.IDLE
        assert state.history == []
        assert "test" not in storage
        assert not store.is_current(generation)

    asyncio.run(inner())


class GatedStorage(MemoryStateStorage):
    """Holds every save until the test opens the gate."""

    def __init__(self):
        super().__init__()
        self.saving = asyncio.Event()
        self.gate = asyncio.Event()

    async def save(self, key, payload):
        self.saving.set()
        await self.gate.wait()
        await super().save(key, payload)


def test_reset_is_not_overwritten_by_a_pending_save():
    async def inner():
        storage = GatedStorage()
        store = ProjectStore(storage, key="test", bus=EventBus())
        in_flight = asyncio.create_task(store.log("edit before reset"))
        await storage.saving.wait()
        queued = asyncio.create_task(store.log("queued before reset"))
        await asyncio.sleep(0)

        reset = asyncio.create_task(store.reset())
        await asyncio.sleep(0)
        storage.gate.set()
        await asyncio.gather(in_flight, queued, reset)

        assert "test" not in storage
        assert store.state.terminal_logs == [WELCOME_LOG]

        await store.log("after reset")
        stored = await storage.load("test")
        assert stored["terminalLogs"] == [WELCOME_LOG, "after reset"]

    asyncio.run(inner())


def test_working_state_leaves_out_history():
    async def inner():
        store, _ = _store()
        await _scaffold(store)
        working = store.working_state()

        assert working.history == []
        assert working.terminal_logs == []
        assert working.file_system == store.files()
        working.file_system["src/App.tsx"] = "changed"
        assert store.file_content("src/App.tsx") == "// a"
        assert len(store.state.history) == 5

    asyncio.run(inner())


def test_events_are_published_for_commands():
    async def inner():
        store, _ = _store()
        seen = []

        async def collect(event):
            seen.append(event)

        store.bus.subscribe(collect)
        await store.start_run("todo app")
        await store.log("hello")
        assert [e.type for e in seen] == ["status", "log"]
        assert seen[0].data["status"] == "managing"
        assert seen[1].msg == "hello"
        assert seen[1].data["revision"] == store.revision

    asyncio.run(inner())


def test_restore_resets_active_status_and_appends_log():
    state = restore_state({"status": "coding", "userPrompt": "todo app", "lastSaved": "2024-01-01T00:00:00"})
    assert state.status == AgentStatus.IDLE
    assert state.user_prompt == "todo app"
    assert state.terminal_logs[-1] == "> Workspace restored. Last saved: 2024-01-01T00:00:00"


def test_restore_salvages_invalid_fields():
    state = restore_state(
        {
            "status": "bogus",
            "userPrompt": "todo app",
            "fileSystem": {"src/App.tsx": "x"},
            "currentFile": "src/gone.tsx",
            "selectedHistoryId": "missing",
        }
    )
    assert state.status == AgentStatus.IDLE
    assert state.user_prompt == "todo app"
    assert state.file_system == {"src/App.tsx": "x"}
    assert state.current_file == "src/App.tsx"
    assert state.selected_history_id is None
    assert state.terminal_logs[-1] == "> Workspace restored. Last saved: N/A"
