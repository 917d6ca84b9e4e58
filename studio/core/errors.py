from __future__ import annotations

from typing import Iterable


class StudioError(Exception):
    """Base class for every error raised by the studio core."""


class InvalidTransitionError(StudioError):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Transition {current} -> {requested} is not allowed")
        self.current = current
        self.requested = requested


class RunInProgressError(StudioError):
    def __init__(self, status: str) -> None:
        super().__init__(f"Cannot start a run while status is '{status}'")
        self.status = status


class StagePreconditionError(StudioError):
    def __init__(self, status: str, missing: Iterable[str]) -> None:
        self.status = status
        self.missing = list(missing)
        super().__init__(f"Stage '{status}' is missing: {', '.join(self.missing)}")


class MalformedResponseError(StudioError):
    def __init__(self, stage: str, detail: str) -> None:
        super().__init__(f"{stage} returned a malformed response: {detail}")
        self.stage = stage
        self.detail = detail


class SnapshotModeError(StudioError):
    def __init__(self, action: str) -> None:
        super().__init__(f"Cannot {action} while a history snapshot is selected")
        self.action = action


class UnknownSnapshotError(StudioError, KeyError):
    def __init__(self, snapshot_id: str) -> None:
        StudioError.__init__(self, f"Unknown snapshot: {snapshot_id}")
        self.snapshot_id = snapshot_id

    def __str__(self) -> str:
        return self.args[0]


class UnknownPluginError(StudioError, KeyError):
    def __init__(self, plugin_id: str) -> None:
        StudioError.__init__(self, f"Unknown plugin: {plugin_id}")
        self.plugin_id = plugin_id

    def __str__(self) -> str:
        return self.args[0]


class UnknownFileError(StudioError, KeyError):
    def __init__(self, path: str) -> None:
        StudioError.__init__(self, f"File not in workspace: {path}")
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


class RunSupersededError(StudioError):
    """A stage result belongs to a run that was reset or replaced."""

    def __init__(self, generation: int) -> None:
        super().__init__(f"Run generation {generation} is no longer current")
        self.generation = generation


class PluginDisabledError(StudioError):
    def __init__(self, plugin_id: str) -> None:
        super().__init__(f"Plugin '{plugin_id}' is disabled")
        self.plugin_id = plugin_id
