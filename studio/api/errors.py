from __future__ import annotations

from fastapi import status

from studio.core.errors import (
    InvalidTransitionError,
    PluginDisabledError,
    RunInProgressError,
    SnapshotModeError,
    StagePreconditionError,
    StudioError,
    UnknownFileError,
    UnknownPluginError,
    UnknownSnapshotError,
)

_STATUS_BY_ERROR = (
    ((UnknownSnapshotError, UnknownPluginError, UnknownFileError), status.HTTP_404_NOT_FOUND),
    (
        (InvalidTransitionError, RunInProgressError, SnapshotModeError, PluginDisabledError, StagePreconditionError),
        status.HTTP_409_CONFLICT,
    ),
)


def http_status_for(exc: StudioError) -> int:
    for types, code in _STATUS_BY_ERROR:
        if isinstance(exc, types):
            return code
    return status.HTTP_400_BAD_REQUEST
