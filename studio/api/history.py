from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from studio.api.deps import get_orchestrator, get_store
from studio.core.errors import UnknownSnapshotError
from studio.core.orchestrator import Orchestrator
from studio.core.store import ProjectStore
from studio.utils.schemas import HistorySelect

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("")
async def list_history(store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    state = store.public_state()
    return {"history": state["history"], "selectedHistoryId": state["selectedHistoryId"]}


@router.get("/{snapshot_id}")
async def read_snapshot(snapshot_id: str, store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    snapshot = store.state.find_snapshot(snapshot_id)
    if snapshot is None:
        raise UnknownSnapshotError(snapshot_id)
    return snapshot.to_wire()


@router.post("/select")
async def select_snapshot(payload: HistorySelect, store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    await store.select_history(payload.id)
    return store.view()


@router.post("/{snapshot_id}/rollback")
async def rollback_snapshot(
    snapshot_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    await orchestrator.rollback(snapshot_id)
    return orchestrator.store.public_state()
