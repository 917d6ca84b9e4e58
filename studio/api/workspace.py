from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from studio.api.deps import get_orchestrator, get_store
from studio.core.orchestrator import Orchestrator
from studio.core.store import ProjectStore
from studio.utils.logging import get_logger
from studio.utils.schemas import RunCreate, RunStarted

router = APIRouter(prefix="/api", tags=["workspace"])
LOGGER = get_logger(__name__)


@router.get("/state")
async def read_state(store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    return store.public_state()


@router.get("/view")
async def read_view(store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    return store.view()


@router.post("/runs", status_code=status.HTTP_202_ACCEPTED, response_model=RunStarted)
async def start_run(payload: RunCreate, orchestrator: Orchestrator = Depends(get_orchestrator)) -> RunStarted:
    try:
        await orchestrator.start(payload.prompt)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    store = orchestrator.store
    LOGGER.info("Run %d accepted via API", store.generation)
    return RunStarted(generation=store.generation, status=store.status.value)


@router.post("/reset")
async def reset_workspace(orchestrator: Orchestrator = Depends(get_orchestrator)) -> Dict[str, Any]:
    await orchestrator.reset()
    return orchestrator.store.public_state()


@router.post("/save")
async def save_workspace(store: ProjectStore = Depends(get_store)) -> Dict[str, str]:
    return {"lastSaved": await store.save()}
