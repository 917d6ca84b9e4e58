from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from studio.api.deps import get_orchestrator, get_store
from studio.core.orchestrator import Orchestrator
from studio.core.store import ProjectStore
from studio.utils.schemas import PluginRunResponse

router = APIRouter(prefix="/api/plugins", tags=["plugins"])


@router.get("")
async def list_plugins(store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    state = store.state
    return {
        "plugins": [p.to_wire() for p in state.installed_plugins],
        "readOnly": state.selected_history_id is not None,
    }


@router.post("/{plugin_id}/toggle")
async def toggle_plugin(plugin_id: str, store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    plugin = await store.toggle_plugin(plugin_id)
    return plugin.to_wire()


@router.post("/{plugin_id}/run", response_model=PluginRunResponse)
async def run_plugin(plugin_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> PluginRunResponse:
    result = await orchestrator.run_plugin(plugin_id)
    return PluginRunResponse(
        plugin_id=plugin_id,
        comments=[c.to_wire() for c in result.comments],
        mutated_files=list(dict.fromkeys(m.file for m in result.mutations if m.file)),
    )
