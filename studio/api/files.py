from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import HTMLResponse

from studio.api.deps import get_store
from studio.core.store import ProjectStore
from studio.utils.preview import file_language, render_preview_html
from studio.utils.schemas import FileEntry, FileListing, FileSelect, FileUpdate

router = APIRouter(prefix="/api", tags=["files"])


@router.get("/files", response_model=FileListing)
async def list_files(
    store: ProjectStore = Depends(get_store),
    include_content: bool = Query(default=False),
) -> FileListing:
    state = store.state
    files = state.active_file_system
    return FileListing(
        read_only=state.selected_history_id is not None,
        current_file=state.current_file,
        files=[
            FileEntry(
                path=path,
                language=file_language(path),
                size=len(content.encode("utf-8")),
                content=content if include_content else None,
            )
            for path, content in files.items()
        ],
    )


@router.post("/files/select")
async def select_file(payload: FileSelect, store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    await store.select_file(payload.path)
    content = store.view()["fileSystem"][payload.path]
    return {"path": payload.path, "language": file_language(payload.path), "content": content}


@router.put("/files")
async def update_file(payload: FileUpdate, store: ProjectStore = Depends(get_store)) -> Dict[str, Any]:
    await store.edit_file(payload.path, payload.content)
    return {"path": payload.path, "size": len(payload.content.encode("utf-8"))}


@router.patch("/design")
async def update_design(
    patch: Dict[str, Any] = Body(...), store: ProjectStore = Depends(get_store)
) -> Dict[str, Any]:
    design = await store.update_design(patch)
    return design.to_wire()


@router.get("/preview", response_class=HTMLResponse)
async def preview(store: ProjectStore = Depends(get_store)) -> HTMLResponse:
    state = store.state
    snapshot = state.selected_snapshot
    if snapshot is not None:
        html = render_preview_html(snapshot.design_system, snapshot.status)
    else:
        html = render_preview_html(state.design_system, state.status)
    return HTMLResponse(content=html)
