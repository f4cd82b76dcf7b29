"""Saved sessions: list, save, load, update, delete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from breakitdown.dependencies import get_registry, get_session_store
from breakitdown.engine.workspace import WorkspaceRegistry
from breakitdown.models.requests import SaveSessionRequest, UpdateSessionRequest
from breakitdown.models.responses import SessionListResponse
from breakitdown.models.session import SessionRecord, SessionSnapshot
from breakitdown.storage.sessions import SessionStore

router = APIRouter(prefix="/sessions")


def _resolve_snapshot(
    registry: WorkspaceRegistry,
    workspace_id: str | None,
    snapshot: SessionSnapshot | None,
) -> SessionSnapshot | None:
    if workspace_id:
        return registry.get(workspace_id).to_snapshot()
    return snapshot


@router.get("", response_model=SessionListResponse)
async def list_sessions(store: SessionStore = Depends(get_session_store)) -> SessionListResponse:
    return SessionListResponse(sessions=store.list())


@router.post("", response_model=SessionRecord, status_code=201)
async def save_session(
    req: SaveSessionRequest,
    store: SessionStore = Depends(get_session_store),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> SessionRecord:
    snapshot = _resolve_snapshot(registry, req.workspace_id, req.snapshot)
    if snapshot is None:
        raise HTTPException(status_code=400, detail="Provide workspace_id or snapshot")
    return store.create(req.title, snapshot, req.identification)


@router.get("/{session_id}", response_model=SessionRecord)
async def load_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> SessionRecord:
    return store.get(session_id)


@router.put("/{session_id}", response_model=SessionRecord)
async def update_session(
    session_id: str,
    req: UpdateSessionRequest,
    store: SessionStore = Depends(get_session_store),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> SessionRecord:
    snapshot = _resolve_snapshot(registry, req.workspace_id, req.snapshot)
    return store.update(session_id, title=req.title, snapshot=snapshot, identification=req.identification)


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> Response:
    store.delete(session_id)
    return Response(status_code=204)
