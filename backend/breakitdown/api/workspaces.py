"""Live workspaces: create, expand, stream a full expansion, drag, cards."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from breakitdown.dependencies import get_registry
from breakitdown.engine.tree import find_by_id
from breakitdown.engine.workspace import Workspace, WorkspaceRegistry
from breakitdown.errors import BreakItDownError, NodeNotFound
from breakitdown.models.requests import CreateWorkspaceRequest, DragRequest, ExpandAllRequest, ExpandRequest, RestoreRequest
from breakitdown.models.responses import CardResponse, DragResponse, ExpandResponse, WorkspaceResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces")


def _workspace_response(ws: Workspace) -> WorkspaceResponse:
    return WorkspaceResponse(
        workspace_id=ws.id,
        revision=ws.revision,
        snapshot=ws.to_snapshot(),
        layout=ws.layout(),
    )


def _sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


@router.post("", response_model=WorkspaceResponse, status_code=201)
async def create_workspace(
    req: CreateWorkspaceRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> WorkspaceResponse:
    ws = registry.create(
        req.name,
        req.description,
        icon=req.icon,
        image_url=req.image_url,
        search_term=req.search_term,
        style=req.style,
    )
    return _workspace_response(ws)


@router.post("/restore", response_model=WorkspaceResponse, status_code=201)
async def restore_workspace(
    req: RestoreRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> WorkspaceResponse:
    return _workspace_response(registry.restore(req.snapshot, req.workspace_id))


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: str,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> WorkspaceResponse:
    return _workspace_response(registry.get(workspace_id))


@router.post("/{workspace_id}/expand", response_model=ExpandResponse)
async def expand(
    workspace_id: str,
    req: ExpandRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> ExpandResponse:
    ws = registry.get(workspace_id)
    outcome = await ws.expand(req.node_id, req.parent_context)
    return ExpandResponse(
        workspace_id=ws.id,
        node_id=outcome.node_id,
        action=outcome.action,
        children=[c.id for c in outcome.children],
        revision=ws.revision,
        layout=ws.layout(),
    )


async def _stream_expand_all(ws: Workspace, node_id: str | None) -> AsyncGenerator[str, None]:
    """Drive the level-by-level walk, yielding one SSE progress event per node."""
    start = time.perf_counter()
    visited = 0
    try:
        async for event in ws.controller.expand_all(node_id):
            visited += 1
            yield _sse("progress", event)
    except BreakItDownError as e:
        logger.warning("Expand-all on %s stopped: %s", ws.id, e)
        yield _sse("error", {"type": "error", "message": e.user_message})
        return

    elapsed = (time.perf_counter() - start) * 1000
    result = {
        "workspace_id": ws.id,
        "revision": ws.revision,
        "visited": visited,
        "node_count": ws.node_count(),
        "processing_time_ms": round(elapsed, 1),
        "layout": ws.layout().model_dump(),
    }
    yield _sse("result", result)
    yield _sse("done", {"type": "done"})


@router.post("/{workspace_id}/expand-all/stream")
async def expand_all_stream(
    workspace_id: str,
    req: ExpandAllRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> StreamingResponse:
    ws = registry.get(workspace_id)
    if req.node_id is not None and find_by_id(ws.tree, req.node_id) is None:
        raise NodeNotFound(req.node_id)
    return StreamingResponse(
        _stream_expand_all(ws, req.node_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/{workspace_id}/drag", response_model=DragResponse)
async def drag(
    workspace_id: str,
    req: DragRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> DragResponse:
    ws = registry.get(workspace_id)
    overrides = ws.drag(req.node_id, req.dx, req.dy)
    return DragResponse(workspace_id=ws.id, overrides=overrides, layout=ws.layout())


@router.get("/{workspace_id}/cards/{node_id}", response_model=CardResponse)
async def knowledge_card(
    workspace_id: str,
    node_id: str,
    registry: WorkspaceRegistry = Depends(get_registry),
) -> CardResponse:
    ws = registry.get(workspace_id)
    card = await ws.card(node_id)
    return CardResponse(node_id=node_id, available=card is not None, card=card)
