"""POST /api/deconstruct — stateless one-level decomposition."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from breakitdown.config import Settings
from breakitdown.dependencies import get_gateway, get_settings
from breakitdown.engine.controller import decompose
from breakitdown.engine.retry import RetryPolicy
from breakitdown.llm.client import CompletionGateway
from breakitdown.models.requests import DeconstructRequest
from breakitdown.models.responses import DeconstructResponse

router = APIRouter()


@router.post("/deconstruct", response_model=DeconstructResponse)
async def deconstruct(
    req: DeconstructRequest,
    s: Settings = Depends(get_settings),
    gateway: CompletionGateway = Depends(get_gateway),
) -> DeconstructResponse:
    payload = await RetryPolicy.from_settings(s).run(
        lambda: decompose(
            gateway,
            req.item_name,
            req.parent_context,
            req.style,
            max_depth=s.max_depth,
            language=s.output_language,
        ),
        label=f"deconstruct {req.item_name!r}",
    )
    return DeconstructResponse(parent_item=payload.parent_item, parts=payload.parts)
