"""Health check + meta endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from breakitdown.config import Settings
from breakitdown.dependencies import get_gateway, get_image_search, get_settings
from breakitdown.llm.client import CompletionGateway
from breakitdown.llm.model_router import get_model_for_task
from breakitdown.models.responses import HealthResponse
from breakitdown.services.image_search import ImageSearchClient

router = APIRouter()

_TASKS = ("identify", "decompose", "knowledge_card")


@router.get("/health", response_model=HealthResponse)
async def health(
    s: Settings = Depends(get_settings),
    gateway: CompletionGateway = Depends(get_gateway),
    images: ImageSearchClient = Depends(get_image_search),
) -> HealthResponse:
    provider = gateway.provider_name
    models = {task: get_model_for_task(task, provider, s) for task in _TASKS} if provider else {}
    return HealthResponse(
        status="ok" if provider else "degraded",
        version="0.1.0",
        provider=provider,
        models=models,
        image_search=images.enabled,
    )


@router.get("/prompts")
async def prompts() -> dict[str, str]:
    from breakitdown.llm.prompts import get_all_templates

    return get_all_templates()
