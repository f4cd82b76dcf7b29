"""POST /api/identify — name the object in an uploaded photo."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from breakitdown.config import Settings
from breakitdown.dependencies import get_gateway, get_image_search, get_settings
from breakitdown.engine.identify import identify_object
from breakitdown.llm.client import CompletionGateway
from breakitdown.models.decomposition import IdentificationResult
from breakitdown.services.image_search import ImageSearchClient

logger = logging.getLogger(__name__)

router = APIRouter()

_ACCEPTED_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


@router.post("/identify", response_model=IdentificationResult)
async def identify(
    image: UploadFile = File(...),
    s: Settings = Depends(get_settings),
    gateway: CompletionGateway = Depends(get_gateway),
    images: ImageSearchClient = Depends(get_image_search),
) -> IdentificationResult:
    media_type = image.content_type or "image/jpeg"
    if media_type not in _ACCEPTED_TYPES:
        raise HTTPException(status_code=415, detail=f"Unsupported image type: {media_type}")
    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="No image provided")

    logger.info("Identifying upload %s (%d bytes)", image.filename, len(data))
    result = await identify_object(gateway, data, media_type, language=s.output_language)

    photo = await images.search(result.search_term or result.name)
    if photo is not None:
        result.image_url = photo.image_url
    return result
