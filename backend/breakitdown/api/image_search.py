"""POST /api/image-search — stock photo for a node."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from breakitdown.dependencies import get_image_search
from breakitdown.models.requests import ImageSearchRequest
from breakitdown.models.responses import ImageSearchResponse
from breakitdown.services.image_search import ImageSearchClient

router = APIRouter()


@router.post("/image-search", response_model=ImageSearchResponse)
async def image_search(
    req: ImageSearchRequest,
    images: ImageSearchClient = Depends(get_image_search),
) -> ImageSearchResponse:
    result = await images.search(req.search_term)
    if result is None:
        return ImageSearchResponse()
    return ImageSearchResponse(
        image_url=result.image_url,
        thumbnail_url=result.thumbnail_url,
        photographer=result.photographer,
    )
