"""Pexels photo search used to decorate nodes.

Decoration is optional: every failure is logged and reported as "no image",
so callers fall back to the node's emoji icon.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from breakitdown.config import Settings
from breakitdown.errors import EnrichmentFailure
from breakitdown.models.images import ImageResult, PexelsSearchResponse

logger = logging.getLogger(__name__)

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"


class ImageSearchClient:
    def __init__(
        self,
        api_key: str,
        *,
        timeout_s: float = 10.0,
        base_url: str = PEXELS_SEARCH_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self._client = client or httpx.AsyncClient(timeout=timeout_s, follow_redirects=True)
        self._cache: dict[str, ImageResult | None] = {}

    @classmethod
    def from_settings(cls, s: Settings) -> ImageSearchClient:
        return cls(s.pexels_api_key, timeout_s=s.image_search_timeout_s)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search(self, term: str) -> ImageResult | None:
        """Best matching photo for ``term``, or None. Never raises."""
        term = term.strip()
        if not term or not self.enabled:
            return None
        key = term.lower()
        if key in self._cache:
            return self._cache[key]
        try:
            result = await self._fetch(term)
        except (httpx.HTTPError, EnrichmentFailure) as e:
            logger.warning("Image search for %r failed: %s", term, e)
            return None
        self._cache[key] = result
        return result

    async def _fetch(self, term: str) -> ImageResult | None:
        response = await self._client.get(
            self.base_url,
            params={"query": term, "per_page": 1, "page": 1},
            headers={"Authorization": self.api_key},
        )
        if response.status_code != 200:
            raise EnrichmentFailure(f"Pexels returned {response.status_code}")
        try:
            body = PexelsSearchResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise EnrichmentFailure(f"Pexels returned an unexpected body: {e.error_count()} errors") from e

        if not body.photos:
            logger.debug("No photo found for %r", term)
            return None
        best = body.photos[0]
        if not best.src.large:
            return None
        logger.debug("Found photo for %r by %s", term, best.photographer)
        return ImageResult(
            image_url=best.src.large,
            thumbnail_url=best.src.medium,
            photographer=best.photographer,
            source_url=best.url,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
