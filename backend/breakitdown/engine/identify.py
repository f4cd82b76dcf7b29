"""Vision step: name the object in a photo so it can become a tree root."""

from __future__ import annotations

import logging

from breakitdown.engine.normalizer import parse_identification
from breakitdown.engine.retry import RetryPolicy
from breakitdown.llm.client import Completer, Modality
from breakitdown.llm.prompts import build_identification_prompt
from breakitdown.models.decomposition import IdentificationResult

logger = logging.getLogger(__name__)


async def identify_object(
    gateway: Completer,
    image: bytes,
    media_type: str = "image/jpeg",
    *,
    retry: RetryPolicy | None = None,
    language: str | None = None,
) -> IdentificationResult:
    if not image:
        raise ValueError("image is empty")
    prompt = build_identification_prompt(language)

    async def _attempt() -> IdentificationResult:
        raw = await gateway.complete(prompt, Modality.VISION, image, media_type)
        return parse_identification(raw)

    # Vision calls are slow, so a single attempt unless a policy is given.
    policy = retry or RetryPolicy(max_retries=0)
    result = await policy.run(_attempt, label="identify")
    logger.info("Identified %r (%s)", result.name, result.category or "uncategorised")
    return result
