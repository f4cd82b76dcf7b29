"""Turn raw model output into validated payloads.

Structural checks only: a part flagged ``is_raw_material`` is trusted as-is.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from breakitdown.errors import MalformedResponse
from breakitdown.models.decomposition import (
    DecompositionPayload,
    IdentificationResult,
    KnowledgeCard,
)

logger = logging.getLogger(__name__)

_OPEN_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?")
_CLOSE_FENCE = re.compile(r"\n?```\s*$")

_M = TypeVar("_M", bound=BaseModel)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, with or without a language tag."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _OPEN_FENCE.sub("", cleaned, count=1)
        cleaned = _CLOSE_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_payload(raw: str, model: type[_M]) -> _M:
    """Strip fences, parse JSON and validate against ``model``."""
    cleaned = strip_code_fence(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Unparseable model output (%d chars): %s", len(raw), e)
        raise MalformedResponse(f"invalid JSON: {e}", raw) from e

    if not isinstance(data, dict):
        raise MalformedResponse(f"expected a JSON object, got {type(data).__name__}", raw)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Model output failed %s validation: %s", model.__name__, e.errors()[:3])
        raise MalformedResponse(f"{model.__name__} validation failed: {e.error_count()} error(s)", raw) from e


def normalize(raw: str) -> DecompositionPayload:
    return parse_payload(raw, DecompositionPayload)


def parse_identification(raw: str) -> IdentificationResult:
    return parse_payload(raw, IdentificationResult)


def parse_knowledge_card(raw: str) -> KnowledgeCard:
    return parse_payload(raw, KnowledgeCard)
