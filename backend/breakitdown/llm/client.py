"""Completion gateway: one bounded call to the configured chat backend."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Protocol

from breakitdown.config import Settings
from breakitdown.errors import CompletionTimeout, ConfigurationError
from breakitdown.llm.providers import create_provider

logger = logging.getLogger(__name__)


class Modality(str, enum.Enum):
    TEXT = "text"
    VISION = "vision"


class CompletionBackend(Protocol):
    name: str

    async def acomplete(
        self,
        prompt: str,
        modality: str = "text",
        image: bytes | None = None,
        media_type: str = "image/jpeg",
    ) -> str: ...


class Completer(Protocol):
    """What the controller and card generator depend on."""

    async def complete(
        self,
        prompt: str,
        modality: Modality = Modality.TEXT,
        image: bytes | None = None,
        media_type: str = "image/jpeg",
    ) -> str: ...


class CompletionGateway:
    """Timeout-bounded, concurrency-capped access to a completion backend.

    No caching and no retries here; a timeout raises CompletionTimeout so
    callers can tell it apart from provider and transport failures.
    """

    def __init__(
        self,
        backend: CompletionBackend | None,
        *,
        text_timeout_s: float = 90.0,
        vision_timeout_s: float = 120.0,
        max_inflight: int = 8,
    ) -> None:
        self.backend = backend
        self.text_timeout_s = text_timeout_s
        self.vision_timeout_s = vision_timeout_s
        self._slots = asyncio.Semaphore(max_inflight)

    @classmethod
    def from_settings(cls, s: Settings) -> CompletionGateway:
        return cls(
            create_provider(s),
            text_timeout_s=s.text_timeout_s,
            vision_timeout_s=s.vision_timeout_s,
            max_inflight=s.max_inflight_requests,
        )

    @property
    def provider_name(self) -> str:
        return self.backend.name if self.backend is not None else ""

    def timeout_for(self, modality: Modality) -> float:
        return self.vision_timeout_s if modality is Modality.VISION else self.text_timeout_s

    async def complete(
        self,
        prompt: str,
        modality: Modality = Modality.TEXT,
        image: bytes | None = None,
        media_type: str = "image/jpeg",
    ) -> str:
        """Raw model text for ``prompt``; ``image`` is required for vision calls."""
        if self.backend is None:
            raise ConfigurationError(
                "No AI backend configured: set AI_BASE_URL + AI_API_KEY, DASHSCOPE_API_KEY or ANTHROPIC_API_KEY"
            )
        modality = Modality(modality)
        timeout = self.timeout_for(modality)

        async with self._slots:
            try:
                return await asyncio.wait_for(
                    self.backend.acomplete(prompt, modality.value, image, media_type),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("%s completion exceeded %.0fs", modality.value, timeout)
                raise CompletionTimeout(timeout, modality.value) from None
