"""LangChain chat-model adapters for the interchangeable completion backends.

Each provider turns one prompt (plus an optional image) into raw model text
and maps its SDK's exceptions onto ProviderError / TransportError /
CompletionTimeout. SDK-level retries are disabled; retrying belongs to the
callers' RetryPolicy.
"""

from __future__ import annotations

import base64
import logging
from typing import Any

from breakitdown.config import Settings
from breakitdown.errors import (
    BreakItDownError,
    CompletionTimeout,
    ConfigurationError,
    ProviderError,
    TransportError,
)
from breakitdown.llm.model_router import get_model_for_modality

logger = logging.getLogger(__name__)

_JSON_SYSTEM_PROMPT = "You are a helpful assistant that returns responses in JSON format."


def _content_text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of blocks) to text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class ChatProvider:
    """Base adapter: builds messages, invokes the chat model, maps errors."""

    name = "base"

    def __init__(self, s: Settings) -> None:
        self.settings = s
        self._models: dict[str, Any] = {}

    # -- hooks ---------------------------------------------------------------

    def _build_model(self, model_id: str, modality: str) -> Any:
        raise NotImplementedError

    def _image_block(self, image_b64: str, media_type: str) -> dict[str, Any]:
        raise NotImplementedError

    def _translate_error(self, exc: Exception, modality: str) -> BreakItDownError | None:
        raise NotImplementedError

    # -- shared --------------------------------------------------------------

    def model_id(self, modality: str) -> str:
        return get_model_for_modality(modality, self.name, self.settings)

    def _timeout(self, modality: str) -> float:
        return self.settings.vision_timeout_s if modality == "vision" else self.settings.text_timeout_s

    def _model(self, modality: str) -> Any:
        if modality not in self._models:
            self._models[modality] = self._build_model(self.model_id(modality), modality)
        return self._models[modality]

    def _messages(self, prompt: str, modality: str, image: bytes | None, media_type: str) -> list:
        from langchain_core.messages import HumanMessage, SystemMessage

        if modality == "vision":
            if image is None:
                raise ValueError("vision completion needs image bytes")
            image_b64 = base64.b64encode(image).decode("ascii")
            return [
                HumanMessage(
                    content=[
                        {"type": "text", "text": prompt},
                        self._image_block(image_b64, media_type),
                    ]
                )
            ]
        return [SystemMessage(content=_JSON_SYSTEM_PROMPT), HumanMessage(content=prompt)]

    async def acomplete(
        self,
        prompt: str,
        modality: str = "text",
        image: bytes | None = None,
        media_type: str = "image/jpeg",
    ) -> str:
        llm = self._model(modality)
        messages = self._messages(prompt, modality, image, media_type)
        logger.debug("%s %s completion via %s", self.name, modality, self.model_id(modality))
        try:
            response = await llm.ainvoke(messages)
        except Exception as e:
            mapped = self._translate_error(e, modality)
            if mapped is None:
                raise
            raise mapped from e
        return _content_text(response.content)


class OpenAICompatibleProvider(ChatProvider):
    """Any OpenAI-style /chat/completions endpoint (custom gateways, DashScope compatible mode)."""

    name = "openai"

    def __init__(self, s: Settings, *, base_url: str | None = None, api_key: str | None = None) -> None:
        super().__init__(s)
        self.base_url = base_url if base_url is not None else s.ai_base_url
        self.api_key = api_key if api_key is not None else s.ai_api_key

    def _build_model(self, model_id: str, modality: str) -> Any:
        from langchain_openai import ChatOpenAI

        kwargs: dict[str, Any] = {
            "model": model_id,
            "api_key": self.api_key,
            "timeout": self._timeout(modality),
            "max_retries": 0,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if modality == "vision":
            kwargs["max_tokens"] = self.settings.vision_max_tokens
        else:
            kwargs["max_tokens"] = self.settings.text_max_tokens
            kwargs["temperature"] = self.settings.text_temperature
        return ChatOpenAI(**kwargs)

    def _image_block(self, image_b64: str, media_type: str) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{image_b64}"}}

    def _translate_error(self, exc: Exception, modality: str) -> BreakItDownError | None:
        import openai

        # APITimeoutError subclasses APIConnectionError, so check it first.
        if isinstance(exc, openai.APITimeoutError):
            return CompletionTimeout(self._timeout(modality), modality)
        if isinstance(exc, openai.APIStatusError):
            return ProviderError(exc.status_code, exc.message)
        if isinstance(exc, openai.APIConnectionError):
            return TransportError(f"{self.name} connection failed: {exc}")
        return None


class DashScopeProvider(OpenAICompatibleProvider):
    """Alibaba Qwen models through DashScope's OpenAI-compatible endpoint."""

    name = "dashscope"

    def __init__(self, s: Settings) -> None:
        super().__init__(s, base_url=s.dashscope_base_url, api_key=s.dashscope_api_key)


class AnthropicProvider(ChatProvider):
    name = "anthropic"

    def _build_model(self, model_id: str, modality: str) -> Any:
        from langchain_anthropic import ChatAnthropic

        max_tokens = self.settings.vision_max_tokens if modality == "vision" else self.settings.text_max_tokens
        return ChatAnthropic(
            model=model_id,
            api_key=self.settings.anthropic_api_key,
            max_tokens=max_tokens,
            temperature=self.settings.text_temperature,
            timeout=self._timeout(modality),
            max_retries=0,
        )

    def _image_block(self, image_b64: str, media_type: str) -> dict[str, Any]:
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": image_b64},
        }

    def _translate_error(self, exc: Exception, modality: str) -> BreakItDownError | None:
        import anthropic

        if isinstance(exc, anthropic.APITimeoutError):
            return CompletionTimeout(self._timeout(modality), modality)
        if isinstance(exc, anthropic.APIStatusError):
            return ProviderError(exc.status_code, exc.message)
        if isinstance(exc, anthropic.APIConnectionError):
            return TransportError(f"{self.name} connection failed: {exc}")
        return None


_PROVIDERS: dict[str, type[ChatProvider]] = {
    "openai": OpenAICompatibleProvider,
    "dashscope": DashScopeProvider,
    "anthropic": AnthropicProvider,
}


def create_provider(s: Settings) -> ChatProvider | None:
    """Provider chosen by configuration, or None when no backend is configured."""
    name = s.resolved_provider
    if not name:
        return None
    try:
        cls = _PROVIDERS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown AI provider {name!r}; expected one of {sorted(_PROVIDERS)}") from None
    logger.info("Completion provider: %s (text=%s, vision=%s)", name,
                get_model_for_modality("text", name, s), get_model_for_modality("vision", name, s))
    return cls(s)
