"""Task → model selection. Vision model for identification, text model for the rest."""

from __future__ import annotations

from breakitdown.config import Settings, settings

_TASK_MODEL_MAP = {
    "identify": "vision",
    "decompose": "text",
    "knowledge_card": "text",
}


def get_model_for_modality(modality: str, provider: str, s: Settings = settings) -> str:
    vision = modality == "vision"
    if provider == "anthropic":
        return s.anthropic_model_vision if vision else s.anthropic_model_text
    if provider == "dashscope":
        return s.dashscope_model_vision if vision else s.dashscope_model_text
    return s.model_vision if vision else s.model_text


def get_model_for_task(task: str, provider: str, s: Settings = settings) -> str:
    return get_model_for_modality(_TASK_MODEL_MAP.get(task, "text"), provider, s)
