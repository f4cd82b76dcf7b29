"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass

import pytest

from breakitdown.engine.retry import RetryPolicy
from breakitdown.llm.client import Modality


# Sample model outputs

SMARTPHONE_JSON = json.dumps(
    {
        "parent_item": "智能手机",
        "parts": [
            {"name": "屏幕", "description": "显示与触控", "is_raw_material": False, "icon": "📱", "searchTerm": "phone screen"},
            {"name": "电池", "description": "供电", "is_raw_material": False, "icon": "🔋", "searchTerm": "phone battery"},
            {"name": "主板", "description": "计算核心", "is_raw_material": False, "icon": "🧠", "searchTerm": "circuit board"},
            {"name": "原油", "description": "塑料外壳的来源", "is_raw_material": True, "icon": "🛢️", "searchTerm": "crude oil"},
        ],
    },
    ensure_ascii=False,
)

CARD_JSON = json.dumps(
    {
        "title": "Assembly manufacturing process",
        "doc_number": "PROC-000001",
        "steps": [
            {
                "step_number": 1,
                "action_title": "Prepare parts",
                "description": "Bolt and Panel are cleaned and laid out.",
                "parameters": [{"label": "Core material", "value": "Bolt"}, {"label": "Key parameter", "value": 25}],
                "ai_image_prompt": "Technical drawing of parts layout, vintage blueprint style, white background",
            }
        ],
    }
)

IDENTIFY_JSON = json.dumps(
    {
        "name": "Mechanical keyboard",
        "category": "electronics",
        "brief_description": "A keyboard with individual switches.",
        "icon": "⌨️",
        "searchTerm": "mechanical keyboard",
    }
)


def decomposition_json(parent: str, parts: list[tuple[str, bool]]) -> str:
    """Minimal decomposition output: ``parts`` are ``(name, is_raw_material)``."""
    return json.dumps(
        {
            "parent_item": parent,
            "parts": [{"name": name, "description": f"{name} part", "is_raw_material": raw} for name, raw in parts],
        }
    )


@dataclass
class Call:
    prompt: str
    modality: Modality
    image: bytes | None = None


class ScriptedGateway:
    """In-memory stand-in for ``CompletionGateway``.

    Pops scripted responses in order, then falls back to ``default``. An
    item may be a string, an exception (raised) or a callable of the prompt.
    Setting ``gate`` to an ``asyncio.Event`` holds every call until it is set.
    """

    provider_name = "scripted"

    def __init__(self, responses=(), *, default=None) -> None:
        self.responses = list(responses)
        self.default = default
        self.calls: list[Call] = []
        self.gate: asyncio.Event | None = None

    async def complete(self, prompt, modality=Modality.TEXT, image=None, media_type="image/jpeg"):
        self.calls.append(Call(prompt, Modality(modality), image))
        if self.gate is not None:
            await self.gate.wait()
        if self.responses:
            item = self.responses.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise AssertionError(f"no scripted response left for prompt: {prompt[:60]!r}")
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item(prompt)
        return item


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_delay_s=0.0)
