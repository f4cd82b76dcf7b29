"""Persisted documents: workspace snapshots and saved sessions."""

from __future__ import annotations

from pydantic import BaseModel, Field

from breakitdown.llm.prompts import StyleOptions
from breakitdown.models.decomposition import IdentificationResult, KnowledgeCard


class NodeDocument(BaseModel):
    id: str
    name: str
    description: str = ""
    state: str = "unexpanded"
    is_raw_material: bool = False
    icon: str | None = None
    image_url: str | None = None
    search_term: str | None = None
    children: list[NodeDocument] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Everything needed to rebuild a workspace exactly."""

    tree: NodeDocument
    overrides: dict[str, tuple[float, float]] = Field(default_factory=dict)
    knowledge_cards: dict[str, KnowledgeCard] = Field(default_factory=dict)
    style: StyleOptions = Field(default_factory=StyleOptions)


class SessionSummary(BaseModel):
    id: str
    title: str
    root_name: str
    root_icon: str | None = None
    root_image: str | None = None
    created_at: float
    updated_at: float
    last_accessed_at: float


class SessionRecord(SessionSummary):
    snapshot: SessionSnapshot
    identification: IdentificationResult | None = None
