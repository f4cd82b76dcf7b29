"""API response models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from breakitdown.models.decomposition import KnowledgeCard, PartSpec
from breakitdown.models.layout import LayoutResult
from breakitdown.models.session import SessionSnapshot, SessionSummary


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    provider: str = ""
    models: dict[str, str] = Field(default_factory=dict)
    image_search: bool = False


class DeconstructResponse(BaseModel):
    parent_item: str
    parts: list[PartSpec] = Field(default_factory=list)


class WorkspaceResponse(BaseModel):
    workspace_id: str
    revision: int = 0
    snapshot: SessionSnapshot
    layout: LayoutResult


class ExpandResponse(BaseModel):
    workspace_id: str
    node_id: str
    action: str
    children: list[str] = Field(default_factory=list, description="Ids of the node's children")
    revision: int = 0
    layout: LayoutResult


class DragResponse(BaseModel):
    workspace_id: str
    overrides: dict[str, tuple[float, float]] = Field(default_factory=dict)
    layout: LayoutResult


class CardResponse(BaseModel):
    node_id: str
    available: bool = False
    card: KnowledgeCard | None = None


class SessionListResponse(BaseModel):
    sessions: list[SessionSummary] = Field(default_factory=list)


class ImageSearchResponse(BaseModel):
    image_url: str | None = None
    thumbnail_url: str | None = None
    photographer: str | None = None
