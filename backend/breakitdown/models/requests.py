"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from breakitdown.llm.prompts import StyleOptions
from breakitdown.models.decomposition import IdentificationResult
from breakitdown.models.session import SessionSnapshot


class DeconstructRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(..., min_length=1, alias="itemName", description="Item to break down one level")
    parent_context: str | None = Field(None, alias="parentContext", description="Name of the item it belongs to")
    style: StyleOptions | None = None


class CreateWorkspaceRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Root item name")
    description: str = ""
    icon: str | None = None
    image_url: str | None = None
    search_term: str | None = None
    style: StyleOptions | None = None


class ExpandRequest(BaseModel):
    node_id: str
    parent_context: str | None = None


class ExpandAllRequest(BaseModel):
    node_id: str | None = Field(None, description="Subtree root; defaults to the tree root")


class DragRequest(BaseModel):
    node_id: str
    dx: float
    dy: float


class RestoreRequest(BaseModel):
    snapshot: SessionSnapshot
    workspace_id: str | None = None


class SaveSessionRequest(BaseModel):
    title: str = Field(..., min_length=1)
    workspace_id: str | None = Field(None, description="Snapshot this live workspace")
    snapshot: SessionSnapshot | None = Field(None, description="Or store this snapshot directly")
    identification: IdentificationResult | None = None


class UpdateSessionRequest(BaseModel):
    title: str | None = None
    workspace_id: str | None = None
    snapshot: SessionSnapshot | None = None
    identification: IdentificationResult | None = None


class ImageSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search_term: str = Field(..., min_length=1, alias="searchTerm")
