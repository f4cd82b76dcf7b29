"""Shapes of the JSON documents the language model returns."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator


class PartSpec(BaseModel):
    """One constituent returned by a decomposition step."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: StrictStr
    description: str = ""
    is_raw_material: StrictBool
    icon: str | None = None
    search_term: str | None = Field(default=None, alias="searchTerm")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("part name is empty")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, v: object) -> object:
        return "" if v is None else v


class DecompositionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    parent_item: StrictStr
    parts: list[PartSpec]


class IdentificationResult(BaseModel):
    """Output of the vision identification step."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: StrictStr
    category: str = ""
    brief_description: str = ""
    icon: str | None = None
    search_term: str | None = Field(default=None, alias="searchTerm")
    image_url: str | None = None


class CardParameter(BaseModel):
    label: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: object) -> object:
        return v if isinstance(v, str) else str(v)


class CardStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    step_number: int
    title: str = Field(alias="action_title")
    description: str = ""
    parameters: list[CardParameter] = Field(default_factory=list)
    image_prompt: str = Field(default="", alias="ai_image_prompt")


class KnowledgeCard(BaseModel):
    """Generated manufacturing-process narrative for one node."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    document_number: str = Field(default="", alias="doc_number")
    steps: list[CardStep] = Field(default_factory=list)
