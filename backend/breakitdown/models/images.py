"""Stock photo lookup results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ImageResult(BaseModel):
    image_url: str
    thumbnail_url: str | None = None
    photographer: str | None = None
    source_url: str | None = None


class PexelsSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    large: str | None = None
    medium: str | None = None


class PexelsPhoto(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    photographer: str | None = None
    src: PexelsSource = Field(default_factory=PexelsSource)


class PexelsSearchResponse(BaseModel):
    """The subset of a Pexels ``/v1/search`` body that decoration reads."""

    model_config = ConfigDict(extra="ignore")

    photos: list[PexelsPhoto] = Field(default_factory=list)
