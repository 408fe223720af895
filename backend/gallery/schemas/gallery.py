"""Gallery configuration and response schemas."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==================== Configuration Document ====================


class SourceConfig(CamelModel):
    """One media source inside a gallery section."""

    type: str = ""
    label: str | None = None
    folder_url: str | None = None


class SectionConfig(CamelModel):
    """A titled gallery section; unknown keys are echoed back to the client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    title: str | None = None
    sources: list[SourceConfig] = Field(default_factory=list)


class GalleryConfig(CamelModel):
    """The gallery configuration document."""

    sections: list[SectionConfig] = Field(default_factory=list)


# ==================== Responses ====================


class MediaType(str, Enum):
    """Kinds of media the gallery can display."""

    PHOTO = "photo"
    VIDEO = "video"


class MediaItem(CamelModel):
    """A displayable photo or video.

    ``src`` and ``thumbnail`` are same-origin proxy paths so the streaming
    backend can change without breaking clients.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    media_type: MediaType
    src: str
    thumbnail: str
    caption: str
    date: str | None = None


class SourceResult(CamelModel):
    """Outcome for one configured source; ``error`` is null on success."""

    label: str | None = None
    folder_id: str | None = None
    items: list[MediaItem] = Field(default_factory=list)
    error: str | None = None


class SectionResult(CamelModel):
    """A section with its resolved sources."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    title: str | None = None
    sources: list[SourceResult] = Field(default_factory=list)


class GalleryResponse(CamelModel):
    """Assembled gallery payload."""

    sections: list[SectionResult]
    fetched_at: str | None = None


class FallbackGalleryResponse(CamelModel):
    """Degraded payload served when the configuration cannot be used."""

    items: list[MediaItem]


def section_extras(section: SectionConfig) -> dict[str, Any]:
    """Extra keys of a configured section, to be echoed into its result."""
    return dict(section.model_extra or {})
