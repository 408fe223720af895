"""Gallery assembly from the configured Drive folders.

Sections and their sources are resolved concurrently. A failing source is
reported in its own ``error`` field and never affects its siblings. When
the configuration cannot be used at all, or nothing displayable was found,
a static list of featured photos is served instead.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from gallery.core.logging import get_logger
from gallery.schemas.gallery import (
    FallbackGalleryResponse,
    GalleryConfig,
    GalleryResponse,
    MediaItem,
    MediaType,
    SectionConfig,
    SectionResult,
    SourceConfig,
    SourceResult,
    section_extras,
)
from gallery.services.cache import CacheStore
from gallery.services.drive_ids import FolderReference
from gallery.services.folder_lister import FolderLister
from gallery.services.normalizer import MEDIA_PATH, THUMBNAIL_PATH

logger = get_logger(__name__)

GALLERY_CACHE_TTL = 60.0  # seconds
GDRIVE_FOLDER_SOURCE = "gdrive-folder"
UNSUPPORTED_SOURCE_ERROR = "unsupported-source-type"
INVALID_FOLDER_ERROR = "invalid-folder-url"
FALLBACK_SECTION_TITLE = "Gallery"
FALLBACK_SOURCE_LABEL = "Featured Events (Fallback)"

_FEATURED = [
    ("1Rva5X11M8EWTVvxSd1jd1BQ1FC_WV5r9", "Workshop Session"),
    ("1ZvYsfoGoEgEicRqc376dC6LqBCuw3N1j", "Technical Seminar"),
    ("1O6MRmP4AIJR7xLonRF7Mc2Vl3e3MeNNt", "Innovation Lab"),
    ("1ShZQrAL9GMVhZDRBM75UX7sv_iqdkkFW", "Project Demo"),
    ("1ZH7b4GG5pcAbf-gkju3P5U3ryWaz7wc_", "Coding Competition"),
    ("1Ak8m-BG9fJn21FqnJ2y1QtCgOAFRIUbb", "Tech Talk"),
]

FALLBACK_ITEMS: list[MediaItem] = [
    MediaItem(
        id=file_id,
        media_type=MediaType.PHOTO,
        src=MEDIA_PATH.format(file_id=file_id),
        thumbnail=THUMBNAIL_PATH.format(file_id=file_id),
        caption=caption,
    )
    for file_id, caption in _FEATURED
]


class GalleryConfigError(Exception):
    """Raised when the gallery configuration is unreadable or malformed."""

    pass


def load_gallery_config(path: Path) -> tuple[GalleryConfig, str]:
    """Read and validate the gallery configuration document.

    Returns:
        The parsed config and a hash of its canonical JSON form.

    Raises:
        GalleryConfigError: If the file is missing, not JSON, or not shaped
            like a gallery config.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        config = GalleryConfig.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        raise GalleryConfigError(f"Failed to read gallery config {path}: {e}") from e

    return config, config_hash(raw)


def config_hash(raw: Any) -> str:
    """Stable SHA-1 of a JSON document."""
    canonical = json.dumps(raw, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


def fallback_sections() -> GalleryResponse:
    """Sections-shaped payload holding only the featured photos."""
    return GalleryResponse(
        sections=[
            SectionResult(
                title=FALLBACK_SECTION_TITLE,
                sources=[SourceResult(label=FALLBACK_SOURCE_LABEL, items=list(FALLBACK_ITEMS))],
            )
        ],
        fetched_at=_now_iso(),
    )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class GalleryService:
    """Builds the gallery payload served by ``GET /api/gallery``."""

    def __init__(
        self,
        lister: FolderLister,
        cache: CacheStore,
        config_path: Path,
        ttl: float = GALLERY_CACHE_TTL,
    ):
        self.lister = lister
        self.cache = cache
        self.config_path = config_path
        self.ttl = ttl
        self._inflight: dict[str, asyncio.Task[GalleryResponse]] = {}

    async def get_gallery(self) -> GalleryResponse | FallbackGalleryResponse:
        """Return the gallery payload; never raises.

        A configuration problem or unexpected failure yields the flat
        featured-items payload.
        """
        try:
            config, digest = load_gallery_config(self.config_path)
            return await self.get_gallery_for(config, digest)
        except GalleryConfigError as e:
            logger.error("gallery_config_unavailable", error=str(e))
        except Exception:
            logger.exception("gallery_assembly_failed")

        logger.warning("gallery_fallback_served", shape="items")
        return FallbackGalleryResponse(items=list(FALLBACK_ITEMS))

    async def get_gallery_for(self, config: GalleryConfig, digest: str) -> GalleryResponse:
        """Cached, shared assembly of one configuration."""
        key = f"gallery:{digest}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._assemble(config))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))

        # One caller going away must not cancel the assembly others await
        payload = await asyncio.shield(task)

        if not _has_items(payload):
            logger.warning("gallery_fallback_served", shape="sections", reason="no_items")
            return fallback_sections()

        self.cache.set(key, payload, self.ttl)
        return payload

    async def _assemble(self, config: GalleryConfig) -> GalleryResponse:
        sections = await asyncio.gather(
            *(self._build_section(section) for section in config.sections)
        )
        return GalleryResponse(sections=list(sections), fetched_at=_now_iso())

    async def _build_section(self, section: SectionConfig) -> SectionResult:
        sources = await asyncio.gather(
            *(self._build_source(source) for source in section.sources)
        )
        return SectionResult(
            **section_extras(section),
            title=section.title,
            sources=list(sources),
        )

    async def _build_source(self, source: SourceConfig) -> SourceResult:
        if source.type != GDRIVE_FOLDER_SOURCE:
            return SourceResult(label=source.label, error=UNSUPPORTED_SOURCE_ERROR)

        reference = FolderReference(label=source.label, url=source.folder_url)
        if not reference.is_valid:
            logger.warning("invalid_folder_url", label=source.label, url=source.folder_url)
            return SourceResult(label=source.label, error=INVALID_FOLDER_ERROR)

        folder_id = reference.folder_id

        try:
            items, strategy = await self.lister.list_media(folder_id)
        except Exception as e:
            logger.warning(
                "gallery_source_failed",
                label=source.label,
                folder_id=folder_id,
                error=str(e),
            )
            return SourceResult(label=source.label, folder_id=folder_id, error=str(e))

        logger.debug(
            "gallery_source_listed",
            label=source.label,
            folder_id=folder_id,
            strategy=strategy.value,
            items_count=len(items),
        )
        return SourceResult(label=source.label, folder_id=folder_id, items=items)


def _has_items(payload: GalleryResponse) -> bool:
    return any(source.items for section in payload.sections for source in section.sources)
