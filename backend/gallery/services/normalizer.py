"""Mapping of Drive file descriptors to gallery media items."""

from __future__ import annotations

import re
from typing import Iterable

from gallery.schemas.gallery import MediaItem, MediaType
from gallery.services.google_drive import GENERIC_MIME_TYPE, FileDescriptor

MEDIA_PATH = "/api/media/{file_id}"
THUMBNAIL_PATH = "/api/thumbnail/{file_id}"
DEFAULT_CAPTION = "Untitled"

VIDEO_EXTENSION_REGEX = re.compile(r"\.(mp4|mov|avi|webm|mkv|m4v)$", re.IGNORECASE)


def infer_media_type(file: FileDescriptor) -> MediaType | None:
    """Classify a file by MIME type, falling back to its extension.

    Returns None for files that are known not to be visual media.
    """
    if file.is_folder:
        return None

    mime_type = file.mime_type
    if not mime_type:
        return MediaType.PHOTO

    if mime_type.startswith("video/"):
        return MediaType.VIDEO
    if mime_type.startswith("image/"):
        return MediaType.PHOTO
    if mime_type == GENERIC_MIME_TYPE:
        # Scraper placeholder: show it, guessing from the name
        if file.name and VIDEO_EXTENSION_REGEX.search(file.name):
            return MediaType.VIDEO
        return MediaType.PHOTO

    # Documents, folders, spreadsheets...
    return None


def to_media_item(file: FileDescriptor) -> MediaItem | None:
    """Build the media item for a file, or None if it should be skipped."""
    if not file.id:
        return None

    media_type = infer_media_type(file)
    if media_type is None:
        return None

    return MediaItem(
        id=file.id,
        media_type=media_type,
        src=MEDIA_PATH.format(file_id=file.id),
        thumbnail=THUMBNAIL_PATH.format(file_id=file.id),
        caption=file.name or DEFAULT_CAPTION,
        date=file.created_time,
    )


def normalize_files(files: Iterable[FileDescriptor]) -> list[MediaItem]:
    """Media items for every displayable file, in listing order."""
    items = []
    for file in files:
        item = to_media_item(file)
        if item is not None:
            items.append(item)
    return items
