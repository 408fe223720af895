"""Extraction of Google Drive folder and file IDs from links or raw IDs."""

from __future__ import annotations

import re
from dataclasses import dataclass

# Drive IDs are long URL-safe tokens; anything shorter is treated as noise
DRIVE_ID_PATTERN = r"[a-zA-Z0-9_-]{25,}"

# /drive/folders/ID, /drive/u/0/folders/ID, open?id=ID, /d/ID, root/ID ...
DRIVE_FOLDER_REGEX = re.compile(
    rf"(?:/folders/|[?&]id=|/d/|root/|drive/)({DRIVE_ID_PATTERN})"
)
DRIVE_FILE_REGEX = re.compile(
    rf"(?:/file/d/|[?&]id=|/d/)({DRIVE_ID_PATTERN})"
)
BARE_ID_REGEX = re.compile(DRIVE_ID_PATTERN)


def _extract(value: str | None, pattern: re.Pattern[str]) -> str | None:
    if not value:
        return None
    value = value.strip()
    match = pattern.search(value)
    if match:
        return match.group(1)
    if BARE_ID_REGEX.fullmatch(value):
        return value
    return None


def parse_folder_id(value: str | None) -> str | None:
    """Extract a folder ID from a Drive folder URL or a bare ID.

    Args:
        value: Folder URL in any of the usual shapes, or the ID itself.

    Returns:
        The folder ID, or None when no Drive-style token can be found.
    """
    return _extract(value, DRIVE_FOLDER_REGEX)


def parse_file_id(value: str | None) -> str | None:
    """Extract a file ID from a Drive file URL or a bare ID."""
    return _extract(value, DRIVE_FILE_REGEX)


@dataclass(frozen=True)
class FolderReference:
    """A labelled folder link taken from the gallery configuration."""

    label: str | None
    url: str | None

    @property
    def folder_id(self) -> str | None:
        """Canonical folder ID, or None if the link is not a Drive folder."""
        return parse_folder_id(self.url)

    @property
    def is_valid(self) -> bool:
        return self.folder_id is not None
