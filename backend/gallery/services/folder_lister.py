"""Folder listing with API-first, scraper-second strategy and caching."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import partial

from gallery.core.logging import get_logger
from gallery.schemas.gallery import MediaItem
from gallery.services.cache import CacheStore
from gallery.services.google_drive import DriveApi, FileDescriptor, GoogleDriveError
from gallery.services.normalizer import normalize_files
from gallery.services.retry import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_RETRIES, with_retry
from gallery.services.scraper import FolderScraper

logger = get_logger(__name__)

FOLDER_CACHE_TTL = 120.0  # seconds
MAX_LIST_PAGES = 6
LIST_PAGE_SIZE = 100


class ListingStrategy(str, Enum):
    """Where a folder listing came from."""

    API = "api"
    SCRAPER = "scraper"


class FolderInaccessibleError(GoogleDriveError):
    """Raised when neither the API nor the scraper could list a folder."""

    def __init__(self, folder_id: str, cause: BaseException):
        super().__init__(f"Access failed ({cause}). Folder might be private.")
        self.folder_id = folder_id


@dataclass(frozen=True)
class FolderListing:
    """Files found in a folder and the strategy that found them."""

    folder_id: str
    files: tuple[FileDescriptor, ...]
    strategy: ListingStrategy


class FolderLister:
    """Lists Drive folders, preferring the authenticated API.

    An empty folder yields an empty listing. A folder that could not be
    read by either strategy raises ``FolderInaccessibleError`` so callers
    can tell "nothing here" from "could not check".
    """

    def __init__(
        self,
        cache: CacheStore,
        scraper: FolderScraper,
        drive: DriveApi | None = None,
        *,
        ttl: float = FOLDER_CACHE_TTL,
        max_pages: int = MAX_LIST_PAGES,
        page_size: int = LIST_PAGE_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
    ):
        self.cache = cache
        self.scraper = scraper
        self.drive = drive
        self.ttl = ttl
        self.max_pages = max_pages
        self.page_size = page_size
        self.max_retries = max_retries
        self.initial_delay = initial_delay

    @staticmethod
    def cache_key(folder_id: str) -> str:
        return f"folder:{folder_id}"

    async def list_folder(self, folder_id: str) -> FolderListing:
        """List a folder's files, using the cache when fresh.

        Raises:
            FolderInaccessibleError: If both strategies failed.
        """
        key = self.cache_key(folder_id)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("folder_cache_hit", folder_id=folder_id, files_count=len(cached.files))
            return cached

        if self.drive is not None and self.drive.can_list:
            try:
                files = await self._list_via_api(folder_id)
            except Exception as e:
                # The folder may still be publicly readable
                logger.warning(
                    "drive_listing_failed",
                    folder_id=folder_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                listing = FolderListing(folder_id, tuple(files), ListingStrategy.API)
                self.cache.set(key, listing, self.ttl)
                return listing

        logger.info("using_folder_scraper", folder_id=folder_id)
        try:
            files = await self.scraper.scrape(folder_id)
        except Exception as e:
            logger.warning("folder_scrape_failed", folder_id=folder_id, error=str(e))
            raise FolderInaccessibleError(folder_id, e) from e

        listing = FolderListing(folder_id, tuple(files), ListingStrategy.SCRAPER)
        self.cache.set(key, listing, self.ttl)
        return listing

    async def list_media(self, folder_id: str) -> tuple[list[MediaItem], ListingStrategy]:
        """List a folder and normalize its files into media items."""
        listing = await self.list_folder(folder_id)
        return normalize_files(listing.files), listing.strategy

    async def _list_via_api(self, folder_id: str) -> list[FileDescriptor]:
        assert self.drive is not None
        files: list[FileDescriptor] = []
        seen: set[str] = set()
        page_token: str | None = None

        for _ in range(self.max_pages):
            page_files, page_token = await with_retry(
                partial(self.drive.list_page, folder_id, page_token, self.page_size),
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                operation_name="list_folder",
            )
            for f in page_files:
                if f.id not in seen:
                    seen.add(f.id)
                    files.append(f)
            if not page_token:
                break
        else:
            if page_token:
                logger.warning(
                    "folder_listing_truncated",
                    folder_id=folder_id,
                    max_pages=self.max_pages,
                    files_count=len(files),
                )

        logger.info("folder_listed", folder_id=folder_id, files_count=len(files))
        return files
