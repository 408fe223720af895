"""Process-wide gateway state.

Everything that must exist once per process (cache, credentials, HTTP
client and the services built on them) lives on one ``GatewayContext``,
created in the application lifespan and handed to routes through the
``get_context`` dependency. Tests build their own context or override
the dependency.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from gallery.core.config import Settings
from gallery.core.logging import get_logger
from gallery.services.cache import CacheStore
from gallery.services.credentials import AuthCapability, CredentialProvider
from gallery.services.folder_lister import FolderLister
from gallery.services.gallery import GalleryService
from gallery.services.google_drive import DriveApi
from gallery.services.scraper import FolderScraper
from gallery.services.stream_proxy import StreamProxy

logger = get_logger(__name__)


@dataclass
class GatewayContext:
    """Long-lived services shared by all requests."""

    settings: Settings
    cache: CacheStore
    credentials: CredentialProvider
    http: httpx.AsyncClient
    drive: DriveApi | None
    lister: FolderLister
    gallery: GalleryService
    proxy: StreamProxy

    @property
    def capability(self) -> AuthCapability:
        return self.credentials.get_capability()

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        http: httpx.AsyncClient | None = None,
        cache: CacheStore | None = None,
        credentials: CredentialProvider | None = None,
        drive: DriveApi | None = None,
    ) -> GatewayContext:
        """Wire up the gateway from settings.

        Args:
            settings: Application settings.
            http: Shared HTTP client; a new one is created if omitted.
            cache: Cache store; a new one is created if omitted.
            credentials: Credential provider; built from settings if omitted.
            drive: Drive API wrapper; built from the capability if omitted.
        """
        if http is None:
            http = httpx.AsyncClient(timeout=settings.http_timeout)
        if cache is None:
            cache = CacheStore()
        if credentials is None:
            credentials = CredentialProvider.from_settings(settings)

        capability = credentials.get_capability()
        if drive is None and capability.is_authenticated:
            drive = DriveApi(capability, http)

        scraper = FolderScraper(
            http,
            min_items=settings.scraper_min_items,
            max_name_length=settings.scraper_max_name_length,
        )
        lister = FolderLister(
            cache,
            scraper,
            drive,
            ttl=settings.folder_cache_ttl,
            max_pages=settings.list_max_pages,
            page_size=settings.list_page_size,
            max_retries=settings.retry_max_retries,
            initial_delay=settings.retry_initial_delay,
        )
        gallery = GalleryService(
            lister,
            cache,
            settings.gallery_config_path,
            ttl=settings.gallery_cache_ttl,
        )
        proxy = StreamProxy(
            http,
            drive,
            max_retries=settings.retry_max_retries,
            initial_delay=settings.retry_initial_delay,
            thumbnail_size=settings.thumbnail_size,
            image_width=settings.image_mirror_width,
        )

        return cls(
            settings=settings,
            cache=cache,
            credentials=credentials,
            http=http,
            drive=drive,
            lister=lister,
            gallery=gallery,
            proxy=proxy,
        )

    async def aclose(self) -> None:
        """Release the shared HTTP client."""
        await self.http.aclose()
        logger.debug("gateway_context_closed")


def get_context(request: Request) -> GatewayContext:
    """FastAPI dependency returning the application's gateway context."""
    return request.app.state.gateway
