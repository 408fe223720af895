"""Drive-folder media gateway services."""

from gallery.services.cache import CacheStore
from gallery.services.context import GatewayContext, get_context
from gallery.services.credentials import AuthCapability, AuthKind, CredentialProvider
from gallery.services.folder_lister import FolderInaccessibleError, FolderLister
from gallery.services.gallery import GalleryService
from gallery.services.google_drive import DriveApi, FileDescriptor, GoogleDriveError
from gallery.services.scraper import FolderScraper
from gallery.services.stream_proxy import StreamError, StreamProxy

__all__ = [
    "AuthCapability",
    "AuthKind",
    "CacheStore",
    "CredentialProvider",
    "DriveApi",
    "FileDescriptor",
    "FolderInaccessibleError",
    "FolderLister",
    "FolderScraper",
    "GalleryService",
    "GatewayContext",
    "GoogleDriveError",
    "StreamError",
    "StreamProxy",
    "get_context",
]
