"""Authenticated Google Drive access.

Provides:
- File descriptors shared by the API listing and the HTML scraper
- Paginated folder listing and metadata lookups via googleapiclient
- Byte streaming (optionally ranged) of file contents via httpx
- Translation of Google API errors into a small exception hierarchy
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import google_auth_httplib2
import httplib2
import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gallery.core.logging import get_logger
from gallery.services.credentials import AuthCapability, AuthKind

logger = get_logger(__name__)

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GENERIC_MIME_TYPE = "application/octet-stream"

LIST_FIELDS = (
    "nextPageToken, "
    "files(id, name, mimeType, thumbnailLink, webViewLink, createdTime, size)"
)
STREAM_FIELDS = "id, name, mimeType, size"
THUMBNAIL_FIELDS = "id, thumbnailLink, mimeType"


class GoogleDriveError(Exception):
    """Base exception for Google Drive errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GoogleAccessDeniedError(GoogleDriveError):
    """Raised when access is denied to a resource."""

    pass


class GoogleNotFoundError(GoogleDriveError):
    """Raised when a file or folder is not found."""

    pass


class GoogleRateLimitError(GoogleDriveError):
    """Raised when rate limited by Google API."""

    pass


class FileDescriptor(BaseModel):
    """One file in a Drive folder.

    Complete when it comes from the API listing; the scraper only recovers
    ``id``, ``name`` and a best-effort ``mime_type``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str
    name: str = ""
    mime_type: str | None = None
    thumbnail_link: str | None = None
    web_view_link: str | None = None
    created_time: str | None = None
    size: int | None = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


def translate_http_error(error: HttpError, what: str) -> GoogleDriveError:
    """Map a googleapiclient HttpError onto our exception hierarchy."""
    status = getattr(error.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    if status == 404:
        return GoogleNotFoundError(f"{what} not found", status_code=404)
    if status in (401, 403):
        return GoogleAccessDeniedError(f"Access denied to {what}", status_code=status)
    if status == 429:
        return GoogleRateLimitError("Google API rate limit exceeded", status_code=429)
    return GoogleDriveError(f"Google API error for {what}: {error}", status_code=status)


class DriveApi:
    """Drive v3 operations bound to one ``AuthCapability``.

    googleapiclient requests are executed in worker threads, each with its
    own httplib2 transport since httplib2 connections are not thread-safe.
    Media bytes go through the shared ``httpx.AsyncClient`` so they can be
    streamed to the client without buffering.
    """

    def __init__(
        self,
        capability: AuthCapability,
        http: httpx.AsyncClient,
        service: Any | None = None,
    ):
        """Initialize the Drive API wrapper.

        Args:
            capability: Authenticated capability (must not be ``NONE``).
            http: Shared async HTTP client used for media downloads.
            service: Prebuilt Drive service resource (tests inject a mock).
        """
        if not capability.is_authenticated:
            raise ValueError("DriveApi requires an authenticated capability")
        self.capability = capability
        self._http = http
        self._service = service

    @property
    def can_list(self) -> bool:
        return self.capability.can_list

    @property
    def can_stream(self) -> bool:
        return self.capability.can_stream

    # ========== googleapiclient plumbing ==========

    def _get_service(self) -> Any:
        if self._service is None:
            if self.capability.credentials is not None:
                self._service = build(
                    "drive", "v3",
                    credentials=self.capability.credentials,
                    cache_discovery=False,
                )
            else:
                self._service = build(
                    "drive", "v3",
                    developerKey=self.capability.api_key,
                    cache_discovery=False,
                )
        return self._service

    def _new_transport(self) -> httplib2.Http:
        if self.capability.credentials is not None:
            return google_auth_httplib2.AuthorizedHttp(
                self.capability.credentials, http=httplib2.Http()
            )
        return httplib2.Http()

    async def _execute(self, request: Any, what: str) -> dict:
        try:
            return await asyncio.to_thread(request.execute, http=self._new_transport())
        except HttpError as e:
            raise translate_http_error(e, what) from e

    # ========== Folder Operations ==========

    async def list_page(
        self,
        folder_id: str,
        page_token: str | None = None,
        page_size: int = 100,
    ) -> tuple[list[FileDescriptor], str | None]:
        """List one page of a folder's non-trashed children.

        Args:
            folder_id: Google Drive folder ID.
            page_token: Continuation token from the previous page.
            page_size: Number of files per page.

        Returns:
            Tuple of (file descriptors, next page token or None).

        Raises:
            GoogleDriveError: If listing fails.
        """
        request = self._get_service().files().list(
            q=f"'{folder_id}' in parents and trashed = false",
            fields=LIST_FIELDS,
            pageToken=page_token,
            pageSize=page_size,
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        )
        result = await self._execute(request, f"folder {folder_id}")

        files = [FileDescriptor.model_validate(f) for f in result.get("files", [])]
        return files, result.get("nextPageToken")

    # ========== File Operations ==========

    async def get_metadata(self, file_id: str, fields: str = STREAM_FIELDS) -> FileDescriptor:
        """Fetch metadata for a single file.

        Raises:
            GoogleNotFoundError: If the file does not exist.
            GoogleAccessDeniedError: If the capability cannot see it.
        """
        request = self._get_service().files().get(
            fileId=file_id,
            fields=fields,
            supportsAllDrives=True,
        )
        result = await self._execute(request, f"file {file_id}")
        result.setdefault("id", file_id)
        return FileDescriptor.model_validate(result)

    async def _auth_headers(self) -> dict[str, str]:
        creds = self.capability.credentials
        if creds is None:
            return {}
        if not creds.valid:
            await asyncio.to_thread(creds.refresh, GoogleAuthRequest())
        headers: dict[str, str] = {}
        creds.apply(headers)
        return headers

    async def open_media(
        self,
        file_id: str,
        byte_range: tuple[int, int] | None = None,
    ) -> httpx.Response:
        """Open a streaming download of a file's bytes.

        The caller owns the returned response and must close it.

        Args:
            file_id: Google Drive file ID.
            byte_range: Inclusive (start, end) window to request, if any.

        Returns:
            An httpx response whose body has not been read yet.

        Raises:
            GoogleDriveError: If the upstream answers with an error status.
        """
        headers = await self._auth_headers()
        if byte_range is not None:
            headers["Range"] = f"bytes={byte_range[0]}-{byte_range[1]}"

        params = {"alt": "media", "supportsAllDrives": "true"}
        if self.capability.kind is AuthKind.API_KEY and self.capability.api_key:
            params["key"] = self.capability.api_key

        request = self._http.build_request(
            "GET", f"{DRIVE_FILES_URL}/{quote(file_id, safe='')}", params=params, headers=headers
        )
        response = await self._http.send(request, stream=True, follow_redirects=True)

        if response.status_code >= 400:
            await response.aclose()
            status = response.status_code
            if status == 404:
                raise GoogleNotFoundError(f"File {file_id} not found", status_code=404)
            if status in (401, 403):
                raise GoogleAccessDeniedError(
                    f"Access denied to file {file_id}", status_code=status
                )
            raise GoogleDriveError(
                f"Media download failed for {file_id}: HTTP {status}", status_code=status
            )

        return response
