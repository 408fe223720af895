"""Tests for DriveApi - authenticated Drive access.

The googleapiclient service is a MagicMock; media downloads go through an
httpx MockTransport.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from googleapiclient.errors import HttpError

from conftest import drive_file, file_id
from gallery.services.credentials import NO_CAPABILITY, AuthCapability, AuthKind
from gallery.services.google_drive import (
    DriveApi,
    FileDescriptor,
    GoogleAccessDeniedError,
    GoogleDriveError,
    GoogleNotFoundError,
    GoogleRateLimitError,
)


def http_error(status: int) -> HttpError:
    resp = MagicMock()
    resp.status = status
    return HttpError(resp, b"error")


class TestFileDescriptor:
    """Tests for FileDescriptor parsing."""

    def test_from_api_payload(self):
        f = FileDescriptor.model_validate(
            drive_file(
                "abc",
                "photo.jpg",
                "image/jpeg",
                size="2048",
                createdTime="2024-05-01T10:00:00.000Z",
                thumbnailLink="https://lh3.googleusercontent.com/thumb=s220",
            )
        )
        assert f.mime_type == "image/jpeg"
        assert f.size == 2048
        assert f.created_time == "2024-05-01T10:00:00.000Z"
        assert f.thumbnail_link.endswith("=s220")
        assert f.is_folder is False

    def test_folder(self):
        f = FileDescriptor(id="x", name="Sub", mime_type="application/vnd.google-apps.folder")
        assert f.is_folder is True


class TestDriveApiInit:
    def test_requires_authenticated_capability(self):
        with pytest.raises(ValueError):
            DriveApi(NO_CAPABILITY, httpx.AsyncClient())

    @pytest.mark.parametrize("kind", [AuthKind.SERVICE_ACCOUNT, AuthKind.CREDENTIALS_FILE])
    def test_service_uses_loaded_credentials(self, kind):
        creds = MagicMock(name="creds")
        capability = AuthCapability(kind=kind, credentials=creds, can_list=True, can_stream=True)

        with patch("gallery.services.google_drive.build") as mock_build:
            service = DriveApi(capability, httpx.AsyncClient())._get_service()

        assert service is mock_build.return_value
        mock_build.assert_called_once_with("drive", "v3", credentials=creds, cache_discovery=False)

    def test_service_uses_api_key_without_credentials(self):
        capability = AuthCapability(kind=AuthKind.API_KEY, api_key="AIza-test", can_list=True, can_stream=True)

        with patch("gallery.services.google_drive.build") as mock_build:
            DriveApi(capability, httpx.AsyncClient())._get_service()

        mock_build.assert_called_once_with("drive", "v3", developerKey="AIza-test", cache_discovery=False)


class TestListPage:
    """Tests for list_page with a mocked service."""

    @pytest.mark.asyncio
    async def test_list_page(self, make_drive, drive_service):
        drive_service.files.return_value.list.return_value.execute.return_value = {
            "files": [
                drive_file(file_id(1), "a.jpg", "image/jpeg", size="10"),
                drive_file(file_id(2), "b.mp4", "video/mp4"),
            ],
            "nextPageToken": "page-2",
        }
        drive = make_drive()

        files, token = await drive.list_page("folder123", page_size=50)

        assert [f.name for f in files] == ["a.jpg", "b.mp4"]
        assert files[0].size == 10
        assert token == "page-2"
        kwargs = drive_service.files.return_value.list.call_args.kwargs
        assert kwargs["q"] == "'folder123' in parents and trashed = false"
        assert kwargs["pageSize"] == 50
        assert kwargs["pageToken"] is None

    @pytest.mark.asyncio
    async def test_last_page(self, make_drive, drive_service):
        drive_service.files.return_value.list.return_value.execute.return_value = {"files": []}

        files, token = await make_drive().list_page("folder123", page_token="page-2")

        assert files == []
        assert token is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error_type", [
        (403, GoogleAccessDeniedError),
        (401, GoogleAccessDeniedError),
        (404, GoogleNotFoundError),
        (429, GoogleRateLimitError),
        (500, GoogleDriveError),
    ])
    async def test_http_errors_are_translated(self, make_drive, drive_service, status, error_type):
        drive_service.files.return_value.list.return_value.execute.side_effect = http_error(status)

        with pytest.raises(error_type) as exc_info:
            await make_drive().list_page("folder123")

        assert exc_info.value.status_code == status


class TestGetMetadata:
    """Tests for get_metadata."""

    @pytest.mark.asyncio
    async def test_metadata(self, make_drive, drive_service):
        drive_service.files.return_value.get.return_value.execute.return_value = {
            "name": "clip.mp4",
            "mimeType": "video/mp4",
            "size": "1000",
        }

        meta = await make_drive().get_metadata("file1")

        assert meta.id == "file1"
        assert meta.size == 1000
        assert drive_service.files.return_value.get.call_args.kwargs["fileId"] == "file1"

    @pytest.mark.asyncio
    async def test_not_found(self, make_drive, drive_service):
        drive_service.files.return_value.get.return_value.execute.side_effect = http_error(404)

        with pytest.raises(GoogleNotFoundError):
            await make_drive().get_metadata("missing")


class TestOpenMedia:
    """Tests for open_media over a mock transport."""

    @pytest.mark.asyncio
    async def test_ranged_download(self, make_drive):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["range"] = request.headers.get("range")
            return httpx.Response(206, content=b"x" * 10)

        response = await make_drive(handler).open_media("file1", (10, 19))
        body = await response.aread()
        await response.aclose()

        assert body == b"x" * 10
        assert seen["path"] == "/drive/v3/files/file1"
        assert seen["params"]["alt"] == "media"
        assert "key" not in seen["params"]
        assert seen["range"] == "bytes=10-19"

    @pytest.mark.asyncio
    async def test_api_key_is_sent_as_param(self, make_drive):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, content=b"data")

        capability = AuthCapability(kind=AuthKind.API_KEY, api_key="AIza-test", can_stream=True)
        response = await make_drive(handler, capability=capability).open_media("file1")
        await response.aclose()

        assert seen["params"]["key"] == "AIza-test"

    @pytest.mark.asyncio
    async def test_upstream_error(self, make_drive):
        drive = make_drive(lambda request: httpx.Response(403))

        with pytest.raises(GoogleAccessDeniedError):
            await drive.open_media("file1")
