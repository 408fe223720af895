"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import httpx
import pytest

from gallery.core.config import Settings
from gallery.services.cache import CacheStore
from gallery.services.credentials import AuthCapability, AuthKind, CredentialProvider
from gallery.services.google_drive import DriveApi

FOLDER_ID = "1naEpUA2MEiKsLnkyolh3Iw_KKIeFD06o"
OTHER_FOLDER_ID = "1ZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZ"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def drive_file(file_id: str, name: str, mime_type: str, **extra) -> dict:
    """A files().list entry as returned by the Drive API."""
    return {"id": file_id, "name": name, "mimeType": mime_type, **extra}


def file_id(n: int) -> str:
    """A valid-looking 33 character Drive ID."""
    return f"1file{n:04d}" + "x" * 24


def service_capability() -> AuthCapability:
    creds = MagicMock()
    creds.valid = True
    return AuthCapability(
        kind=AuthKind.SERVICE_ACCOUNT,
        credentials=creds,
        can_list=True,
        can_stream=True,
    )


def mock_http(handler: Handler) -> httpx.AsyncClient:
    """Async client whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network disabled in tests", request=request)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> CacheStore:
    return CacheStore(clock=clock)


@pytest.fixture
def drive_service() -> MagicMock:
    """Mock googleapiclient Drive resource."""
    return MagicMock()


@pytest.fixture
def make_drive(drive_service: MagicMock) -> Callable[..., DriveApi]:
    """Build a DriveApi around the mocked service and an optional transport."""

    def _make(handler: Handler = unreachable, capability: AuthCapability | None = None) -> DriveApi:
        return DriveApi(
            capability or service_capability(),
            mock_http(handler),
            service=drive_service,
        )

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at temporary paths, with retries that do not sleep."""
    return Settings(
        gallery_config_path=tmp_path / "gallery.json",
        frontend_dir=tmp_path / "dist",
        retry_initial_delay=0,
    )


@pytest.fixture
def no_credentials() -> CredentialProvider:
    return CredentialProvider()


@pytest.fixture
def write_config(settings: Settings) -> Callable[[dict], Path]:
    """Write a gallery configuration document to the configured path."""

    def _write(document: dict) -> Path:
        settings.gallery_config_path.write_text(json.dumps(document), encoding="utf-8")
        return settings.gallery_config_path

    return _write


@pytest.fixture
def make_client(settings: Settings, no_credentials: CredentialProvider, cache: CacheStore):
    """Build a TestClient whose upstream Google traffic goes to ``handler``.

    The lifespan is not run; routes get a context wired to the mock transport.
    """
    from fastapi.testclient import TestClient

    from gallery.main import create_app
    from gallery.services.context import GatewayContext, get_context

    def _make(
        handler: Handler = unreachable,
        credentials: CredentialProvider | None = None,
    ) -> TestClient:
        app = create_app(settings)
        ctx = GatewayContext.create(
            settings,
            http=mock_http(handler),
            cache=cache,
            credentials=credentials or no_credentials,
        )
        app.dependency_overrides[get_context] = lambda: ctx
        return TestClient(app)

    return _make
