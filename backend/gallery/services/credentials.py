"""Google credential discovery.

Provides a memoized ``AuthCapability`` built from, in priority order:
1. an inline service account key (JSON string),
2. a credentials file of any type google-auth understands (service
   account, authorized user, external account),
3. a bare API key.

Failures of an individual source are logged and the next source is tried.
When nothing usable is configured the capability is ``NONE`` and the
gateway runs purely on public scraping and mirror URLs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import google.auth
from google.oauth2 import service_account

from gallery.core.logging import get_logger

if TYPE_CHECKING:
    from gallery.core.config import Settings

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.readonly"]


class AuthKind(str, Enum):
    """Which kind of credential backs a capability."""

    NONE = "none"
    SERVICE_ACCOUNT = "service-account"
    CREDENTIALS_FILE = "credentials-file"
    API_KEY = "api-key"


@dataclass(frozen=True)
class AuthCapability:
    """What the gateway may do against the authenticated Drive API.

    A service account can list folders and stream files. An API key can only
    read public files (and list folders when explicitly enabled). ``NONE``
    means every request goes through the public fallbacks.
    """

    kind: AuthKind
    credentials: Any | None = None
    api_key: str | None = None
    can_list: bool = False
    can_stream: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.kind is not AuthKind.NONE

    @property
    def mode(self) -> str:
        """Human readable mode reported by the health endpoint and startup log."""
        if self.kind in (AuthKind.SERVICE_ACCOUNT, AuthKind.CREDENTIALS_FILE):
            return "authenticated"
        if self.kind is AuthKind.API_KEY:
            return "api-key"
        return "public-fallback"


NO_CAPABILITY = AuthCapability(kind=AuthKind.NONE)


class CredentialProvider:
    """Resolves and memoizes the process-wide Drive capability.

    The capability is resolved once and kept for the life of the process;
    ``invalidate()`` forces the next ``get_capability()`` to resolve again.
    """

    def __init__(
        self,
        service_account_key: str | None = None,
        credentials_file: str | Path | None = None,
        api_key: str | None = None,
        api_key_listing: bool = False,
    ):
        self._service_account_key = service_account_key
        self._credentials_file = Path(credentials_file) if credentials_file else None
        self._api_key = api_key
        self._api_key_listing = api_key_listing
        self._capability: AuthCapability | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> CredentialProvider:
        return cls(
            service_account_key=settings.google_service_account_key,
            credentials_file=settings.google_application_credentials,
            api_key=settings.google_api_key,
            api_key_listing=settings.api_key_listing,
        )

    def get_capability(self) -> AuthCapability:
        """Return the memoized capability, resolving it on first use."""
        if self._capability is None:
            self._capability = self._resolve()
            logger.info("auth_capability_resolved", mode=self._capability.mode)
        return self._capability

    def invalidate(self) -> None:
        """Drop the memoized capability."""
        self._capability = None

    def _resolve(self) -> AuthCapability:
        if self._service_account_key:
            try:
                info = json.loads(self._service_account_key)
                creds = service_account.Credentials.from_service_account_info(
                    info, scopes=SCOPES
                )
                return AuthCapability(
                    kind=AuthKind.SERVICE_ACCOUNT,
                    credentials=creds,
                    can_list=True,
                    can_stream=True,
                )
            except Exception as e:
                logger.error(
                    "credential_load_failed",
                    source="service_account_key",
                    error=str(e),
                )

        if self._credentials_file:
            try:
                creds, _project = google.auth.load_credentials_from_file(
                    str(self._credentials_file), scopes=SCOPES
                )
                return AuthCapability(
                    kind=AuthKind.CREDENTIALS_FILE,
                    credentials=creds,
                    can_list=True,
                    can_stream=True,
                )
            except Exception as e:
                logger.error(
                    "credential_load_failed",
                    source="credentials_file",
                    path=str(self._credentials_file),
                    error=str(e),
                )

        if self._api_key:
            return AuthCapability(
                kind=AuthKind.API_KEY,
                api_key=self._api_key,
                can_list=self._api_key_listing,
                can_stream=True,
            )

        logger.warning("no_google_credentials", detail="Drive access limited to public fallbacks")
        return NO_CAPABILITY
