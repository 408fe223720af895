"""Streaming proxy for Drive files.

Two paths:
- Authenticated: metadata through the retry policy, then the file bytes
  from the Drive API with 200/206 framing for Range requests.
- Public: the image mirror first, then the ``uc?export=download`` URL with
  one manual redirect hop. Every public response passes a content-type
  sniff before anything is sent, so an HTML interstitial (virus scan
  warning, sign-in page) is never served as media.

Responses are only built once the upstream body is ready to stream, so
status and headers are committed exactly once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import AsyncIterator
from urllib.parse import quote

import httpx
from fastapi.responses import RedirectResponse, Response, StreamingResponse

from gallery.core.logging import get_logger
from gallery.services.google_drive import (
    GENERIC_MIME_TYPE,
    THUMBNAIL_FIELDS,
    DriveApi,
)
from gallery.services.retry import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_RETRIES, with_retry

logger = get_logger(__name__)

IMAGE_MIRROR_URL = "https://lh3.googleusercontent.com/d/{file_id}=w{width}"
PUBLIC_DOWNLOAD_URL = "https://drive.google.com/uc"
VIDEO_THUMBNAIL_URL = "https://drive.google.com/thumbnail"

THUMBNAIL_SIZE_REGEX = re.compile(r"=s\d+$")
THUMBNAIL_CACHE_CONTROL = "public, max-age=3600"

REDIRECT_STATUSES = (302, 303)
PASSTHROUGH_HEADERS = ("content-type", "content-length", "content-range", "accept-ranges")


class StreamError(Exception):
    """A terminal proxy failure that maps onto an HTTP status."""

    def __init__(self, status_code: int, message: str = "", headers: dict[str, str] | None = None):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code
        self.headers = headers or {}


# ========== Range handling ==========


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte window of a file of known size."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def parse_range(header: str | None, size: int) -> ByteRange | None:
    """Parse a single-range ``Range`` header against a file size.

    Returns None when the header is absent, malformed or asks for several
    ranges; the caller then serves the whole file.

    Raises:
        StreamError: 416 if the range starts beyond the end of the file.
    """
    if not header:
        return None

    header = header.strip()
    if not header.lower().startswith("bytes=") or "," in header:
        return None

    start_text, sep, end_text = header[len("bytes="):].partition("-")
    if not sep:
        return None
    start_text, end_text = start_text.strip(), end_text.strip()

    try:
        if not start_text:
            # Suffix form: the last N bytes
            suffix = int(end_text)
            if suffix <= 0:
                raise StreamError(416, headers={"Content-Range": f"bytes */{size}"})
            start, end = max(size - suffix, 0), size - 1
        else:
            start = int(start_text)
            end = int(end_text) if end_text else size - 1
    except ValueError:
        return None

    if start < 0 or end < start:
        return None
    if start >= size:
        raise StreamError(416, headers={"Content-Range": f"bytes */{size}"})

    return ByteRange(start=start, end=min(end, size - 1), size=size)


async def iter_window(
    upstream: httpx.Response,
    skip: int = 0,
    limit: int | None = None,
) -> AsyncIterator[bytes]:
    """Relay an upstream body, optionally cutting it to a byte window.

    Closes the upstream response when done, including when the client
    disconnects and the iterator is closed early.
    """
    sent = 0
    try:
        async for chunk in upstream.aiter_bytes():
            if skip:
                if len(chunk) <= skip:
                    skip -= len(chunk)
                    continue
                chunk = chunk[skip:]
                skip = 0
            if limit is not None:
                remaining = limit - sent
                if remaining <= 0:
                    break
                chunk = chunk[:remaining]
            sent += len(chunk)
            yield chunk
    finally:
        await upstream.aclose()


def content_disposition(name: str) -> str:
    """Inline disposition for a file name, without embedded quotes."""
    safe = name.replace('"', "")
    try:
        safe.encode("latin-1")
    except UnicodeEncodeError:
        ascii_name = safe.encode("ascii", "ignore").decode() or "file"
        return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(safe)}"
    return f'inline; filename="{safe}"'


# ========== Public fallback ==========


class PublicStreamState(str, Enum):
    """States of a public-URL fetch."""

    RESOLVING = "resolving"
    FOLLOWING_REDIRECT = "following_redirect"
    SNIFFING = "sniffing"
    STREAMING = "streaming"
    FAILED = "failed"


_TRANSITIONS: dict[PublicStreamState, set[PublicStreamState]] = {
    PublicStreamState.RESOLVING: {
        PublicStreamState.FOLLOWING_REDIRECT,
        PublicStreamState.SNIFFING,
        PublicStreamState.FAILED,
    },
    PublicStreamState.FOLLOWING_REDIRECT: {PublicStreamState.SNIFFING, PublicStreamState.FAILED},
    PublicStreamState.SNIFFING: {PublicStreamState.STREAMING, PublicStreamState.FAILED},
    PublicStreamState.STREAMING: set(),
    PublicStreamState.FAILED: set(),
}


class PublicStreamFetch:
    """Resolves a public URL for a file, one state transition at a time.

    ``Resolving -> FollowingRedirect -> Sniffing -> Streaming | Failed``.
    Reaching ``STREAMING`` requires passing the sniff, which rejects HTML.
    """

    def __init__(
        self,
        file_id: str,
        http: httpx.AsyncClient,
        range_header: str | None = None,
        image_width: int = 1000,
    ):
        self.file_id = file_id
        self.state = PublicStreamState.RESOLVING
        self._http = http
        self._range_header = range_header
        self._image_width = image_width
        self._upstream: httpx.Response | None = None

    def _advance(self, state: PublicStreamState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid stream transition {self.state.value} -> {state.value}")
        self.state = state

    async def _fail(self, status_code: int, reason: str, response: httpx.Response | None = None) -> StreamError:
        if response is not None:
            await response.aclose()
        self._advance(PublicStreamState.FAILED)
        logger.warning(
            "public_stream_failed",
            file_id=self.file_id,
            status=status_code,
            reason=reason,
        )
        return StreamError(status_code, reason)

    async def _get(
        self,
        url: str | httpx.URL,
        follow_redirects: bool,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = {"Range": self._range_header} if self._range_header else {}
        request = self._http.build_request("GET", url, params=params, headers=headers)
        return await self._http.send(request, stream=True, follow_redirects=follow_redirects)

    async def resolve(self) -> httpx.Response:
        """Run the machine to ``STREAMING`` and return the upstream response.

        Raises:
            StreamError: 404 for an interstitial page or exhausted fallbacks,
                502 when the upstream could not be fetched at all.
        """
        response = await self._try_image_mirror()
        if response is None:
            try:
                response = await self._get(
                    PUBLIC_DOWNLOAD_URL,
                    follow_redirects=False,
                    params={"export": "download", "id": self.file_id},
                )
            except httpx.HTTPError as e:
                raise await self._fail(502, f"download fetch failed: {e}")

            if response.status_code in REDIRECT_STATUSES:
                location = response.headers.get("location")
                origin = response.request.url
                await response.aclose()
                self._advance(PublicStreamState.FOLLOWING_REDIRECT)
                if not location:
                    raise await self._fail(502, "redirect without location")
                try:
                    response = await self._get(
                        origin.join(location),
                        follow_redirects=False,
                    )
                except httpx.HTTPError as e:
                    raise await self._fail(502, f"redirect fetch failed: {e}")

        self._advance(PublicStreamState.SNIFFING)
        if not 200 <= response.status_code < 300:
            raise await self._fail(404, f"upstream status {response.status_code}", response)

        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type.lower():
            logger.warning("public_stream_html_interstitial", file_id=self.file_id)
            raise await self._fail(404, "upstream returned an HTML page", response)

        self._advance(PublicStreamState.STREAMING)
        self._upstream = response
        return response

    async def _try_image_mirror(self) -> httpx.Response | None:
        url = IMAGE_MIRROR_URL.format(
            file_id=quote(self.file_id, safe=""), width=self._image_width
        )
        try:
            response = await self._get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug("image_mirror_unavailable", file_id=self.file_id, error=str(e))
            return None

        content_type = response.headers.get("content-type", "").lower()
        if 200 <= response.status_code < 300 and "text/html" not in content_type:
            return response

        await response.aclose()
        return None

    def to_response(self) -> StreamingResponse:
        """Relay the sniffed upstream response to the client."""
        if self.state is not PublicStreamState.STREAMING or self._upstream is None:
            raise RuntimeError("public stream is not ready")

        upstream = self._upstream
        headers = {
            name: upstream.headers[name]
            for name in PASSTHROUGH_HEADERS
            if name in upstream.headers and name != "content-type"
        }
        if "content-encoding" in upstream.headers:
            # The body is relayed decoded, so the upstream length no longer applies
            headers.pop("content-length", None)
        status = 206 if upstream.status_code == 206 else 200
        return StreamingResponse(
            iter_window(upstream),
            status_code=status,
            headers=headers,
            media_type=upstream.headers.get("content-type", GENERIC_MIME_TYPE),
        )


# ========== Proxy ==========


class StreamProxy:
    """Serves file bytes and thumbnails for the media endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        drive: DriveApi | None = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        thumbnail_size: int = 400,
        image_width: int = 1000,
    ):
        self._http = http
        self.drive = drive
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.thumbnail_size = thumbnail_size
        self.image_width = image_width

    async def stream(self, file_id: str, range_header: str | None = None) -> Response:
        """Stream a file, authenticated when possible.

        Raises:
            StreamError: When the file cannot be served (404, 416, 502).
        """
        if self.drive is not None and self.drive.can_stream:
            try:
                return await self._stream_authenticated(file_id, range_header)
            except StreamError:
                raise
            except Exception as e:
                logger.warning(
                    "drive_stream_failed",
                    file_id=file_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        fetch = PublicStreamFetch(
            file_id, self._http, range_header=range_header, image_width=self.image_width
        )
        await fetch.resolve()
        return fetch.to_response()

    async def _stream_authenticated(self, file_id: str, range_header: str | None) -> Response:
        assert self.drive is not None
        meta = await with_retry(
            partial(self.drive.get_metadata, file_id),
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            operation_name="get_metadata",
        )
        mime_type = meta.mime_type or GENERIC_MIME_TYPE
        size = meta.size

        headers = {"Accept-Ranges": "bytes"}
        if meta.name:
            headers["Content-Disposition"] = content_disposition(meta.name)

        byte_range = parse_range(range_header, size) if size else None

        if byte_range is not None:
            upstream = await self.drive.open_media(file_id, (byte_range.start, byte_range.end))
            # An upstream that ignored the Range header sends the whole file
            skip = byte_range.start if upstream.status_code == 200 else 0
            headers["Content-Range"] = byte_range.content_range
            headers["Content-Length"] = str(byte_range.length)
            return StreamingResponse(
                iter_window(upstream, skip=skip, limit=byte_range.length),
                status_code=206,
                headers=headers,
                media_type=mime_type,
            )

        upstream = await self.drive.open_media(file_id)
        if size is not None:
            headers["Content-Length"] = str(size)
        return StreamingResponse(
            iter_window(upstream),
            status_code=200,
            headers=headers,
            media_type=mime_type,
        )

    async def thumbnail(self, file_id: str, range_header: str | None = None) -> Response:
        """Redirect to a Drive-generated thumbnail, else stream the file."""
        if self.drive is not None and self.drive.can_stream:
            try:
                meta = await with_retry(
                    partial(self.drive.get_metadata, file_id, THUMBNAIL_FIELDS),
                    max_retries=self.max_retries,
                    initial_delay=self.initial_delay,
                    operation_name="get_thumbnail",
                )
                if meta.thumbnail_link:
                    target = THUMBNAIL_SIZE_REGEX.sub(f"=s{self.thumbnail_size}", meta.thumbnail_link)
                    return RedirectResponse(
                        target,
                        status_code=302,
                        headers={"Cache-Control": THUMBNAIL_CACHE_CONTROL},
                    )
                if meta.mime_type and meta.mime_type.startswith("video/"):
                    return RedirectResponse(
                        str(httpx.URL(
                            VIDEO_THUMBNAIL_URL,
                            params={"id": file_id, "sz": f"w{self.thumbnail_size}"},
                        )),
                        status_code=302,
                        headers={"Cache-Control": THUMBNAIL_CACHE_CONTROL},
                    )
            except Exception as e:
                logger.warning("thumbnail_lookup_failed", file_id=file_id, error=str(e))

        return await self.stream(file_id, range_header)
