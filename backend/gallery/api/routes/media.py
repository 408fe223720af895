"""Media streaming and thumbnail endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header
from fastapi.responses import Response

from gallery.core.logging import get_logger
from gallery.services.context import GatewayContext, get_context
from gallery.services.drive_ids import parse_file_id
from gallery.services.stream_proxy import StreamError

logger = get_logger(__name__)

router = APIRouter(tags=["media"])


def _error_response(error: StreamError) -> Response:
    return Response(status_code=error.status_code, headers=error.headers)


def _resolve_file_id(raw_id: str) -> str | None:
    file_id = parse_file_id(raw_id)
    if file_id is None:
        logger.info("invalid_file_id", raw_id=raw_id[:100])
    return file_id


@router.get("/media/{file_id}")
async def stream_media(
    file_id: str,
    range_header: str | None = Header(default=None, alias="Range"),
    ctx: GatewayContext = Depends(get_context),
) -> Response:
    """Stream a file's bytes, honoring single byte ranges."""
    resolved = _resolve_file_id(file_id)
    if resolved is None:
        return Response(status_code=404)

    try:
        return await ctx.proxy.stream(resolved, range_header)
    except StreamError as e:
        logger.info("media_unavailable", file_id=resolved, status=e.status_code, reason=str(e))
        return _error_response(e)


@router.get("/thumbnail/{file_id}")
async def get_thumbnail(
    file_id: str,
    range_header: str | None = Header(default=None, alias="Range"),
    ctx: GatewayContext = Depends(get_context),
) -> Response:
    """Redirect to a Drive thumbnail, or stream the file when there is none."""
    resolved = _resolve_file_id(file_id)
    if resolved is None:
        return Response(status_code=404)

    try:
        return await ctx.proxy.thumbnail(resolved, range_header)
    except StreamError as e:
        logger.info("thumbnail_unavailable", file_id=resolved, status=e.status_code, reason=str(e))
        return _error_response(e)
