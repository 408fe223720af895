"""Gallery listing endpoint."""

from fastapi import APIRouter, Depends

from gallery.schemas.gallery import FallbackGalleryResponse, GalleryResponse
from gallery.services.context import GatewayContext, get_context

router = APIRouter(tags=["gallery"])


@router.get("/gallery", response_model=GalleryResponse | FallbackGalleryResponse)
async def get_gallery(
    ctx: GatewayContext = Depends(get_context),
) -> GalleryResponse | FallbackGalleryResponse:
    """Media grouped by configured section and source.

    Always answers 200; when the configuration is unusable the static
    featured items are returned instead.
    """
    return await ctx.gallery.get_gallery()
