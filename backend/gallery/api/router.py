"""API router that aggregates all routes."""

from fastapi import APIRouter

from gallery.api.routes import gallery, health, media

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(gallery.router)
api_router.include_router(media.router)
