"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from gallery.api.router import api_router
from gallery.core.config import Settings, settings
from gallery.core.logging import get_logger, setup_logging
from gallery.services.context import GatewayContext

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    config: Settings = app.state.settings
    gateway = GatewayContext.create(config)
    app.state.gateway = gateway
    logger.info(
        "starting_application",
        app_name=config.app_name,
        version=config.version,
        host=config.host,
        port=config.port,
        mode=gateway.capability.mode,
        endpoints=["/api/gallery", "/api/media/{id}", "/api/thumbnail/{id}", "/api/health"],
    )
    yield
    await gateway.aclose()
    logger.info("shutting_down_application")


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to run with. Defaults to the environment settings.
    """
    config = config or settings
    setup_logging(config)

    app = FastAPI(
        title=config.app_name,
        description="Club website gallery backed by Google Drive folders",
        version=config.version,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = config
    app.include_router(api_router)

    frontend_dir = config.frontend_dir
    if frontend_dir.exists():
        assets_dir = frontend_dir / "assets"
        if assets_dir.exists():
            app.mount("/assets", StaticFiles(directory=str(assets_dir)), name="assets")

        @app.get("/")
        async def serve_root() -> FileResponse:
            """Serve the frontend application."""
            return FileResponse(frontend_dir / "index.html")

        @app.get("/{filename:path}")
        async def serve_static(filename: str) -> FileResponse:
            """Serve static files or index.html for SPA routes."""
            if filename.startswith("api/"):
                raise HTTPException(status_code=404, detail="API endpoint not found")

            file_path = (frontend_dir / filename).resolve()
            if (
                file_path.is_relative_to(frontend_dir.resolve())
                and file_path.is_file()
            ):
                return FileResponse(file_path)
            return FileResponse(frontend_dir / "index.html")

    return app


app = create_app()


def main() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "gallery.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
