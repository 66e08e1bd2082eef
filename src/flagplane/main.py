"""FastAPI application factory for the snapshot responder."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from flagplane import __version__
from flagplane.api import create_api_router
from flagplane.config import Settings, get_settings
from flagplane.services.cache import VersionedResponseCache, document_renderer
from flagplane.services.distribution import Watcher
from flagplane.store import build_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start the watcher if needed and stop it on shutdown."""
    watcher: Watcher = app.state.watcher
    settings: Settings = app.state.settings

    # Startup
    if not watcher.running:
        watcher.start()
    logger.info(f"Serving namespace {settings.namespace} at {settings.server.endpoint}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    watcher.stop()


def create_app(settings: Settings | None = None, watcher: Watcher | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Resolved settings (default: :func:`get_settings`)
        watcher: Watcher feeding the responder (default: one over the production store)
    """
    settings = settings or get_settings()
    watcher = watcher or Watcher(settings, build_store(settings))

    app = FastAPI(
        title="flagplane",
        version=__version__,
        description="Feature flag snapshots for namespace readers.",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.watcher = watcher
    app.state.response_cache = VersionedResponseCache(
        document_renderer(settings.server.json_root)
    )

    app.include_router(create_api_router(settings.server.endpoint))

    return app


def main() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "flagplane.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    main()
