"""FastAPI application for the document pub.

``create_app`` builds the application around an explicit settings object
and workspace registry; nothing about the hosted workspaces lives in
module globals. ``start_server`` runs it with Uvicorn.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from ..config.settings import Settings, get_settings
from ..registry import WorkspaceRegistry
from ..store.backends import get_store_factory
from ..store.sqlite import discover_workspaces
from ..utils.logging import get_logger
from .context import PubContext
from .routes import router

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, registry: Optional[WorkspaceRegistry] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings: Settings
        Pub configuration. Defaults to the process-wide settings.
    registry: WorkspaceRegistry
        Registry to serve. Defaults to an empty registry using the
        storage backend named in ``settings``.
    """
    if settings is None:
        settings = get_settings()
    if registry is None:
        registry = WorkspaceRegistry(get_store_factory(settings))
    pub = PubContext.build(settings, registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("pub_starting")
        if settings.storage_type == "sqlite":
            await registry.load_existing(discover_workspaces(settings.data_folder))
        if settings.demo_workspace_enabled:
            await pub.seeder.ensure_seeded()

        yield

        logger.info("pub_stopping")
        await registry.close()

    app = FastAPI(
        title=settings.title or "Document Pub",
        description="Multi-workspace document pub for browsers and sync peers",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.pub = pub

    # Sync peers may be browser apps served from anywhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


def start_server(settings: Settings) -> None:
    """Start the Uvicorn web server for ``settings``."""
    if settings.storage_type == "sqlite":
        if settings.data_folder is None or not settings.data_folder.is_dir():
            raise FileNotFoundError(f"sqlite storage requires an existing data folder: {settings.data_folder}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
