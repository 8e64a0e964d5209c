"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from inboxview.api.exceptions import register_exception_handlers
from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.infrastructure import Settings, build_registry, configure_logging, get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    if getattr(app.state, "registry", None) is None:
        app.state.registry = build_registry(settings)

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    await app.state.registry.close()
    logger.info("Shutdown complete")


def create_app(settings: Optional[Settings] = None, registry: Optional[MailboxRegistry] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt ``registry`` skips provider setup in the lifespan.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Read-only dashboard backend for one mailbox per address",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    from inboxview.api.routes import router

    app.include_router(router)

    return app


# Create app instance
app = create_app()
