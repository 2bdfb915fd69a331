# TimeAudit - Main Application
# FastAPI application factory and startup

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from timeaudit import __version__
from timeaudit.config import Settings, get_settings
from timeaudit.database import check_connection, create_cache_engine, create_session_factory, init_db
from timeaudit.services.identity import IdentityResolver
from timeaudit.services.persistence import LocalCache, PersistenceGateway
from timeaudit.services.remote_store import RemoteStore
from timeaudit.services.workspace import Workspace


logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_remote(settings: Settings) -> Optional[RemoteStore]:
    """Remote store client, or None in local-only mode."""
    if not settings.remote_configured:
        return None
    return RemoteStore(settings.remote_url, settings.remote_key, timeout=settings.remote_timeout)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Pass settings to
    override the environment, e.g. an in-memory database in tests.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan events.

        Startup opens the local cache and loads every collection.
        Shutdown waits for remote mirrors still in flight.
        """
        configure_logging(settings.log_level)
        logger.info("Starting %s...", settings.app_name)

        cache_engine = create_cache_engine(settings.database_url, echo=settings.debug)
        init_db(cache_engine)
        check_connection(cache_engine)
        logger.info("Local cache: OK")

        remote = build_remote(settings)
        gateway = PersistenceGateway(
            LocalCache(create_session_factory(cache_engine)),
            remote,
            max_warnings=settings.max_sync_warnings,
        )
        logger.info("Storage mode: %s", gateway.mode)

        workspace = Workspace(gateway, timezone=settings.timezone)
        await workspace.load()

        app.state.cache_engine = cache_engine
        app.state.workspace = workspace
        app.state.identity = IdentityResolver(remote, timeout=settings.auth_timeout_seconds)

        yield

        logger.info("Shutting down %s...", settings.app_name)
        await gateway.drain()
        cache_engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Weekly timesheets, approvals and leave tracking",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Include routers
    from timeaudit.routes import admin, projects, sync, time_off, timesheets, users
    app.include_router(timesheets.router)
    app.include_router(projects.router)
    app.include_router(time_off.router)
    app.include_router(admin.router)
    app.include_router(users.router)
    app.include_router(sync.router)

    # Health check endpoint
    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for monitoring."""
        try:
            check_connection(request.app.state.cache_engine)
            db_status = "healthy"
        except Exception as e:
            db_status = f"unhealthy: {e}"

        return {
            "status": "ok",
            "app": settings.app_name,
            "database": db_status,
            "storage": request.app.state.workspace.gateway.mode,
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "timeaudit.main:app",
        host="0.0.0.0",
        port=8001,
        reload=get_settings().debug,
    )
