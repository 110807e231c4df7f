import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy import text

from keyshare import __version__
from keyshare.core.config import Settings
from keyshare.core.database import Base, create_engine, create_session_factory
from keyshare.core.errors import InvalidPath, MetadataFault, NotFound, StorageFault, Unauthorized
from keyshare.monitoring.setup import setup_monitoring
from keyshare.routes import download, files, health
from keyshare.services.object_store import ObjectStore
from keyshare.services.purger import CachePurger
from keyshare.tasks.reconcile import start_reconcile_task

logger = logging.getLogger("keyshare")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    engine = app.state.engine
    try:
        async with engine.begin() as conn:
            if engine.dialect.name == "sqlite":
                await conn.execute(text("PRAGMA journal_mode=WAL;"))
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    try:
        app.state.object_store.ensure_root()
        logger.info("Upload directory ready at %s", app.state.object_store.root)
    except OSError as e:
        logger.error(f"Upload directory initialization failed: {e}")
        raise

    if not settings.cdn_enabled:
        logger.info("CDN credentials not configured, cache purging disabled")

    reconcile_task = None
    if settings.RECONCILE_INTERVAL_SECONDS > 0:
        reconcile_task = asyncio.create_task(
            start_reconcile_task(settings, app.state.session_factory, app.state.object_store)
        )
        logger.info("Background reconcile task started")

    yield

    if reconcile_task is not None:
        reconcile_task.cancel()
        try:
            await reconcile_task
        except asyncio.CancelledError:
            logger.info("Reconcile task cancelled")
    await app.state.purger.aclose()
    await engine.dispose()
    logger.info("Application shutdown complete")


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(Unauthorized)
    async def forbidden(request: Request, exc: Unauthorized):
        return Response(status_code=403)

    @app.exception_handler(InvalidPath)
    async def invalid_path(request: Request, exc: InvalidPath):
        return PlainTextResponse(str(exc) or "No valid path given", status_code=400)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return PlainTextResponse("Not Found", status_code=404)

    @app.exception_handler(StorageFault)
    @app.exception_handler(MetadataFault)
    async def server_fault(request: Request, exc: Exception):
        logger.error("%s during %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return PlainTextResponse("Internal Server Error", status_code=500)


def create_app(settings: Settings | None = None, purger: CachePurger | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    engine = create_engine(settings)

    app = FastAPI(title="keyshare", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.object_store = ObjectStore(settings.UPLOAD_DIRECTORY)
    app.state.purger = purger or CachePurger(settings)

    _register_error_handlers(app)
    setup_monitoring(app)

    app.include_router(health)
    if settings.SERVE_UPLOADS:
        app.include_router(download)
    app.include_router(files)
    return app


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_keep_alive=60,
    )


if __name__ == "__main__":
    main()
