"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from taskhub import __version__
from taskhub.api.v1 import tasks, uploads
from taskhub.core.config import Settings, settings
from taskhub.core.logging import get_logger, setup_logging
from taskhub.core.middleware import install_middleware
from taskhub.db.session import build_engine, build_session_factory, create_tables
from taskhub.ingestion.service import build_ingestion_service

API_PREFIX = "/api/v1"


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the application; everything stateful is created in the lifespan."""
    config = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle hooks."""
        setup_logging(
            config.LOG_LEVEL,
            json_output=config.APP_ENV != "development",
            log_dir=config.LOG_DIR,
        )
        logger = get_logger("startup")

        engine = build_engine(config.DATABASE_URL)
        await create_tables(engine)
        session_factory = build_session_factory(engine)

        ingestion = build_ingestion_service(config, session_factory)
        await ingestion.start()

        app.state.settings = config
        app.state.session_factory = session_factory
        app.state.ingestion = ingestion

        logger.info("Application starting", env=config.APP_ENV, upload_dir=str(ingestion.files.upload_dir))
        try:
            yield
        finally:
            logger.info("Application shutting down")
            await ingestion.aclose()
            await engine.dispose()

    app = FastAPI(
        title="Task Service",
        description="Task CRUD with asynchronous bulk ingestion",
        version=__version__,
        lifespan=lifespan,
    )
    install_middleware(app)

    app.include_router(tasks.router, prefix=API_PREFIX)
    app.include_router(uploads.router, prefix=API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, object]:
        """Public health-check endpoint."""
        dispatcher = app.state.ingestion.dispatcher
        return {
            "status": "ok",
            "env": config.APP_ENV,
            "ingestion": {
                "running": dispatcher.running,
                "pending": dispatcher.pending,
                "dropped": dispatcher.dropped,
            },
        }

    return app


app = create_app()
