"""FastAPI application."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from log_ingestor.api.logs import router as logs_router
from log_ingestor.core.auth import verify_api_key
from log_ingestor.core.config import settings
from log_ingestor.core.logging import configure_logging
from log_ingestor.services import IngestionService
from log_ingestor.storage import LogStorage, create_storage

logger = logging.getLogger(__name__)


def create_app(storage: LogStorage | None = None) -> FastAPI:
    """Create the application.

    When ``storage`` is given it is used as-is and left open on shutdown;
    otherwise the configured backend is built at startup and closed on exit.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)

        owns_storage = storage is None
        app.state.storage = create_storage(settings) if owns_storage else storage
        app.state.ingestion_service = IngestionService(app.state.storage)
        logger.info(f"Log ingestor started with {type(app.state.storage).__name__}")

        yield

        if owns_storage:
            app.state.storage.close()
        logger.info("Log ingestor stopped")

    app = FastAPI(
        title="Log Ingestor API",
        description="Ingests structured log records and serves filtered queries",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "X-API-Key"],
        expose_headers=["Content-Length"],
        max_age=12 * 60 * 60,
    )

    app.include_router(logs_router, tags=["logs"])

    @app.get("/health")
    def health_check(api_key: str = Depends(verify_api_key)):
        """Health check endpoint."""
        return {"status": "healthy"}

    ui_dir = Path(settings.ui_dir)
    if ui_dir.is_dir():
        app.mount("/ui", StaticFiles(directory=ui_dir), name="ui")

        @app.get("/", include_in_schema=False)
        def index():
            return FileResponse(ui_dir / "index.html")

        logger.info(f"Serving log viewer from {ui_dir}")

    return app


app = create_app()
