"""FastAPI application for the IDMonitor backend.

Run with: uvicorn idmonitor.main:app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from idmonitor.api.documents import router as documents_router
from idmonitor.api.reminders import router as reminders_router
from idmonitor.config import get_settings
from idmonitor.db.session import engine

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables; production schemas are managed by Alembic."""
    import idmonitor.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("IDMonitor API started", extra={"database": engine.url.get_backend_name()})
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="IDMonitor API",
        description="Identity document storage with expiry reminder scheduling",
        version="1.0.0",
        lifespan=lifespan,
    )

    allowed_origins = sorted({settings.FRONTEND_URL, "http://localhost:3000"} - {""})
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(documents_router)
    application.include_router(reminders_router)

    @application.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return application


app = create_app()
