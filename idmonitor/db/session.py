"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlmodel import Session, create_engine

from idmonitor.config import get_settings


def normalize_database_url(url: str) -> str:
    """Route plain postgresql:// URLs to the psycopg v3 driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def engine_connect_args(url: str) -> dict[str, Any]:
    """Driver connect arguments for a normalized database URL."""
    if url.startswith("postgresql"):
        return {"sslmode": "require"}
    if url.startswith("sqlite"):
        # Sessions are handed across FastAPI's threadpool
        return {"check_same_thread": False}
    return {}


database_url = normalize_database_url(get_settings().DATABASE_URL)

engine = create_engine(
    database_url,
    echo=False,
    pool_pre_ping=True,
    connect_args=engine_connect_args(database_url),
)


def get_session() -> Generator[Session, None, None]:
    """Yield a session bound to the application engine."""
    with Session(engine) as session:
        yield session
