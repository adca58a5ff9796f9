from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from app.core.settings import get_settings


@lru_cache
def get_engine(database_url: str | None = None) -> Engine:
    settings = get_settings()
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        # Local runs and tests: one shared connection so an in-memory
        # database survives across sessions and worker threads.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    # Note: do not connect here; SQLAlchemy will connect lazily.
    return create_engine(
        url,
        pool_pre_ping=True,
        future=True,
    )
