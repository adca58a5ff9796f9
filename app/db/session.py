from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from app.db.engine import get_engine


def get_sessionmaker(database_url: str | None = None) -> sessionmaker[Session]:
    engine = get_engine(database_url)

    # expire_on_commit=False: checkout rows are read after their transaction.
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )
