from app.db.base import Base
from app.db.engine import get_engine
from app.db.init_db import init_db
from app.db.session import get_sessionmaker

# Ensure ORM models are registered on Base.metadata when importing app.db.
from app.db import models as _models  # noqa: F401

__all__ = [
    "Base",
    "get_engine",
    "get_sessionmaker",
    "init_db",
]
