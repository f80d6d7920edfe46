from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from rotahub.core.config import settings


class Base(DeclarativeBase):
    pass


def engine_options(url: str) -> dict[str, Any]:
    """create_engine kwargs for ``url``.

    Request handlers run in FastAPI's threadpool, so SQLite connections must be
    shareable across threads; server databases get pre-ping for dropped connections.
    """
    opts: dict[str, Any] = {"echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        opts["connect_args"] = {"check_same_thread": False}
    else:
        opts["pool_pre_ping"] = True
    return opts


engine = create_engine(settings.database_url, **engine_options(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    """Request-scoped Session for routers; service functions commit their own writes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# register every table on Base.metadata (create_all, alembic autogenerate)
import rotahub.models  # noqa: F401
