from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rotahub.core.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(Base):
    """One JSON document of a named collection (events, occurrences, rotas, ...)."""

    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint("collection", "record_id", name="uq_records_collection_record_id"),
    )

    pk: Mapped[int] = mapped_column(primary_key=True)

    collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_id: Mapped[str] = mapped_column(String(64), nullable=False)

    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
