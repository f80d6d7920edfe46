from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rotahub.core.db import Base


class ReminderLog(Base):
    """Append-only record of a delivered rota reminder.

    A row exists only for reminders that were actually dispatched; the unique key
    is what makes overlapping sweeps idempotent.
    """

    __tablename__ = "reminder_log"
    __table_args__ = (
        UniqueConstraint(
            "contact_id", "rota_id", "occurrence_id", "timing_bucket",
            name="uq_reminder_log_assignment_bucket",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    contact_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rota_id: Mapped[str] = mapped_column(String(64), nullable=False)
    occurrence_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    timing_bucket: Mapped[int] = mapped_column(Integer, nullable=False)

    # denormalised for the history screen
    contact_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    event_title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)

    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
