"""reminder log

Revision ID: 8d4f2b6e0a13
Revises: 3a9e1c7d5b20
Create Date: 2026-10-14

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "8d4f2b6e0a13"
down_revision: Union[str, Sequence[str], None] = "3a9e1c7d5b20"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "reminder_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("contact_id", sa.String(length=64), nullable=False),
        sa.Column("rota_id", sa.String(length=64), nullable=False),
        sa.Column("occurrence_id", sa.String(length=64), nullable=False),
        sa.Column("timing_bucket", sa.Integer(), nullable=False),
        sa.Column("contact_email", sa.String(length=320), nullable=True),
        sa.Column("event_title", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=100), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "contact_id", "rota_id", "occurrence_id", "timing_bucket",
            name="uq_reminder_log_assignment_bucket",
        ),
    )
    op.create_index("ix_reminder_log_contact_id", "reminder_log", ["contact_id"])
    op.create_index("ix_reminder_log_occurrence_id", "reminder_log", ["occurrence_id"])


def downgrade() -> None:
    op.drop_index("ix_reminder_log_occurrence_id", table_name="reminder_log")
    op.drop_index("ix_reminder_log_contact_id", table_name="reminder_log")
    op.drop_table("reminder_log")
