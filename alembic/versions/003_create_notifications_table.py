"""create notifications table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19 09:20:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create in-app notifications table."""
    op.create_table(
        "notifications",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("recipient_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        # No foreign key: history survives an administrative delete
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "type IN ('NEW_APPOINTMENT', 'APPOINTMENT_CONFIRMATION', 'APPOINTMENT_CANCELLATION', "
            "'APPOINTMENT_COMPLETION', 'APPOINTMENT_RESCHEDULED', 'APPOINTMENT_NO_SHOW', "
            "'APPOINTMENT_REMINDER')",
            name="notifications_type_check",
        ),
    )

    op.create_index("idx_notifications_recipient", "notifications", ["recipient_user_id"])
    op.create_index(
        "idx_notifications_recipient_unread",
        "notifications",
        ["recipient_user_id", "is_read"],
    )
    op.create_index("idx_notifications_created_at", "notifications", [sa.text("created_at DESC")])


def downgrade() -> None:
    """Drop notifications table."""
    op.drop_index("idx_notifications_created_at", table_name="notifications")
    op.drop_index("idx_notifications_recipient_unread", table_name="notifications")
    op.drop_index("idx_notifications_recipient", table_name="notifications")
    op.drop_table("notifications")
