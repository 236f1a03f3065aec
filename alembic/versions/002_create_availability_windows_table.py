"""create availability windows table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 09:10:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create weekly availability windows for doctors."""
    op.create_table(
        "availability_windows",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("weekday", sa.SmallInteger(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_available", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("weekday BETWEEN 0 AND 6", name="availability_windows_weekday_check"),
        sa.CheckConstraint("start_time < end_time", name="availability_windows_range_check"),
    )

    op.create_index(
        "idx_availability_windows_doctor_weekday",
        "availability_windows",
        ["doctor_id", "weekday"],
    )


def downgrade() -> None:
    """Drop availability windows table."""
    op.drop_index("idx_availability_windows_doctor_weekday", table_name="availability_windows")
    op.drop_table("availability_windows")
