"""Notifications table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Index,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

metadata = MetaData()

notifications = Table(
    "notifications",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("recipient_user_id", UUID(as_uuid=True), nullable=False),
    Column("type", String(50), nullable=False),
    Column("title", Text, nullable=False),
    Column("message", Text, nullable=False),
    # Kept without a foreign key so history outlives an administrative delete
    Column("appointment_id", UUID(as_uuid=True), nullable=True),
    Column("is_read", Boolean, nullable=False, server_default=text("false")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "type IN ('NEW_APPOINTMENT', 'APPOINTMENT_CONFIRMATION', 'APPOINTMENT_CANCELLATION', "
        "'APPOINTMENT_COMPLETION', 'APPOINTMENT_RESCHEDULED', 'APPOINTMENT_NO_SHOW', "
        "'APPOINTMENT_REMINDER')",
        name="notifications_type_check",
    ),
    Index("idx_notifications_recipient", "recipient_user_id"),
    Index("idx_notifications_recipient_unread", "recipient_user_id", "is_read"),
    Index("idx_notifications_created_at", "created_at", postgresql_ops={"created_at": "DESC"}),
)
