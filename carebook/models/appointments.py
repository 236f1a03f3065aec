"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    MetaData,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Ownership / references (identities owned by the user directory)
    Column("patient_id", UUID(as_uuid=True), nullable=False),
    Column("doctor_id", UUID(as_uuid=True), nullable=False),
    # Scheduling; the end is date + policy duration and is not stored
    Column("date", TIMESTAMP(timezone=True), nullable=False),
    Column("status", Text, nullable=False, server_default="PENDING"),
    # Clinical payload
    Column("type", Text, nullable=False, server_default="IN_PERSON"),
    Column("reason", Text, nullable=True),
    Column("symptoms", Text, nullable=True),
    Column("diagnosis", Text, nullable=True),
    Column("prescription", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("cancel_reason", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "type IN ('IN_PERSON', 'VIRTUAL', 'HOME_VISIT')",
        name="appointments_type_check",
    ),
    Index("idx_appointments_doctor_date", "doctor_id", "date"),
    Index("idx_appointments_patient_id", "patient_id"),
    Index("idx_appointments_status_date", "status", "date"),
)
