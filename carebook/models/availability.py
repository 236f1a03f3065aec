"""Doctor availability windows table model using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Index,
    MetaData,
    SmallInteger,
    Table,
    Time,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

metadata = MetaData()

availability_windows = Table(
    "availability_windows",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("doctor_id", UUID(as_uuid=True), nullable=False),
    # 0 = Sunday, 6 = Saturday
    Column("weekday", SmallInteger, nullable=False),
    # Local clinic time of day
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("weekday BETWEEN 0 AND 6", name="availability_windows_weekday_check"),
    CheckConstraint("start_time < end_time", name="availability_windows_range_check"),
    Index("idx_availability_windows_doctor_weekday", "doctor_id", "weekday"),
)
