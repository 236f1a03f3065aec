"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from carebook.core.timeutils import as_utc


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Statuses that hold a doctor's time slot
ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


class AppointmentType(str, Enum):
    """Appointment type enumeration."""

    IN_PERSON = "IN_PERSON"
    VIRTUAL = "VIRTUAL"
    HOME_VISIT = "HOME_VISIT"


class ClinicalFields(BaseModel):
    """Clinical payload carried alongside an appointment."""

    type: AppointmentType | None = None
    reason: str | None = Field(None, max_length=500)
    symptoms: str | None = Field(None, max_length=2000)
    diagnosis: str | None = Field(None, max_length=2000)
    prescription: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=1000)
    cancel_reason: str | None = Field(None, max_length=500)

    def provided(self) -> dict[str, Any]:
        """Return only the fields the caller actually set."""
        return self.model_dump(exclude_none=True)


class Appointment(BaseModel):
    """Appointment record."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    date: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    type: AppointmentType = AppointmentType.IN_PERSON
    reason: str | None = None
    symptoms: str | None = None
    diagnosis: str | None = None
    prescription: str | None = None
    notes: str | None = None
    cancel_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("date", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Store every timestamp as aware UTC."""
        return as_utc(v)


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    doctor_id: UUID
    date: datetime
    type: AppointmentType = AppointmentType.IN_PERSON
    reason: str = Field(..., min_length=1, max_length=500)
    symptoms: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=1000)
    patient_id: UUID | None = Field(
        None,
        description="Patient to book for; only administrators may set it",
    )

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """Interpret naive datetimes as UTC."""
        return as_utc(v)

    def clinical_fields(self) -> ClinicalFields:
        """Intake fields recorded with the booking."""
        return ClinicalFields(
            type=self.type,
            reason=self.reason,
            symptoms=self.symptoms,
            notes=self.notes,
        )


class AppointmentUpdate(ClinicalFields):
    """Schema for the combined update: status, date and clinical fields."""

    status: str | None = Field(None, description="Target status")
    date: datetime | None = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime | None) -> datetime | None:
        """Interpret naive datetimes as UTC."""
        return as_utc(v) if v is not None else None

    def clinical_fields(self) -> ClinicalFields:
        """Clinical part of the update."""
        return ClinicalFields.model_validate(
            self.model_dump(include=set(ClinicalFields.model_fields))
        )


class AppointmentStatusUpdate(ClinicalFields):
    """Schema for updating appointment status."""

    status: str = Field(..., description="Target status")

    def clinical_fields(self) -> ClinicalFields:
        """Clinical part of the update."""
        return ClinicalFields.model_validate(
            self.model_dump(include=set(ClinicalFields.model_fields))
        )


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to a new start time."""

    date: datetime

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """Interpret naive datetimes as UTC."""
        return as_utc(v)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[Appointment]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
