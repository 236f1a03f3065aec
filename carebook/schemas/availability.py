"""Doctor availability schemas."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AvailabilityWindowBase(BaseModel):
    """Weekly recurring window during which a doctor accepts appointments."""

    weekday: int = Field(..., ge=0, le=6, description="0 = Sunday, 6 = Saturday")
    start_time: time
    end_time: time
    is_available: bool = True

    @model_validator(mode="after")
    def validate_range(self) -> "AvailabilityWindowBase":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityWindowIn(AvailabilityWindowBase):
    """Schema for one window in a schedule replacement."""


class AvailabilityWindow(AvailabilityWindowBase):
    """Stored availability window."""

    doctor_id: UUID

    model_config = {"from_attributes": True}

    def contains(self, time_of_day: time) -> bool:
        """Check whether a local time of day falls inside [start_time, end_time)."""
        return self.start_time <= time_of_day < self.end_time


class ScheduleUpdate(BaseModel):
    """Schema for replacing a doctor's weekly schedule."""

    windows: list[AvailabilityWindowIn]


class ScheduleResponse(BaseModel):
    """Schema for a doctor's weekly schedule."""

    doctor_id: UUID
    windows: list[AvailabilityWindow]


class AvailableSlotsResponse(BaseModel):
    """Schema for free appointment start times on a day."""

    doctor_id: UUID
    date: date
    available_slots: list[datetime]
