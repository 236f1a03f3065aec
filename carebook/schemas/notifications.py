"""In-app notification schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from carebook.core.timeutils import utcnow


class NotificationType(str, Enum):
    """Notification type enumeration."""

    NEW_APPOINTMENT = "NEW_APPOINTMENT"
    APPOINTMENT_CONFIRMATION = "APPOINTMENT_CONFIRMATION"
    APPOINTMENT_CANCELLATION = "APPOINTMENT_CANCELLATION"
    APPOINTMENT_COMPLETION = "APPOINTMENT_COMPLETION"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    APPOINTMENT_NO_SHOW = "APPOINTMENT_NO_SHOW"
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"


class Notification(BaseModel):
    """Notification addressed to one user."""

    id: UUID = Field(default_factory=uuid4)
    recipient_user_id: UUID
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    appointment_id: UUID | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Schema for a user's notification history."""

    notifications: list[Notification]
    total: int
    unread: int
    page: int
    page_size: int


class MarkAllReadResponse(BaseModel):
    """Schema for the bulk mark-as-read result."""

    updated: int
