"""Database models."""

from carebook.models.appointments import appointments
from carebook.models.availability import availability_windows
from carebook.models.notifications import notifications

__all__ = [
    "appointments",
    "availability_windows",
    "notifications",
]
