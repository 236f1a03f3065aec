"""Authenticated actor schemas."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, model_validator


class Role(str, Enum):
    """Portal roles."""

    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """Party performing an operation, resolved from the access token."""

    user_id: UUID
    role: Role
    patient_id: UUID | None = None
    doctor_id: UUID | None = None

    @model_validator(mode="after")
    def link_role_identity(self) -> "Actor":
        """Default the role-linked identity to the user id."""
        if self.role == Role.PATIENT and self.patient_id is None:
            self.patient_id = self.user_id
        if self.role == Role.DOCTOR and self.doctor_id is None:
            self.doctor_id = self.user_id
        return self

    @property
    def is_admin(self) -> bool:
        """Check if the actor is an administrator."""
        return self.role == Role.ADMIN
