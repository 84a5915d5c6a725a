"""Booking outcome models: conflicts, validation results and service results."""

from typing import List, Optional

from pydantic import BaseModel, Field

from models.appointment import Appointment


class TimeConflict(BaseModel):
    """An existing appointment that a candidate interval collides with."""

    appointment_id: str
    customer_name: str
    conflict_time: str = Field(..., description="Existing window, e.g. '10:00 - 11:00'")


class ValidationResult(BaseModel):
    """
    Outcome of booking validation.

    Errors are ordered the way the checks run so a form can show every
    problem at once.
    """

    errors: List[str] = Field(default_factory=list)
    conflicts: List[TimeConflict] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class BookingResult(BaseModel):
    """Result of an appointment service write."""

    success: bool
    appointment: Optional[Appointment] = None
    errors: List[str] = Field(default_factory=list)
    conflicts: List[TimeConflict] = Field(default_factory=list)

    @classmethod
    def failed(cls, errors: List[str], conflicts: Optional[List[TimeConflict]] = None) -> "BookingResult":
        return cls(success=False, errors=errors, conflicts=conflicts or [])
