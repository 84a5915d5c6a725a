"""Derived time slot model."""

from datetime import time as Time
from typing import Optional

from pydantic import BaseModel


class TimeSlot(BaseModel):
    """A candidate start time within a business day. Never persisted."""

    time: Time
    available: bool
    appointment_id: Optional[str] = None  # First conflicting appointment, if any

    class Config:
        json_schema_extra = {
            "example": {"time": "10:30", "available": False, "appointment_id": "abc123"}
        }
