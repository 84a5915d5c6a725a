"""Business configuration models: weekly hours and booking rules."""

import logging
from datetime import date as Date
from datetime import time as Time
from typing import Dict, Optional

import pytz
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from utils.constants import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_MINIMUM_BOOKING_ADVANCE_HOURS,
    DEFAULT_SLOT_MINUTES,
    DEFAULT_TIMEZONE,
)
from utils.datetime_utils import WEEKDAY_NAMES, time_to_minutes, weekday_name

logger = logging.getLogger(__name__)


class DayHours(BaseModel):
    """Opening hours for one weekday."""

    start: Time
    end: Time
    is_open: bool = Field(
        default=True, validation_alias=AliasChoices("is_open", "isOpen")
    )

    @model_validator(mode="after")
    def check_window(self) -> "DayHours":
        """Open days must not close before they open."""
        if self.is_open and self.start > self.end:
            raise ValueError(
                f"Opening time {self.start:%H:%M} is after closing time {self.end:%H:%M}"
            )
        return self

    @property
    def open_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def close_minutes(self) -> int:
        return time_to_minutes(self.end)


def _day(start: str, end: str, is_open: bool = True) -> DayHours:
    return DayHours(start=Time.fromisoformat(start), end=Time.fromisoformat(end), is_open=is_open)


DEFAULT_BUSINESS_HOURS: Dict[str, DayHours] = {
    "monday": _day("08:00", "18:00"),
    "tuesday": _day("08:00", "18:00"),
    "wednesday": _day("08:00", "18:00"),
    "thursday": _day("08:00", "18:00"),
    "friday": _day("08:00", "18:00"),
    "saturday": _day("09:00", "17:00"),
    "sunday": _day("10:00", "16:00", is_open=False),
}


class BusinessSettings(BaseModel):
    """
    Scheduling rules supplied by the business configuration provider.

    Read-only from the scheduler's point of view. A weekday missing from
    business_hours is treated as closed.
    """

    business_hours: Dict[str, DayHours] = Field(
        default_factory=lambda: dict(DEFAULT_BUSINESS_HOURS)
    )
    minimum_booking_advance_hours: float = Field(
        default=DEFAULT_MINIMUM_BOOKING_ADVANCE_HOURS, ge=0
    )
    slot_minutes: int = Field(default=DEFAULT_SLOT_MINUTES, gt=0)
    buffer_minutes: int = Field(default=DEFAULT_BUFFER_MINUTES, ge=0)
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("business_hours")
    @classmethod
    def normalize_weekdays(cls, v: Dict[str, DayHours]) -> Dict[str, DayHours]:
        """Weekday keys are matched case-insensitively."""
        normalized = {}
        for key, hours in v.items():
            name = key.strip().lower()
            if name not in WEEKDAY_NAMES:
                raise ValueError(f"Unknown weekday in business hours: {key!r}")
            normalized[name] = hours
        return normalized

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    def hours_for(self, day: Date) -> Optional[DayHours]:
        """
        Opening hours for a calendar date, or None when the business is closed.

        A weekday with no entry at all is a configuration gap rather than an
        explicit closure, so it is logged before being treated as closed.
        """
        name = weekday_name(day)
        hours = self.business_hours.get(name)
        if hours is None:
            logger.warning(
                f"No business hours configured for {name}; treating {day} as closed"
            )
            return None
        if not hours.is_open:
            return None
        return hours

    def is_business_day(self, day: Date) -> bool:
        return self.hours_for(day) is not None
