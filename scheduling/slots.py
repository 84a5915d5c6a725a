"""
Time slot enumeration.

Slots start at opening time and advance by the slot length plus the buffer
gap, as long as the requested duration still fits before closing.
"""

import logging
from datetime import date
from datetime import time as Time
from typing import Iterable, Iterator, List, Optional, Union

from models.appointment import Appointment
from models.business import BusinessSettings
from models.slot import TimeSlot
from scheduling.conflicts import find_conflicts
from utils.datetime_utils import minutes_to_time, parse_date, parse_time, time_to_minutes

logger = logging.getLogger(__name__)


def enumerate_time_slots(
    day: Union[date, str],
    business: BusinessSettings,
    duration: int,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
    slot_minutes: Optional[int] = None,
    buffer_minutes: Optional[int] = None,
) -> Iterator[TimeSlot]:
    """
    Yield candidate start times for a day, tagged with availability.

    Closed days and weekdays missing from the configuration yield nothing.
    Calling again restarts the sequence; the generator keeps no state
    beyond its arguments.

    Raises:
        ValueError: If the date string cannot be parsed
    """
    target = parse_date(day)
    hours = business.hours_for(target)
    if hours is None:
        return

    step = (business.slot_minutes if slot_minutes is None else slot_minutes) + (
        business.buffer_minutes if buffer_minutes is None else buffer_minutes
    )
    if step <= 0:
        raise ValueError(f"Slot step must be positive, got {step}")

    snapshot = list(appointments)
    open_at = hours.open_minutes
    close_at = hours.close_minutes

    start = open_at
    while start + duration <= close_at and start < 24 * 60:
        conflicts = find_conflicts(
            target, minutes_to_time(start), duration, snapshot, exclude_id
        )
        yield TimeSlot(
            time=minutes_to_time(start),
            available=not conflicts,
            appointment_id=conflicts[0].appointment_id if conflicts else None,
        )
        start += step


def get_available_slots(
    day: Union[date, str],
    business: BusinessSettings,
    duration: int,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> List[Time]:
    """Start times that are free for the given duration."""
    return [
        slot.time
        for slot in enumerate_time_slots(day, business, duration, appointments, exclude_id)
        if slot.available
    ]


def get_next_available_slot(
    day: Union[date, str],
    business: BusinessSettings,
    duration: int,
    appointments: Iterable[Appointment],
    preferred: Optional[Union[Time, str]] = None,
    exclude_id: Optional[str] = None,
) -> Optional[Time]:
    """
    Preferred time if it is an available slot, else the earliest available one.

    Returns None when the day is closed or fully booked.
    """
    available = get_available_slots(day, business, duration, appointments, exclude_id)
    if not available:
        logger.debug(f"No available slots on {day} for {duration} minutes")
        return None

    if preferred is not None:
        wanted = time_to_minutes(parse_time(preferred))
        for slot_time in available:
            if time_to_minutes(slot_time) == wanted:
                return slot_time

    return available[0]
