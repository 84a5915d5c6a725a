"""
Appointment conflict detection.

Intervals are half-open [start, start + duration) in minutes since midnight,
compared only between appointments on the same calendar date. Appointments
never span midnight.
"""

from datetime import date
from datetime import time as Time
from typing import Iterable, List, Optional, Tuple, Union

from models.appointment import Appointment
from models.booking import TimeConflict
from utils.datetime_utils import format_minutes, parse_date, time_to_minutes


def intervals_overlap(s1: int, e1: int, s2: int, e2: int) -> bool:
    """Half-open overlap test. Touching endpoints do not overlap."""
    return s1 < e2 and s2 < e1


def find_conflicts(
    day: Union[date, str],
    start: Union[Time, str],
    duration: int,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> List[TimeConflict]:
    """
    List the appointments a candidate interval collides with.

    Args:
        day: Candidate calendar date (date or 'YYYY-MM-DD')
        start: Candidate start time
        duration: Candidate duration in minutes. Zero or negative gives an
            empty interval, which never overlaps anything. Existing
            appointments without duration are skipped the same way.
        appointments: Existing appointments; not modified
        exclude_id: Appointment to ignore, used when editing it

    Returns:
        Conflicts in the order the appointments were given

    Raises:
        ValueError: If the date or time string cannot be parsed
    """
    candidate_date = parse_date(day)
    candidate_start = time_to_minutes(start)
    candidate_end = candidate_start + duration

    conflicts = []
    if duration <= 0:
        return conflicts

    for existing in appointments:
        if not existing.is_active or existing.total_duration <= 0:
            continue
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if existing.date != candidate_date:
            continue

        if intervals_overlap(
            candidate_start, candidate_end, existing.start_minutes, existing.end_minutes
        ):
            conflicts.append(
                TimeConflict(
                    appointment_id=existing.id,
                    customer_name=existing.customer_name,
                    conflict_time=(
                        f"{format_minutes(existing.start_minutes)} - "
                        f"{format_minutes(existing.end_minutes)}"
                    ),
                )
            )

    return conflicts


def has_conflict(
    day: Union[date, str],
    start: Union[Time, str],
    duration: int,
    appointments: Iterable[Appointment],
    exclude_id: Optional[str] = None,
) -> bool:
    """Boolean form of find_conflicts."""
    return bool(find_conflicts(day, start, duration, appointments, exclude_id))


def find_conflicts_for(
    appointment: Appointment, appointments: Iterable[Appointment]
) -> List[TimeConflict]:
    """Conflicts for an existing or prospective appointment, excluding itself."""
    if not appointment.is_active:
        return []
    return find_conflicts(
        appointment.date,
        appointment.time,
        appointment.total_duration,
        appointments,
        exclude_id=appointment.id,
    )


def find_double_bookings(
    appointments: Iterable[Appointment],
) -> List[Tuple[Appointment, Appointment]]:
    """
    Every pair of active appointments that overlap on the same date.

    Used to audit data written outside the booking flow. Pairs are ordered
    by date then start time of the earlier appointment.
    """
    active = sorted(
        (a for a in appointments if a.is_active and a.total_duration > 0),
        key=lambda a: (a.date, a.start_minutes, a.id),
    )

    pairs = []
    for i, first in enumerate(active):
        for second in active[i + 1:]:
            if second.date != first.date:
                break
            if intervals_overlap(
                first.start_minutes, first.end_minutes,
                second.start_minutes, second.end_minutes,
            ):
                pairs.append((first, second))
    return pairs
