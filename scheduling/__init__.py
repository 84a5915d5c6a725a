"""Scheduling core: conflict detection, slot enumeration, booking validation."""

from .conflicts import (
    find_conflicts,
    find_conflicts_for,
    find_double_bookings,
    has_conflict,
    intervals_overlap,
)
from .slots import enumerate_time_slots, get_available_slots, get_next_available_slot
from .validation import validate_booking

__all__ = [
    "find_conflicts",
    "find_conflicts_for",
    "find_double_bookings",
    "has_conflict",
    "intervals_overlap",
    "enumerate_time_slots",
    "get_available_slots",
    "get_next_available_slot",
    "validate_booking",
]
