"""Appointment booking operations, queries and calendar export."""

from .calendar import (
    CalendarEvent,
    generate_calendar_event,
    generate_google_calendar_url,
    generate_ical_event,
    generate_outlook_calendar_url,
)
from .queries import (
    AppointmentFilters,
    AppointmentStats,
    filter_appointments,
    get_appointment_stats,
)
from .service import (
    cancel_appointment,
    create_appointment,
    delete_appointment,
    get_available_time_slots,
    update_appointment,
    update_appointment_status,
)

__all__ = [
    "CalendarEvent",
    "generate_calendar_event",
    "generate_google_calendar_url",
    "generate_ical_event",
    "generate_outlook_calendar_url",
    "AppointmentFilters",
    "AppointmentStats",
    "filter_appointments",
    "get_appointment_stats",
    "cancel_appointment",
    "create_appointment",
    "delete_appointment",
    "get_available_time_slots",
    "update_appointment",
    "update_appointment_status",
]
