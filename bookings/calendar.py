"""
Calendar export for appointments.

Produces iCalendar text and "add to calendar" links for Google and Outlook.
Times are converted from the business timezone to UTC.
"""

from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import pytz
from pydantic import BaseModel

from models.appointment import Appointment
from utils.constants import (
    CALENDAR_PRODID,
    CALENDAR_UID_DOMAIN,
    DEFAULT_SERVICE_LABEL,
    DEFAULT_TIMEZONE,
    MOBILE_SERVICE_LOCATION,
)
from utils.datetime_utils import combine_local, utc_now

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
OUTLOOK_CALENDAR_URL = "https://outlook.live.com/calendar/0/deeplink/compose"


class CalendarEvent(BaseModel):
    """Calendar representation of an appointment."""

    id: str
    title: str
    start: datetime
    end: datetime
    description: str = ""
    location: str = ""


def generate_calendar_event(
    appointment: Appointment, tz_name: str = DEFAULT_TIMEZONE
) -> CalendarEvent:
    """Build a calendar event spanning the appointment's booked services."""
    start = combine_local(appointment.date, appointment.time, tz_name)
    end = start + timedelta(minutes=appointment.total_duration)

    service_names = (
        ", ".join(s.name for s in appointment.services) or DEFAULT_SERVICE_LABEL
    )

    location = (
        appointment.location.one_line()
        if appointment.location and appointment.location.address
        else MOBILE_SERVICE_LOCATION
    )

    return CalendarEvent(
        id=appointment.id,
        title=f"{service_names} - {appointment.customer_name}",
        start=start,
        end=end,
        description=appointment.notes or service_names,
        location=location,
    )


def _format_utc(value: datetime) -> str:
    """Basic iCalendar UTC form, e.g. 20250310T140000Z."""
    return value.astimezone(pytz.utc).strftime("%Y%m%dT%H%M%SZ")


def _escape_ical(text: Optional[str]) -> str:
    """Escape TEXT values per RFC 5545."""
    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def generate_ical_event(
    appointment: Appointment,
    tz_name: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None,
) -> str:
    """
    Single-event VCALENDAR document with CRLF line endings.

    DTSTAMP records when the document was generated (`now`, default the clock).
    """
    event = generate_calendar_event(appointment, tz_name)
    stamp = now or utc_now()

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{CALENDAR_PRODID}",
        "BEGIN:VEVENT",
        f"UID:{event.id}@{CALENDAR_UID_DOMAIN}",
        f"DTSTAMP:{_format_utc(stamp)}",
        f"DTSTART:{_format_utc(event.start)}",
        f"DTEND:{_format_utc(event.end)}",
        f"SUMMARY:{_escape_ical(event.title)}",
        f"DESCRIPTION:{_escape_ical(event.description)}",
        f"LOCATION:{_escape_ical(event.location)}",
        "STATUS:CONFIRMED",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def generate_google_calendar_url(
    appointment: Appointment, tz_name: str = DEFAULT_TIMEZONE
) -> str:
    event = generate_calendar_event(appointment, tz_name)
    params = {
        "action": "TEMPLATE",
        "text": event.title,
        "dates": f"{_format_utc(event.start)}/{_format_utc(event.end)}",
        "details": event.description,
        "location": event.location,
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def generate_outlook_calendar_url(
    appointment: Appointment, tz_name: str = DEFAULT_TIMEZONE
) -> str:
    event = generate_calendar_event(appointment, tz_name)
    iso_utc = "%Y-%m-%dT%H:%M:%SZ"
    params = {
        "subject": event.title,
        "startdt": event.start.astimezone(pytz.utc).strftime(iso_utc),
        "enddt": event.end.astimezone(pytz.utc).strftime(iso_utc),
        "body": event.description,
        "location": event.location,
    }
    return f"{OUTLOOK_CALENDAR_URL}?{urlencode(params)}"
