"""
Booking validation.

Runs every check on a booking request and collects the failures in one
pass so a form can display them together. User mistakes come back as
messages on the ValidationResult; only broken configuration or an
unparsable date raises.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

import pytz

from models.appointment import Appointment, AppointmentRequest
from models.booking import TimeConflict, ValidationResult
from models.business import BusinessSettings
from scheduling.conflicts import find_conflicts
from utils.constants import (
    BOOKING_CONFLICT,
    EXCEEDS_BUSINESS_HOURS,
    INSUFFICIENT_ADVANCE,
    INVALID_EMAIL,
    INVALID_PHONE,
    NOT_BUSINESS_DAY,
    OUTSIDE_BUSINESS_HOURS,
    PAST_DATE,
    REQUIRED_FIELD_MESSAGES,
    SERVICE_REQUIRED,
)
from utils.datetime_utils import business_now, combine_local, time_to_minutes
from utils.validation import is_blank, validate_email, validate_phone

logger = logging.getLogger(__name__)


def _required_field_errors(request: AppointmentRequest) -> List[str]:
    values = {
        "customer_name": request.customer_name,
        "customer_email": request.customer_email,
        "customer_phone": request.customer_phone,
        "date": request.date.isoformat() if request.date else None,
        "time": request.time.isoformat() if request.time else None,
        "vehicle_make": request.vehicle_info.make,
        "vehicle_model": request.vehicle_info.model,
        "address": request.location.address,
        "city": request.location.city,
        "state": request.location.state,
        "zip_code": request.location.zip_code,
    }
    return [
        message
        for field, message in REQUIRED_FIELD_MESSAGES.items()
        if is_blank(values[field])
    ]


def _localize_now(now: Optional[datetime], tz_name: str) -> datetime:
    """Express the clock reading in the business timezone. Naive values are local."""
    if now is None:
        return business_now(tz_name)
    tz = pytz.timezone(tz_name)
    if now.tzinfo is None:
        return tz.localize(now)
    return now.astimezone(tz)


def _format_hours(hours: float) -> str:
    return f"{hours:g}"


def validate_booking(
    request: AppointmentRequest,
    business: BusinessSettings,
    appointments: Iterable[Appointment],
    now: Optional[datetime] = None,
    appointment_id: Optional[str] = None,
    original: Optional[Appointment] = None,
) -> ValidationResult:
    """
    Validate a new or edited booking against business rules.

    Args:
        request: Booking form data
        business: Hours, advance window and timezone
        appointments: Existing appointments; not modified
        now: Current time. Read from the clock once when omitted.
        appointment_id: Id of the appointment being edited. Edits never
            conflict with themselves.
        original: Stored version of the edited appointment. Edits that keep
            its date and time skip the past-date and advance checks; a
            cancelled original is not on the calendar and never conflicts.

    Returns:
        ValidationResult with every failure in check order
    """
    if original is not None and appointment_id is None:
        appointment_id = original.id
    is_edit = appointment_id is not None
    rescheduled = original is not None and (
        request.date != original.date or request.time != original.time
    )
    occupies_calendar = original is None or original.is_active
    current = _localize_now(now, business.timezone)
    duration = request.total_duration

    errors = _required_field_errors(request)
    conflicts: List[TimeConflict] = []

    if not is_blank(request.customer_email) and not validate_email(request.customer_email):
        errors.append(INVALID_EMAIL)

    if not is_blank(request.customer_phone) and not validate_phone(request.customer_phone):
        errors.append(INVALID_PHONE)

    if not request.services or duration <= 0:
        errors.append(SERVICE_REQUIRED)

    if request.date is not None and (not is_edit or rescheduled):
        if request.date < current.date():
            errors.append(PAST_DATE)

        if request.time is not None:
            starts_at = combine_local(request.date, request.time, business.timezone)
            earliest = current + timedelta(hours=business.minimum_booking_advance_hours)
            if starts_at < earliest:
                errors.append(
                    INSUFFICIENT_ADVANCE.format(
                        hours=_format_hours(business.minimum_booking_advance_hours)
                    )
                )

    if request.date is not None:
        hours = business.hours_for(request.date)
        if hours is None:
            errors.append(NOT_BUSINESS_DAY)
        elif request.time is not None:
            start = time_to_minutes(request.time)
            if start < hours.open_minutes or start > hours.close_minutes:
                errors.append(OUTSIDE_BUSINESS_HOURS)
            elif start + duration > hours.close_minutes:
                errors.append(EXCEEDS_BUSINESS_HOURS)

    if (
        occupies_calendar
        and request.date is not None
        and request.time is not None
        and duration > 0
    ):
        conflicts = find_conflicts(
            request.date, request.time, duration, appointments, exclude_id=appointment_id
        )
        if conflicts:
            errors.append(BOOKING_CONFLICT)

    if errors:
        logger.debug(f"Booking validation failed with {len(errors)} error(s)")

    return ValidationResult(errors=errors, conflicts=conflicts)
