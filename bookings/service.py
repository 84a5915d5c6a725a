"""
Appointment service: validate booking requests, then write through the store.

Every operation returns a BookingResult instead of raising for expected
failures (invalid input, conflicts, missing appointments). Collaborators
default to the global database client and configured business settings and
can be passed explicitly.
"""

from datetime import date, datetime
from typing import List, Optional, Union
from uuid import uuid4

from config import get_business_settings
from db.supabase_client import SupabaseClient, get_db_client
from models.appointment import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    PaymentStatus,
)
from models.booking import BookingResult
from models.business import BusinessSettings
from models.slot import TimeSlot
from scheduling.conflicts import find_conflicts
from scheduling.slots import enumerate_time_slots
from scheduling.validation import validate_booking
from utils.constants import (
    APPOINTMENT_ID_DISPLAY_LENGTH,
    APPOINTMENT_NOT_FOUND,
    BOOKING_CONFLICT,
    DELETE_FAILED,
    MAX_NOTES_LENGTH,
    SAVE_FAILED,
)
from utils.datetime_utils import parse_date, utc_now
from utils.exceptions import AppointmentNotFoundError, DatabaseError
from utils.logging_config import setup_logging
from utils.validation import sanitize_text

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="bookings.log", log_dir="logs"
)


def _short_id(appointment_id: str) -> str:
    return appointment_id[:APPOINTMENT_ID_DISPLAY_LENGTH]


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    return sanitize_text(notes or "", MAX_NOTES_LENGTH) or None


async def _appointments_on(db: SupabaseClient, day: Optional[date]) -> List[Appointment]:
    if day is None:
        return []
    return await db.get_appointments_for_date(day)


async def create_appointment(
    request: AppointmentRequest,
    db: Optional[SupabaseClient] = None,
    business: Optional[BusinessSettings] = None,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Validate and store a new appointment.

    Args:
        request: Booking form data
        db: Appointment store
        business: Scheduling rules
        now: Current time for the past-date and advance checks

    Returns:
        BookingResult with the stored appointment, or every validation error
    """
    db = db or get_db_client()
    business = business or get_business_settings()

    existing = await _appointments_on(db, request.date)
    validation = validate_booking(request, business, existing, now=now)
    if not validation.is_valid:
        logger.info(f"Booking rejected: {'; '.join(validation.errors)}")
        return BookingResult.failed(validation.errors, validation.conflicts)

    appointment = Appointment(
        id=str(uuid4()),
        customer_name=request.customer_name.strip(),
        customer_email=request.customer_email.strip(),
        customer_phone=request.customer_phone.strip(),
        date=request.date,
        time=request.time,
        status=AppointmentStatus.PENDING,
        services=request.services,
        notes=_clean_notes(request.notes),
        location=request.location,
        vehicle_info=request.vehicle_info,
        payment_status=PaymentStatus.PENDING,
        created_at=utc_now(),
    )

    try:
        saved = await db.save_appointment(appointment)
    except DatabaseError as e:
        logger.error(f"Failed to save appointment: {e}", exc_info=True)
        return BookingResult.failed([SAVE_FAILED])

    logger.info(
        f"Appointment {_short_id(saved.id)} booked for {saved.date} at {saved.time:%H:%M}"
    )
    return BookingResult(success=True, appointment=saved)


async def update_appointment(
    appointment_id: str,
    request: AppointmentRequest,
    db: Optional[SupabaseClient] = None,
    business: Optional[BusinessSettings] = None,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Edit an appointment's booking details.

    Validated as an edit: the appointment never conflicts with itself and
    a past appointment may be re-saved at its current date and time. Moving
    it is checked like a new booking. A cancelled appointment is off the
    calendar and is not conflict-checked. Status, payment and creation
    metadata are kept.
    """
    db = db or get_db_client()
    business = business or get_business_settings()

    current = await db.get_appointment_by_id(appointment_id)
    if current is None:
        return BookingResult.failed([APPOINTMENT_NOT_FOUND])

    existing = await _appointments_on(db, request.date)
    validation = validate_booking(
        request, business, existing, now=now, appointment_id=appointment_id, original=current
    )
    if not validation.is_valid:
        logger.info(
            f"Edit of {_short_id(appointment_id)} rejected: {'; '.join(validation.errors)}"
        )
        return BookingResult.failed(validation.errors, validation.conflicts)

    updated = current.model_copy(
        update={
            "customer_name": request.customer_name.strip(),
            "customer_email": request.customer_email.strip(),
            "customer_phone": request.customer_phone.strip(),
            "date": request.date,
            "time": request.time,
            "services": request.services,
            "notes": _clean_notes(request.notes),
            "location": request.location,
            "vehicle_info": request.vehicle_info,
            "updated_at": utc_now(),
        }
    )

    try:
        saved = await db.save_appointment(updated)
    except DatabaseError as e:
        logger.error(f"Failed to update appointment {appointment_id}: {e}", exc_info=True)
        return BookingResult.failed([SAVE_FAILED])

    logger.info(f"Appointment {_short_id(saved.id)} updated")
    return BookingResult(success=True, appointment=saved)


async def update_appointment_status(
    appointment_id: str,
    status: AppointmentStatus,
    db: Optional[SupabaseClient] = None,
) -> BookingResult:
    """
    Move an appointment to a new status.

    Reactivating a cancelled appointment puts it back on the calendar, so
    its slot is checked for conflicts first.
    """
    db = db or get_db_client()
    status = AppointmentStatus(status)

    current = await db.get_appointment_by_id(appointment_id)
    if current is None:
        return BookingResult.failed([APPOINTMENT_NOT_FOUND])

    if not current.is_active and status != AppointmentStatus.CANCELLED:
        others = await db.get_appointments_for_date(current.date)
        conflicts = find_conflicts(
            current.date,
            current.time,
            current.total_duration,
            others,
            exclude_id=appointment_id,
        )
        if conflicts:
            logger.info(
                f"Cannot reactivate {_short_id(appointment_id)}: slot taken by "
                f"{', '.join(c.appointment_id for c in conflicts)}"
            )
            return BookingResult.failed([BOOKING_CONFLICT], conflicts)

    try:
        updated = await db.update_appointment_status(appointment_id, status)
    except AppointmentNotFoundError:
        return BookingResult.failed([APPOINTMENT_NOT_FOUND])
    except DatabaseError as e:
        logger.error(
            f"Failed to update status for {appointment_id}: {e}", exc_info=True
        )
        return BookingResult.failed([SAVE_FAILED])

    logger.info(f"Appointment {_short_id(appointment_id)} is now {status.value}")
    return BookingResult(success=True, appointment=updated)


async def cancel_appointment(
    appointment_id: str, db: Optional[SupabaseClient] = None
) -> BookingResult:
    """Cancel an appointment, freeing its slot. The record is kept."""
    return await update_appointment_status(
        appointment_id, AppointmentStatus.CANCELLED, db=db
    )


async def delete_appointment(
    appointment_id: str, db: Optional[SupabaseClient] = None
) -> BookingResult:
    """Remove an appointment outright."""
    db = db or get_db_client()

    try:
        deleted = await db.delete_appointment(appointment_id)
    except DatabaseError as e:
        logger.error(f"Failed to delete appointment {appointment_id}: {e}", exc_info=True)
        return BookingResult.failed([DELETE_FAILED])

    if not deleted:
        return BookingResult.failed([APPOINTMENT_NOT_FOUND])

    logger.info(f"Appointment {_short_id(appointment_id)} deleted")
    return BookingResult(success=True)


async def get_available_time_slots(
    day: Union[date, str],
    duration: int,
    db: Optional[SupabaseClient] = None,
    business: Optional[BusinessSettings] = None,
    exclude_id: Optional[str] = None,
) -> List[TimeSlot]:
    """
    Every enumerated slot for a day, tagged with availability.

    Raises:
        ValueError: If the date string cannot be parsed
    """
    db = db or get_db_client()
    business = business or get_business_settings()

    target = parse_date(day)
    existing = await db.get_appointments_for_date(target)
    return list(
        enumerate_time_slots(target, business, duration, existing, exclude_id=exclude_id)
    )
