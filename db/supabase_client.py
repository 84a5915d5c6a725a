"""
Supabase database client for appointments and services.

Appointments are stored with a single timezone-aware `appointment_date`
timestamp. The client splits it into a calendar date and time of day in
the business timezone on read and rebuilds it on write, with no other
transformation, so a saved appointment reads back exactly as validated.

Services booked on an appointment live in the `appointment_services` join
table together with the price and duration captured at booking time.

Atomic saves:
=============
An appointment row and its join rows are written by one Postgres function,
called through RPC, so they commit or roll back together:

    CREATE OR REPLACE FUNCTION save_appointment_with_services(
        appointment jsonb, services jsonb
    ) RETURNS text LANGUAGE plpgsql AS $$
    DECLARE saved_id text;
    BEGIN
        INSERT INTO appointments
        SELECT * FROM jsonb_populate_record(NULL::appointments, appointment)
        ON CONFLICT (id) DO UPDATE SET
            appointment_date = EXCLUDED.appointment_date,
            appointment_end = EXCLUDED.appointment_end,
            duration_minutes = EXCLUDED.duration_minutes,
            status = EXCLUDED.status,
            notes = EXCLUDED.notes,
            location = EXCLUDED.location,
            vehicle_info = EXCLUDED.vehicle_info,
            total_price = EXCLUDED.total_price,
            payment_status = EXCLUDED.payment_status,
            payment_intent_id = EXCLUDED.payment_intent_id,
            reminder_sent = EXCLUDED.reminder_sent,
            updated_at = EXCLUDED.updated_at
        RETURNING id INTO saved_id;

        DELETE FROM appointment_services WHERE appointment_id = saved_id;
        INSERT INTO appointment_services
            (appointment_id, service_id, price_at_booking, duration_at_booking)
        SELECT saved_id, s.service_id, s.price_at_booking, s.duration_at_booking
        FROM jsonb_to_recordset(services)
            AS s(service_id text, price_at_booking numeric, duration_at_booking int);

        RETURN saved_id;
    END $$;

Double-booking prevention:
==========================
The scheduling core only pre-checks conflicts against a snapshot. Two
concurrent bookings can both pass that check, so the authoritative guard
belongs in the database. Every save writes `appointment_end` alongside
`appointment_date`, which allows an exclusion constraint:

    ALTER TABLE appointments ADD CONSTRAINT no_overlapping_appointments
    EXCLUDE USING gist (
        tstzrange(appointment_date, appointment_end, '[)') WITH &&
    ) WHERE (status <> 'cancelled');
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

import pytz
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from models.appointment import Appointment, AppointmentStatus, PaymentStatus
from models.service import SERVICES, Service
from utils.datetime_utils import (
    combine_local,
    parse_date,
    parse_iso_datetime,
    to_iso_string,
    utc_now,
)
from utils.exceptions import AppointmentNotFoundError, AppointmentSaveError, DatabaseError

logger = logging.getLogger(__name__)

APPOINTMENT_SELECT = """
    *,
    customers (id, name, email, phone),
    appointment_services (
        service_id,
        price_at_booking,
        duration_at_booking,
        services (id, name, description, price, duration_minutes, category, active)
    )
"""

SAVE_APPOINTMENT_FUNCTION = "save_appointment_with_services"

# Database status values that differ from the application's
_STATUS_FROM_DB = {"scheduled": "pending", "in_progress": "in-progress"}
_STATUS_TO_DB = {"in-progress": "in_progress"}


class SupabaseClient:
    """
    Supabase database client wrapper.

    Uses the service_role key, which bypasses RLS. Includes a simple
    in-memory cache for the service catalog.
    """

    def __init__(self, timezone: Optional[str] = None):
        self.client: SupabaseClientType = create_client(
            settings.supabase_url, settings.supabase_key
        )
        self.timezone = timezone or settings.timezone

        # Format: {cache_key: (data, expiry_time)}
        self._cache: Dict[str, Tuple[Any, datetime]] = {}
        self._cache_ttl = timedelta(minutes=5)

    # ========== Cache Helpers ==========

    def _get_from_cache(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if key not in self._cache:
            return None

        data, expiry = self._cache[key]
        if utc_now() > expiry:
            del self._cache[key]
            return None

        return data

    def _set_cache(self, key: str, value: Any) -> None:
        expiry = utc_now() + self._cache_ttl
        self._cache[key] = (value, expiry)

    # ========== Appointment Reads ==========

    async def get_appointments(
        self,
        date_from: Optional[Union[date, str]] = None,
        date_to: Optional[Union[date, str]] = None,
        statuses: Optional[List[AppointmentStatus]] = None,
    ) -> List[Appointment]:
        """
        Get appointments with customers and services joined.

        Args:
            date_from: First calendar date to include (business timezone)
            date_to: Last calendar date to include (business timezone)
            statuses: Only these statuses, all when omitted

        Returns:
            Appointments in chronological order
        """
        try:
            query = self.client.table("appointments").select(APPOINTMENT_SELECT)

            if date_from is not None:
                query = query.gte("appointment_date", self._day_start(date_from))
            if date_to is not None:
                query = query.lt(
                    "appointment_date",
                    self._day_start(parse_date(date_to) + timedelta(days=1)),
                )
            if statuses:
                query = query.in_("status", [self._status_to_db(s) for s in statuses])

            response = query.order("appointment_date", desc=False).execute()

            return [self._parse_appointment(item) for item in response.data or []]
        except Exception as e:
            raise DatabaseError(f"Failed to get appointments: {e}") from e

    async def get_appointments_for_date(self, day: Union[date, str]) -> List[Appointment]:
        """All appointments on one calendar date, cancelled included."""
        return await self.get_appointments(date_from=day, date_to=day)

    async def get_appointment_by_id(self, appointment_id: str) -> Optional[Appointment]:
        try:
            response = (
                self.client.table("appointments")
                .select(APPOINTMENT_SELECT)
                .eq("id", appointment_id)
                .execute()
            )

            if response.data:
                return self._parse_appointment(response.data[0])
            return None
        except Exception as e:
            raise DatabaseError(f"Failed to get appointment: {e}") from e

    async def get_appointments_for_reminder(self, hours_before: int) -> List[Appointment]:
        """
        Active appointments starting within the next `hours_before` hours
        that have not had a reminder yet.
        """
        try:
            now = utc_now()
            target_time = now + timedelta(hours=hours_before)

            response = (
                self.client.table("appointments")
                .select(APPOINTMENT_SELECT)
                .in_(
                    "status",
                    [
                        self._status_to_db(AppointmentStatus.PENDING),
                        self._status_to_db(AppointmentStatus.CONFIRMED),
                    ],
                )
                .eq("reminder_sent", False)
                .gte("appointment_date", to_iso_string(now))
                .lte("appointment_date", to_iso_string(target_time))
                .order("appointment_date", desc=False)
                .execute()
            )

            return [self._parse_appointment(item) for item in response.data or []]
        except Exception as e:
            raise DatabaseError(f"Failed to get appointments for reminder: {e}") from e

    # ========== Appointment Writes ==========

    async def save_appointment(self, appointment: Appointment) -> Appointment:
        """
        Create or update an appointment and its booked services.

        The row and its join rows are written by one database function so a
        failed write leaves the previous version intact. The complete record
        is then read back so callers see exactly what was stored.

        Raises:
            AppointmentSaveError: If the write fails or the record cannot be re-read
        """
        try:
            params = {
                "appointment": self._appointment_to_row(appointment),
                "services": self._service_rows(appointment),
            }
            response = self.client.rpc(SAVE_APPOINTMENT_FUNCTION, params).execute()

            saved_id = self._returned_id(response.data)
            if not saved_id:
                raise AppointmentSaveError("Failed to save appointment: no data returned")

            saved = await self.get_appointment_by_id(saved_id)
            if saved is None:
                raise AppointmentSaveError(
                    f"Appointment {saved_id} could not be read back after saving"
                )
            return saved
        except AppointmentSaveError:
            raise
        except Exception as e:
            raise AppointmentSaveError(f"Failed to save appointment: {e}") from e

    async def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        """
        Update appointment status.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
        """
        return await self._update_appointment(
            appointment_id,
            {"status": self._status_to_db(status)},
            "update appointment status",
        )

    async def update_payment_status(
        self,
        appointment_id: str,
        payment_status: PaymentStatus,
        payment_intent_id: Optional[str] = None,
    ) -> Appointment:
        """Record payment status, and the Stripe payment intent when known."""
        update_data = {"payment_status": PaymentStatus(payment_status).value}
        if payment_intent_id:
            update_data["payment_intent_id"] = payment_intent_id

        return await self._update_appointment(
            appointment_id, update_data, "update payment status"
        )

    async def update_payment_status_by_intent(
        self, payment_intent_id: str, payment_status: PaymentStatus
    ) -> List[str]:
        """
        Update payment status on every appointment linked to a payment intent.

        Used for events such as refunds that carry no appointment metadata.

        Returns:
            Ids of the updated appointments
        """
        try:
            response = (
                self.client.table("appointments")
                .update(
                    {
                        "payment_status": PaymentStatus(payment_status).value,
                        "updated_at": to_iso_string(utc_now()),
                    }
                )
                .eq("payment_intent_id", payment_intent_id)
                .execute()
            )

            return [item["id"] for item in response.data or []]
        except Exception as e:
            raise DatabaseError(f"Failed to update payment status by intent: {e}") from e

    async def mark_reminder_sent(self, appointment_id: str) -> bool:
        """Mark reminder as sent for an appointment."""
        try:
            now = utc_now()
            response = (
                self.client.table("appointments")
                .update(
                    {
                        "reminder_sent": True,
                        "reminder_sent_at": to_iso_string(now),
                        "updated_at": to_iso_string(now),
                    }
                )
                .eq("id", appointment_id)
                .execute()
            )
            return bool(response.data)
        except Exception as e:
            raise DatabaseError(f"Failed to mark reminder sent: {e}") from e

    async def delete_appointment(self, appointment_id: str) -> bool:
        """
        Delete an appointment and its booked services.

        Returns:
            True if an appointment was deleted, False if none matched
        """
        try:
            self.client.table("appointment_services").delete().eq(
                "appointment_id", appointment_id
            ).execute()

            response = (
                self.client.table("appointments")
                .delete()
                .eq("id", appointment_id)
                .execute()
            )
            return bool(response.data)
        except Exception as e:
            raise DatabaseError(f"Failed to delete appointment: {e}") from e

    # ========== Services ==========

    async def get_services(self) -> List[Service]:
        """
        Active services offered by the business.

        Falls back to the built-in catalog when the services table is empty.
        """
        cache_key = "services:active"

        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        try:
            response = (
                self.client.table("services")
                .select("*")
                .eq("active", True)
                .order("name", desc=False)
                .execute()
            )

            services = []
            for item in response.data or []:
                service = self._parse_service(item)
                if service is not None:
                    services.append(service)
        except Exception as e:
            raise DatabaseError(f"Failed to get services: {e}") from e

        if not services:
            logger.info("Services table is empty, using built-in catalog")
            services = [s for s in SERVICES.values() if s.is_active]

        self._set_cache(cache_key, services)
        return services

    # ========== Helper Methods ==========

    async def _update_appointment(
        self, appointment_id: str, update_data: Dict[str, Any], action: str
    ) -> Appointment:
        try:
            update_data = dict(update_data, updated_at=to_iso_string(utc_now()))
            response = (
                self.client.table("appointments")
                .update(update_data)
                .eq("id", appointment_id)
                .execute()
            )

            if not response.data:
                raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

            updated = await self.get_appointment_by_id(appointment_id)
            if updated is None:
                raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
            return updated
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Failed to {action}: {e}") from e

    def _day_start(self, day: Union[date, str]) -> str:
        return to_iso_string(
            combine_local(parse_date(day), datetime.min.time(), self.timezone)
        )

    @staticmethod
    def _status_to_db(status: Union[AppointmentStatus, str]) -> str:
        value = AppointmentStatus(status).value
        return _STATUS_TO_DB.get(value, value)

    @staticmethod
    def _status_from_db(value: Optional[str]) -> str:
        if not value:
            return AppointmentStatus.PENDING.value
        return _STATUS_FROM_DB.get(value, value)

    def _appointment_to_row(self, appointment: Appointment) -> Dict[str, Any]:
        """
        Build the appointments row for an upsert.

        Args:
            appointment: Appointment to store

        Returns:
            Row dictionary with `appointment_date` in the business timezone
        """
        starts_at = combine_local(appointment.date, appointment.time, self.timezone)
        row = {
            "id": appointment.id,
            "customer_id": appointment.customer_id,
            "customer_name": appointment.customer_name,
            "customer_email": appointment.customer_email,
            "customer_phone": appointment.customer_phone,
            "appointment_date": to_iso_string(starts_at),
            "appointment_end": to_iso_string(
                starts_at + timedelta(minutes=appointment.total_duration)
            ),
            "duration_minutes": appointment.total_duration,
            "status": self._status_to_db(appointment.status),
            "location": appointment.location.model_dump() if appointment.location else None,
            "vehicle_info": (
                appointment.vehicle_info.model_dump() if appointment.vehicle_info else None
            ),
            "notes": appointment.notes,
            "total_price": appointment.total_price,
            "payment_status": PaymentStatus(appointment.payment_status).value,
            "payment_intent_id": appointment.payment_intent_id,
            "reminder_sent": appointment.reminder_sent,
            "updated_at": to_iso_string(utc_now()),
        }
        if appointment.created_at:
            row["created_at"] = to_iso_string(appointment.created_at)
        return row

    @staticmethod
    def _service_rows(appointment: Appointment) -> List[Dict[str, Any]]:
        """Join rows capturing each service's price and duration at booking."""
        return [
            {
                "service_id": service.id,
                "price_at_booking": service.price,
                "duration_at_booking": service.duration_minutes,
            }
            for service in appointment.services
        ]

    @staticmethod
    def _returned_id(data: Any) -> Optional[str]:
        """Appointment id returned by the save function (scalar or row form)."""
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict):
            data = data.get("id") or data.get(SAVE_APPOINTMENT_FUNCTION)
        return str(data) if data else None

    def _parse_service(self, item: dict, booked: Optional[dict] = None) -> Optional[Service]:
        """
        Parse a services row, optionally overlaid with the values captured
        at booking time. Rows without a duration are skipped.
        """
        booked = booked or {}
        duration = booked.get("duration_at_booking")
        if duration is None:
            duration = item.get("duration_minutes")
        service_id = item.get("id") or booked.get("service_id")

        if duration is None:
            logger.warning(
                f"Service {service_id} has no duration and needs backfilling; skipped"
            )
            return None

        price = booked.get("price_at_booking")
        if price is None:
            price = item.get("price") or 0

        data = {
            "id": service_id,
            "name": item.get("name") or "",
            "description": item.get("description") or "",
            "price": price,
            "duration_minutes": duration,
            "is_active": item.get("active", True),
        }
        if item.get("category"):
            data["category"] = item["category"]
        return Service(**data)

    def _parse_appointment(self, item: dict) -> Appointment:
        """
        Parse appointment data from a joined database response.

        Args:
            item: Raw appointment row with customers and appointment_services

        Returns:
            Parsed Appointment object
        """
        starts_at = parse_iso_datetime(item["appointment_date"]).astimezone(
            pytz.timezone(self.timezone)
        )
        customer = item.get("customers") or {}

        services = []
        for booked in item.get("appointment_services") or []:
            service = self._parse_service(booked.get("services") or {}, booked)
            if service is not None:
                services.append(service)

        data = {
            "id": item["id"],
            "customer_id": item.get("customer_id") or customer.get("id"),
            "customer_name": customer.get("name") or item.get("customer_name") or "",
            "customer_email": customer.get("email") or item.get("customer_email"),
            "customer_phone": customer.get("phone") or item.get("customer_phone"),
            "date": starts_at.date(),
            "time": starts_at.time().replace(tzinfo=None),
            "status": self._status_from_db(item.get("status")),
            "services": services,
            "notes": item.get("notes"),
            "location": item.get("location") or None,
            "vehicle_info": item.get("vehicle_info") or None,
            "payment_status": item.get("payment_status") or PaymentStatus.PENDING.value,
            "payment_intent_id": item.get("payment_intent_id"),
            "reminder_sent": bool(item.get("reminder_sent", False)),
        }
        for field in ["created_at", "updated_at"]:
            if item.get(field):
                data[field] = parse_iso_datetime(item[field])

        return Appointment(**data)


# Global database client instance
_db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """Get or create the global database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = SupabaseClient()
    return _db_client
