"""
Unit tests for Supabase database client.
Tests with mocked Supabase API calls.
"""

from datetime import date, time
from unittest.mock import MagicMock, patch

import pytest

from db.supabase_client import SupabaseClient
from models.appointment import AppointmentStatus, PaymentStatus
from utils.exceptions import AppointmentNotFoundError, AppointmentSaveError, DatabaseError

# 10:00 New York time on Monday 2025-03-10 (EDT, UTC-4)
APPOINTMENT_ROW = {
    "id": "apt_1",
    "customer_id": "cust_1",
    "appointment_date": "2025-03-10T14:00:00+00:00",
    "status": "confirmed",
    "location": {"address": "12 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701"},
    "vehicle_info": {"make": "Honda", "model": "Civic"},
    "notes": "Gate code 1234",
    "payment_status": "pending",
    "payment_intent_id": None,
    "reminder_sent": False,
    "created_at": "2025-03-01T12:00:00Z",
    "customers": {"id": "cust_1", "name": "Dana Reyes", "email": "dana@example.com", "phone": "5551234567"},
    "appointment_services": [
        {
            "service_id": "exterior-basic",
            "price_at_booking": 45,
            "duration_at_booking": None,
            "services": {
                "id": "exterior-basic",
                "name": "Basic Exterior Wash",
                "description": "Hand wash",
                "price": 50,
                "duration_minutes": 60,
                "category": "exterior",
                "active": True,
            },
        }
    ],
}


def _query(mock_table, data):
    """Make every chained query method return the same mock, ending in `data`."""
    for method in ("select", "eq", "gte", "lt", "lte", "in_", "order", "upsert", "insert", "update", "delete"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=data)
    return mock_table


@pytest.fixture
def supabase_client(mock_supabase_client):
    """Create SupabaseClient with mocked client."""
    mock_client, _ = mock_supabase_client
    with patch("db.supabase_client.create_client", return_value=mock_client):
        client = SupabaseClient(timezone="America/New_York")
        client.client = mock_client
        return client


class TestAppointmentReads:

    @pytest.mark.asyncio
    async def test_get_appointment_by_id_parses_joined_row(
        self, supabase_client, mock_supabase_client
    ):
        _, mock_table = mock_supabase_client
        _query(mock_table, [APPOINTMENT_ROW])

        apt = await supabase_client.get_appointment_by_id("apt_1")

        assert apt.id == "apt_1"
        assert apt.date == date(2025, 3, 10)
        assert apt.time == time(10, 0)
        assert apt.customer_name == "Dana Reyes"
        assert apt.customer_email == "dana@example.com"
        assert apt.status == "confirmed"
        assert apt.total_duration == 60
        # Price captured at booking wins over the current list price
        assert apt.services[0].price == 45
        assert apt.location.city == "Springfield"
        mock_table.eq.assert_called_with("id", "apt_1")

    @pytest.mark.asyncio
    async def test_get_appointment_by_id_not_found(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])

        assert await supabase_client.get_appointment_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_status_mapped_from_database(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [dict(APPOINTMENT_ROW, status="in_progress")])

        apt = await supabase_client.get_appointment_by_id("apt_1")

        assert apt.status == "in-progress"

    @pytest.mark.asyncio
    async def test_service_without_duration_skipped(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        booked = dict(
            APPOINTMENT_ROW["appointment_services"][0],
            services={"id": "legacy", "name": "Legacy", "price": 10, "duration_minutes": None},
        )
        _query(mock_table, [dict(APPOINTMENT_ROW, appointment_services=[booked])])

        apt = await supabase_client.get_appointment_by_id("apt_1")

        assert apt.services == []
        assert apt.total_duration == 0

    @pytest.mark.asyncio
    async def test_get_appointments_for_date_uses_local_day_bounds(
        self, supabase_client, mock_supabase_client
    ):
        _, mock_table = mock_supabase_client
        _query(mock_table, [APPOINTMENT_ROW])

        result = await supabase_client.get_appointments_for_date("2025-03-10")

        assert [a.id for a in result] == ["apt_1"]
        mock_table.gte.assert_called_once_with("appointment_date", "2025-03-10T00:00:00-04:00")
        mock_table.lt.assert_called_once_with("appointment_date", "2025-03-11T00:00:00-04:00")

    @pytest.mark.asyncio
    async def test_get_appointments_status_filter(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])

        await supabase_client.get_appointments(
            statuses=[AppointmentStatus.IN_PROGRESS, AppointmentStatus.CONFIRMED]
        )

        mock_table.in_.assert_called_once_with("status", ["in_progress", "confirmed"])

    @pytest.mark.asyncio
    async def test_errors_wrapped(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])
        mock_table.execute.side_effect = Exception("connection reset")

        with pytest.raises(DatabaseError, match="Failed to get appointments"):
            await supabase_client.get_appointments()


class TestAppointmentWrites:

    @pytest.mark.asyncio
    async def test_save_appointment_rebuilds_timestamp(
        self, supabase_client, mock_supabase_client, appointment_factory
    ):
        mock_client, mock_table = mock_supabase_client
        _query(mock_table, [APPOINTMENT_ROW])
        mock_client.rpc.return_value.execute.return_value = MagicMock(data="apt_1")
        apt = appointment_factory("apt_1", at=time(10, 0), minutes=60)

        saved = await supabase_client.save_appointment(apt)

        function_name, params = mock_client.rpc.call_args[0]
        assert function_name == "save_appointment_with_services"
        row = params["appointment"]
        assert row["appointment_date"] == "2025-03-10T10:00:00-04:00"
        assert row["appointment_end"] == "2025-03-10T11:00:00-04:00"
        assert row["status"] == "confirmed"
        assert row["duration_minutes"] == 60
        assert params["services"] == [
            {
                "service_id": "exterior-basic",
                "price_at_booking": 50,
                "duration_at_booking": 60,
            }
        ]
        assert saved.date == apt.date
        assert saved.time == apt.time

    @pytest.mark.asyncio
    async def test_save_appointment_writes_in_one_call(
        self, supabase_client, mock_supabase_client, appointment_factory
    ):
        mock_client, mock_table = mock_supabase_client
        _query(mock_table, [APPOINTMENT_ROW])
        mock_client.rpc.return_value.execute.return_value = MagicMock(data=[{"id": "apt_1"}])

        await supabase_client.save_appointment(appointment_factory())

        mock_client.rpc.assert_called_once()
        mock_table.upsert.assert_not_called()
        mock_table.delete.assert_not_called()
        mock_table.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_save_leaves_booked_services_untouched(
        self, supabase_client, mock_supabase_client, appointment_factory
    ):
        mock_client, mock_table = mock_supabase_client
        _query(mock_table, [APPOINTMENT_ROW])
        mock_client.rpc.return_value.execute.side_effect = Exception("insert violates foreign key")

        with pytest.raises(AppointmentSaveError, match="foreign key"):
            await supabase_client.save_appointment(appointment_factory())

        mock_table.delete.assert_not_called()
        mock_table.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_appointment_without_returned_id(
        self, supabase_client, mock_supabase_client, appointment_factory
    ):
        mock_client, _ = mock_supabase_client
        mock_client.rpc.return_value.execute.return_value = MagicMock(data=None)

        with pytest.raises(AppointmentSaveError, match="no data returned"):
            await supabase_client.save_appointment(appointment_factory())

    @pytest.mark.asyncio
    async def test_update_appointment_status(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [dict(APPOINTMENT_ROW, status="cancelled")])

        apt = await supabase_client.update_appointment_status("apt_1", AppointmentStatus.CANCELLED)

        assert apt.status == "cancelled"
        assert mock_table.update.call_args[0][0]["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_update_status_not_found(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])

        with pytest.raises(AppointmentNotFoundError):
            await supabase_client.update_appointment_status("missing", AppointmentStatus.CONFIRMED)

    @pytest.mark.asyncio
    async def test_update_payment_status(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [dict(APPOINTMENT_ROW, payment_status="paid", payment_intent_id="pi_1")])

        apt = await supabase_client.update_payment_status("apt_1", PaymentStatus.PAID, "pi_1")

        update = mock_table.update.call_args[0][0]
        assert update["payment_status"] == "paid"
        assert update["payment_intent_id"] == "pi_1"
        assert apt.payment_status == "paid"

    @pytest.mark.asyncio
    async def test_update_payment_status_by_intent(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [{"id": "apt_1"}, {"id": "apt_2"}])

        ids = await supabase_client.update_payment_status_by_intent("pi_1", PaymentStatus.REFUNDED)

        assert ids == ["apt_1", "apt_2"]
        mock_table.eq.assert_called_with("payment_intent_id", "pi_1")

    @pytest.mark.asyncio
    async def test_delete_appointment(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [{"id": "apt_1"}])

        assert await supabase_client.delete_appointment("apt_1") is True

    @pytest.mark.asyncio
    async def test_delete_missing_appointment(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])

        assert await supabase_client.delete_appointment("missing") is False

    @pytest.mark.asyncio
    async def test_mark_reminder_sent(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [{"id": "apt_1"}])

        assert await supabase_client.mark_reminder_sent("apt_1") is True
        assert mock_table.update.call_args[0][0]["reminder_sent"] is True


class TestServices:

    @pytest.mark.asyncio
    async def test_get_services_cached(self, supabase_client, mock_supabase_client):
        mock_client, mock_table = mock_supabase_client
        _query(
            mock_table,
            [{"id": "wax", "name": "Hand Wax", "price": 40, "duration_minutes": 45, "active": True}],
        )

        first = await supabase_client.get_services()
        second = await supabase_client.get_services()

        assert [s.id for s in first] == ["wax"]
        assert second == first
        assert mock_table.execute.call_count == 1

    @pytest.mark.asyncio
    async def test_get_services_falls_back_to_catalog(self, supabase_client, mock_supabase_client):
        _, mock_table = mock_supabase_client
        _query(mock_table, [])

        services = await supabase_client.get_services()

        assert "full-detail" in [s.id for s in services]
