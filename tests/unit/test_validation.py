"""
Unit tests for booking validation.
"""

from datetime import date, datetime, time, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from models.appointment import AppointmentRequest
from models.business import BusinessSettings
from scheduling.validation import validate_booking
from utils.constants import (
    BOOKING_CONFLICT,
    EXCEEDS_BUSINESS_HOURS,
    INVALID_EMAIL,
    INVALID_PHONE,
    NOT_BUSINESS_DAY,
    OUTSIDE_BUSINESS_HOURS,
    PAST_DATE,
    REQUIRED_FIELD_MESSAGES,
    SERVICE_REQUIRED,
)

ADVANCE_2H = "Appointments must be scheduled at least 2 hours in advance"


class TestScenarios:
    """Booking scenarios against a 08:00-18:00 Monday."""

    def test_overlapping_request_rejected(
        self, business, appointment_factory, request_factory, early_now
    ):
        existing = [appointment_factory("apt_1", at=time(10, 0), minutes=60)]
        request = request_factory(at=time(10, 30), minutes=30)

        result = validate_booking(request, business, existing, now=early_now)

        assert not result.is_valid
        assert result.errors == [BOOKING_CONFLICT]
        assert [c.appointment_id for c in result.conflicts] == ["apt_1"]
        assert result.conflicts[0].conflict_time == "10:00 - 11:00"

    def test_touching_request_accepted(
        self, business, appointment_factory, request_factory, early_now
    ):
        existing = [appointment_factory("apt_1", at=time(10, 0), minutes=60)]
        request = request_factory(at=time(11, 0), minutes=30)

        result = validate_booking(request, business, existing, now=early_now)

        assert result.is_valid
        assert result.errors == []
        assert result.conflicts == []

    def test_inside_advance_window_rejected(self, business, request_factory):
        now = datetime(2025, 3, 10, 9, 0)
        request = request_factory(at=time(10, 30), minutes=30)

        result = validate_booking(request, business, [], now=now)

        assert result.errors == [ADVANCE_2H]

    def test_running_past_closing_rejected(self, business, request_factory, early_now):
        request = request_factory(at=time(17, 45), minutes=60)

        result = validate_booking(request, business, [], now=early_now)

        assert result.errors == [EXCEEDS_BUSINESS_HOURS]

    def test_no_services_rejected(self, business, request_factory, early_now):
        request = request_factory(minutes=0)

        result = validate_booking(request, business, [], now=early_now)

        assert result.errors == [SERVICE_REQUIRED]


class TestFieldChecks:
    """Required fields and contact formats."""

    def test_empty_request_reports_every_missing_field(self, business, early_now):
        result = validate_booking(AppointmentRequest(), business, [], now=early_now)

        assert result.errors == list(REQUIRED_FIELD_MESSAGES.values()) + [SERVICE_REQUIRED]

    def test_whitespace_counts_as_blank(self, business, request_factory, early_now):
        request = request_factory(customer_name="   ")

        result = validate_booking(request, business, [], now=early_now)

        assert result.errors == ["Customer name is required"]

    def test_invalid_email_and_phone(self, business, request_factory, early_now):
        request = request_factory(customer_email="sam@example", customer_phone="555-1234")

        result = validate_booking(request, business, [], now=early_now)

        assert result.errors == [INVALID_EMAIL, INVALID_PHONE]

    @pytest.mark.parametrize(
        "phone,valid",
        [
            ("5551234567", True),
            ("+1 (555) 123-4567", True),
            ("123456789012345", True),
            ("555123456", False),
            ("1234567890123456", False),
        ],
    )
    def test_phone_digit_bounds(self, business, request_factory, early_now, phone, valid):
        result = validate_booking(
            request_factory(customer_phone=phone), business, [], now=early_now
        )

        assert (INVALID_PHONE not in result.errors) is valid

    def test_errors_collected_in_check_order(
        self, business, appointment_factory, request_factory
    ):
        now = datetime(2025, 3, 10, 9, 0)
        existing = [appointment_factory("apt_1", at=time(9, 30), minutes=60)]
        request = request_factory(
            customer_email="not-an-email",
            at=time(10, 0),
            minutes=30,
            vehicle_info={"make": "", "model": "Civic"},
        )

        result = validate_booking(request, business, existing, now=now)

        assert result.errors == [
            "Vehicle make is required",
            INVALID_EMAIL,
            ADVANCE_2H,
            BOOKING_CONFLICT,
        ]

    def test_unparsable_time_fails_construction(self):
        with pytest.raises(PydanticValidationError):
            AppointmentRequest(time="25:61")


class TestDateChecks:
    """Past dates, advance window and business hours."""

    def test_past_date_rejected(self, business, request_factory):
        now = datetime(2025, 3, 12, 9, 0)

        result = validate_booking(request_factory(), business, [], now=now)

        assert PAST_DATE in result.errors
        assert ADVANCE_2H in result.errors

    def test_exact_advance_boundary_accepted(self, business, request_factory):
        now = datetime(2025, 3, 10, 8, 30)

        result = validate_booking(request_factory(at=time(10, 30)), business, [], now=now)

        assert result.is_valid

    def test_aware_now_converted_to_business_timezone(self, business, request_factory):
        # 13:00 UTC is 09:00 in New York once daylight saving time has started
        now = datetime(2025, 3, 10, 13, 0, tzinfo=timezone.utc)

        result = validate_booking(request_factory(at=time(10, 30)), business, [], now=now)

        assert result.errors == [ADVANCE_2H]

    def test_fractional_advance_hours_in_message(self, request_factory):
        business = BusinessSettings(minimum_booking_advance_hours=1.5)
        now = datetime(2025, 3, 10, 9, 30)

        result = validate_booking(request_factory(at=time(10, 30)), business, [], now=now)

        assert result.errors == [
            "Appointments must be scheduled at least 1.5 hours in advance"
        ]

    def test_closed_day_rejected(self, business, request_factory, early_now):
        request = request_factory(day=date(2025, 3, 9))

        result = validate_booking(request, business, [], now=early_now)

        assert result.errors == [NOT_BUSINESS_DAY]

    def test_before_opening_rejected(self, business, request_factory, early_now):
        result = validate_booking(
            request_factory(at=time(7, 30)), business, [], now=early_now
        )

        assert result.errors == [OUTSIDE_BUSINESS_HOURS]

    def test_start_at_closing_extends_past_hours(self, business, request_factory, early_now):
        result = validate_booking(
            request_factory(at=time(18, 0)), business, [], now=early_now
        )

        assert result.errors == [EXCEEDS_BUSINESS_HOURS]

    def test_ending_exactly_at_closing_accepted(self, business, request_factory, early_now):
        result = validate_booking(
            request_factory(at=time(17, 0), minutes=60), business, [], now=early_now
        )

        assert result.is_valid


class TestEdits:
    """Validation of edits to existing appointments."""

    def test_unchanged_edit_revalidates(
        self, business, appointment_factory, request_factory, early_now
    ):
        existing = [
            appointment_factory("apt_1", at=time(10, 0), minutes=60),
            appointment_factory("apt_2", at=time(11, 0), minutes=60),
        ]
        request = request_factory(at=time(10, 0), minutes=60)

        result = validate_booking(
            request, business, existing, now=early_now, appointment_id="apt_1"
        )

        assert result.is_valid

    def test_edit_still_conflicts_with_others(
        self, business, appointment_factory, request_factory, early_now
    ):
        existing = [
            appointment_factory("apt_1", at=time(10, 0), minutes=60),
            appointment_factory("apt_2", at=time(11, 0), minutes=60),
        ]
        request = request_factory(at=time(10, 0), minutes=90)

        result = validate_booking(
            request, business, existing, now=early_now, appointment_id="apt_1"
        )

        assert result.errors == [BOOKING_CONFLICT]
        assert [c.appointment_id for c in result.conflicts] == ["apt_2"]

    def test_past_appointment_can_be_resaved(self, business, request_factory):
        now = datetime(2025, 3, 20, 9, 0)

        result = validate_booking(
            request_factory(), business, [], now=now, appointment_id="apt_1"
        )

        assert result.is_valid

    def test_cancelled_existing_does_not_block(
        self, business, appointment_factory, request_factory, early_now
    ):
        existing = [appointment_factory("apt_1", status="cancelled")]

        result = validate_booking(request_factory(), business, existing, now=early_now)

        assert result.is_valid

    def test_cancelled_original_never_conflicts(
        self, business, appointment_factory, request_factory, early_now
    ):
        original = appointment_factory("mine", at=time(10, 0), status="cancelled")
        existing = [original, appointment_factory("other", at=time(10, 0), minutes=60)]
        request = request_factory(at=time(10, 0), minutes=60)

        result = validate_booking(request, business, existing, now=early_now, original=original)

        assert result.is_valid
        assert result.conflicts == []

    def test_moving_into_the_past_rejected(self, business, appointment_factory, request_factory):
        now = datetime(2025, 3, 12, 9, 0)
        original = appointment_factory("apt_1", day=date(2025, 3, 14), at=time(10, 0))
        request = request_factory(day=date(2025, 3, 10), at=time(10, 0))

        result = validate_booking(request, business, [original], now=now, original=original)

        assert result.errors == [PAST_DATE, ADVANCE_2H]

    def test_past_original_resaved_at_same_slot(
        self, business, appointment_factory, request_factory
    ):
        now = datetime(2025, 3, 20, 9, 0)
        original = appointment_factory("apt_1", at=time(10, 30))

        result = validate_booking(
            request_factory(at=time(10, 30)), business, [original], now=now, original=original
        )

        assert result.is_valid


def test_validation_is_idempotent(business, appointment_factory, request_factory):
    now = datetime(2025, 3, 10, 9, 0)
    existing = [appointment_factory()]
    request = request_factory(customer_email="bad", at=time(10, 30))

    first = validate_booking(request, business, existing, now=now)
    second = validate_booking(request, business, existing, now=now)

    assert first == second
    assert first.errors == [INVALID_EMAIL, ADVANCE_2H, BOOKING_CONFLICT]
