"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are instantiated at import time; give them test values first
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test_key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("TIMEZONE", "America/New_York")
os.environ.setdefault("LOG_DIR", "logs")

from datetime import date, datetime, time  # noqa: E402
from unittest.mock import MagicMock, patch  # noqa: E402

import pytest  # noqa: E402

from models.appointment import (  # noqa: E402
    Appointment,
    AppointmentLocation,
    AppointmentRequest,
    VehicleInfo,
)
from models.business import BusinessSettings  # noqa: E402
from models.service import Service  # noqa: E402

TEST_TIMEZONE = "America/New_York"


@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch("config.settings") as mock_settings:
        mock_settings.supabase_url = "https://test.supabase.co"
        mock_settings.supabase_key = "test_key"
        mock_settings.stripe_secret_key = "sk_test_123"
        mock_settings.stripe_webhook_secret = "whsec_test_123"
        mock_settings.timezone = TEST_TIMEZONE
        mock_settings.environment = "test"
        mock_settings.is_production = False
        mock_settings.host = "0.0.0.0"
        mock_settings.port = 8000
        mock_settings.redis_url = None
        mock_settings.reminder_hours_before = 24
        yield mock_settings


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table


@pytest.fixture
def business():
    """Default hours: Mon-Fri 08:00-18:00, Sat 09:00-17:00, Sun closed."""
    return BusinessSettings(timezone=TEST_TIMEZONE)


def make_service(minutes: int = 60, service_id: str = "exterior-basic", price: float = 50) -> Service:
    return Service(
        id=service_id, name=f"Service {service_id}", price=price, duration_minutes=minutes
    )


def make_appointment(
    appointment_id: str = "apt_1",
    day: date = date(2025, 3, 10),
    at: time = time(10, 0),
    minutes: int = 60,
    status: str = "confirmed",
    customer_name: str = "Dana Reyes",
    **kwargs,
) -> Appointment:
    return Appointment(
        id=appointment_id,
        customer_name=customer_name,
        date=day,
        time=at,
        status=status,
        services=[make_service(minutes)] if minutes else [],
        **kwargs,
    )


def make_request(
    day: date = date(2025, 3, 10),
    at: time = time(10, 30),
    minutes: int = 30,
    **overrides,
) -> AppointmentRequest:
    data = {
        "customer_name": "Sam Carter",
        "customer_email": "sam@example.com",
        "customer_phone": "(555) 123-4567",
        "date": day,
        "time": at,
        "services": [make_service(minutes)] if minutes else [],
        "vehicle_info": VehicleInfo(make="Honda", model="Civic"),
        "location": AppointmentLocation(
            address="12 Main St", city="Springfield", state="IL", zip_code="62701"
        ),
    }
    data.update(overrides)
    return AppointmentRequest(**data)


@pytest.fixture
def early_now():
    """Monday 2025-03-03 09:00 local, a week before the default booking date."""
    return datetime(2025, 3, 3, 9, 0)


@pytest.fixture
def appointment_factory():
    """Build appointments; defaults to a confirmed 10:00-11:00 on Monday 2025-03-10."""
    return make_appointment


@pytest.fixture
def request_factory():
    """Build complete booking requests; defaults to 10:30 for 30 minutes on 2025-03-10."""
    return make_request


@pytest.fixture
def service_factory():
    return make_service
