"""Appointment models."""

from datetime import date as Date
from datetime import datetime
from datetime import time as Time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.service import Service, total_duration, total_price
from utils.datetime_utils import format_minutes, minutes_to_time, time_to_minutes


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DELAYED = "delayed"


class PaymentStatus(str, Enum):
    """Payment status recorded from processor webhooks."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class VehicleSize(str, Enum):
    COMPACT = "compact"
    MIDSIZE = "midsize"
    LARGE = "large"
    SUV = "suv"
    TRUCK = "truck"


class VehicleInfo(BaseModel):
    """Vehicle descriptor."""

    make: str = ""
    model: str = ""
    year: Optional[int] = None
    color: Optional[str] = None
    license_plate: Optional[str] = None
    size: Optional[VehicleSize] = None

    class Config:
        use_enum_values = True


class AppointmentLocation(BaseModel):
    """Where the mobile service takes place."""

    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    parking_instructions: Optional[str] = None

    def one_line(self) -> str:
        return f"{self.address}, {self.city}, {self.state}"


def _truncate_to_minute(value: Optional[Time]) -> Optional[Time]:
    if value is None:
        return None
    return value.replace(second=0, microsecond=0, tzinfo=None)


class Appointment(BaseModel):
    """
    Appointment model.

    The interval occupied on its date is [start, start + total_duration),
    where total_duration is the sum of its services' durations.
    """

    id: str
    customer_id: Optional[str] = None
    customer_name: str = ""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    date: Date
    time: Time
    status: AppointmentStatus = AppointmentStatus.PENDING
    services: List[Service] = Field(default_factory=list)
    notes: Optional[str] = None
    location: Optional[AppointmentLocation] = None
    vehicle_info: Optional[VehicleInfo] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: Optional[str] = None
    reminder_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": "0b7f3c1e-2a4d-4e0b-9b1a-3c5e7f9a1b2c",
                "customer_name": "Dana Reyes",
                "customer_email": "dana@example.com",
                "date": "2025-03-10",
                "time": "10:00",
                "status": "confirmed",
                "services": [
                    {
                        "id": "exterior-basic",
                        "name": "Basic Exterior Wash",
                        "price": 50,
                        "duration_minutes": 60,
                    }
                ],
            }
        }

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: Time) -> Time:
        """Appointments are booked with minute granularity."""
        return _truncate_to_minute(v)

    @property
    def total_duration(self) -> int:
        return total_duration(self.services)

    @property
    def total_price(self) -> float:
        return total_price(self.services)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.total_duration

    @property
    def end_time(self) -> Time:
        return minutes_to_time(self.end_minutes)

    @property
    def time_range(self) -> str:
        """Display window such as '10:00 - 11:00'."""
        return f"{format_minutes(self.start_minutes)} - {format_minutes(self.end_minutes)}"

    @property
    def is_active(self) -> bool:
        """Cancelled appointments do not occupy the calendar."""
        return self.status != AppointmentStatus.CANCELLED


class AppointmentRequest(BaseModel):
    """
    Booking form data submitted by the owner or a customer.

    Text fields may be blank; the booking validator reports them. A date or
    time string that cannot be parsed at all fails here, before validation.
    """

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    date: Optional[Date] = None
    time: Optional[Time] = None
    services: List[Service] = Field(default_factory=list)
    vehicle_info: VehicleInfo = Field(default_factory=VehicleInfo)
    location: AppointmentLocation = Field(default_factory=AppointmentLocation)
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: Optional[Time]) -> Optional[Time]:
        return _truncate_to_minute(v)

    @property
    def total_duration(self) -> int:
        return total_duration(self.services)

    @property
    def total_price(self) -> float:
        return total_price(self.services)
