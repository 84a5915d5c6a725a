"""Pydantic models for data validation and serialization."""

from .appointment import (
    Appointment,
    AppointmentLocation,
    AppointmentRequest,
    AppointmentStatus,
    PaymentStatus,
    VehicleInfo,
)
from .booking import BookingResult, TimeConflict, ValidationResult
from .business import DEFAULT_BUSINESS_HOURS, BusinessSettings, DayHours
from .service import SERVICES, Service, ServiceCategory, get_active_services, get_service
from .slot import TimeSlot

__all__ = [
    "Appointment",
    "AppointmentLocation",
    "AppointmentRequest",
    "AppointmentStatus",
    "PaymentStatus",
    "VehicleInfo",
    "BookingResult",
    "TimeConflict",
    "ValidationResult",
    "DEFAULT_BUSINESS_HOURS",
    "BusinessSettings",
    "DayHours",
    "SERVICES",
    "Service",
    "ServiceCategory",
    "get_active_services",
    "get_service",
    "TimeSlot",
]
