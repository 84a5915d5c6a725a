"""
Custom exception classes for better error handling.

Booking problems caused by user input are not exceptions: they are
collected into a ValidationResult. These types cover store failures,
broken configuration and webhook problems.
"""


class DatabaseError(Exception):
    """Base exception for appointment store operations."""

    pass


class AppointmentNotFoundError(DatabaseError):
    """Raised when an appointment is not found."""

    pass


class AppointmentSaveError(DatabaseError):
    """Raised when creating or updating an appointment fails."""

    pass


class ConfigurationError(Exception):
    """Raised when business configuration is missing or malformed."""

    pass


class WebhookVerificationError(Exception):
    """Raised when webhook signature verification fails."""

    pass


class ValidationError(Exception):
    """Raised when a request payload (not a booking) is structurally invalid."""

    pass
