"""
Application-wide constants.
Centralizes scheduling defaults and user-facing booking messages.
"""

# Scheduling defaults
DEFAULT_SLOT_MINUTES = 30  # Step between enumerated slot starts
DEFAULT_BUFFER_MINUTES = 15  # Idle gap between consecutive enumerated slots
DEFAULT_MINIMUM_BOOKING_ADVANCE_HOURS = 2
DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_REMINDER_HOURS_BEFORE = 24

# Validation limits
MAX_NOTES_LENGTH = 500

# Display
APPOINTMENT_ID_DISPLAY_LENGTH = 8
CALENDAR_PRODID = "-//The Mobile Detailers//EN"
CALENDAR_UID_DOMAIN = "mobiledetailers.com"
DEFAULT_SERVICE_LABEL = "Car detailing service"
MOBILE_SERVICE_LOCATION = "Customer Location (Mobile Service)"

# Booking validation messages
REQUIRED_FIELD_MESSAGES = {
    "customer_name": "Customer name is required",
    "customer_email": "Customer email is required",
    "customer_phone": "Customer phone is required",
    "date": "Date is required",
    "time": "Time is required",
    "vehicle_make": "Vehicle make is required",
    "vehicle_model": "Vehicle model is required",
    "address": "Address is required",
    "city": "City is required",
    "state": "State is required",
    "zip_code": "ZIP code is required",
}

INVALID_EMAIL = "Invalid email format"
INVALID_PHONE = "Phone number must be between 10-15 digits"
SERVICE_REQUIRED = "At least one service must be selected"
PAST_DATE = "Cannot schedule appointments in the past"
INSUFFICIENT_ADVANCE = "Appointments must be scheduled at least {hours} hours in advance"
NOT_BUSINESS_DAY = "Selected date is not a business day"
OUTSIDE_BUSINESS_HOURS = "Selected time is outside business hours"
EXCEEDS_BUSINESS_HOURS = "Appointment would extend beyond business hours"
BOOKING_CONFLICT = "Time slot conflicts with existing appointment"

# Reminder template (placeholders: customer_name, date, time)
DEFAULT_REMINDER_TEMPLATE = (
    "Hi {customer_name}! Reminder: Your car detailing appointment is "
    "scheduled for {date} at {time}. We'll be there!"
)

# Appointment service messages
APPOINTMENT_NOT_FOUND = "Appointment not found"
SAVE_FAILED = "Failed to save appointment"
DELETE_FAILED = "Failed to delete appointment"
