"""
Input validation helpers for booking form fields.
"""

import re
from typing import Optional

# local@domain.tld, no whitespace and exactly one @
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty or whitespace-only strings."""
    return value is None or not str(value).strip()


def validate_email(email: str) -> bool:
    """
    Validate email address shape.

    Args:
        email: Email address string

    Returns:
        True if it looks like local@domain.tld, False otherwise
    """
    if not email or not isinstance(email, str):
        return False

    return bool(EMAIL_PATTERN.match(email.strip()))


def phone_digits(phone: str) -> str:
    """Strip everything except digits."""
    return re.sub(r"\D", "", phone or "")


def validate_phone(phone: str) -> bool:
    """
    Validate phone number by digit count.
    Formatting characters (+, spaces, dashes, parentheses) are ignored.

    Args:
        phone: Phone number string

    Returns:
        True if it has between 10 and 15 digits, False otherwise
    """
    if not phone or not isinstance(phone, str):
        return False

    return PHONE_MIN_DIGITS <= len(phone_digits(phone)) <= PHONE_MAX_DIGITS


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize free-text input such as appointment notes.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
