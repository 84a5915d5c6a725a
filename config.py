"""
Configuration module for the mobile detailing scheduler.
Loads environment variables and provides typed configuration.
"""

import json
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.business import BusinessSettings
from utils.constants import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_MINIMUM_BOOKING_ADVANCE_HOURS,
    DEFAULT_REMINDER_HOURS_BEFORE,
    DEFAULT_REMINDER_TEMPLATE,
    DEFAULT_SLOT_MINUTES,
    DEFAULT_TIMEZONE,
)
from utils.exceptions import ConfigurationError

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: str
    supabase_key: str

    # Stripe (webhook receiver only; charges are created elsewhere)
    stripe_secret_key: str
    stripe_webhook_secret: Optional[str] = (
        None  # Required in production for webhook verification
    )

    # Scheduling
    timezone: str = DEFAULT_TIMEZONE
    minimum_booking_advance_hours: float = DEFAULT_MINIMUM_BOOKING_ADVANCE_HOURS
    slot_minutes: int = DEFAULT_SLOT_MINUTES
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    business_hours: Optional[str] = (
        None  # JSON object overriding weekly hours, e.g. {"monday": {"start": "08:00", "end": "18:00", "is_open": true}}
    )

    # Reminders
    reminder_hours_before: int = DEFAULT_REMINDER_HOURS_BEFORE
    reminder_template: str = DEFAULT_REMINDER_TEMPLATE

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"  # development, staging, production

    # Redis Configuration (for APScheduler cluster support)
    redis_url: Optional[str] = (
        None  # Redis connection URL (e.g., redis://localhost:6379/0)
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = [
            "supabase_url",
            "supabase_key",
            "stripe_secret_key",
        ]
        if self.is_production:
            required_fields.append("stripe_webhook_secret")

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Placeholder values copied from .env.example
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )

    def get_business_settings(self) -> BusinessSettings:
        """
        Build scheduling rules from configuration.

        Raises:
            ConfigurationError: If the business hours override is malformed
        """
        data = {
            "timezone": self.timezone,
            "minimum_booking_advance_hours": self.minimum_booking_advance_hours,
            "slot_minutes": self.slot_minutes,
            "buffer_minutes": self.buffer_minutes,
        }

        if self.business_hours:
            try:
                data["business_hours"] = json.loads(self.business_hours)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"BUSINESS_HOURS is not valid JSON: {e}"
                ) from e

        try:
            return BusinessSettings(**data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid business settings: {e}") from e


# Global settings instance
settings = Settings()


def get_business_settings() -> BusinessSettings:
    """Business settings from the global configuration."""
    return settings.get_business_settings()
