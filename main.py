"""
Main entry point for the mobile detailing scheduler back end.
Serves the webhook and availability endpoints and runs the reminder job.
"""

import sys

from aiohttp import web

from config import settings
from scheduler import setup_scheduler, shutdown_scheduler
from utils.exceptions import ConfigurationError
from utils.logging_config import setup_logging
from webhook import create_app

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="app.log", log_dir="logs"
)


async def on_startup(app: web.Application) -> None:
    # The scheduler needs the running event loop
    setup_scheduler()
    logger.info("Reminder scheduler started")


async def on_shutdown(app: web.Application) -> None:
    shutdown_scheduler()


def build_app() -> web.Application:
    """
    Validate configuration and assemble the application.

    Raises:
        ValueError: If required settings are missing
        ConfigurationError: If business settings are malformed
    """
    settings.validate_all_required()
    business = settings.get_business_settings()
    logger.info(
        f"Business timezone {business.timezone}, "
        f"{business.slot_minutes}+{business.buffer_minutes} minute slots, "
        f"{business.minimum_booking_advance_hours}h minimum advance"
    )

    app = create_app()
    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)
    return app


def main() -> None:
    try:
        app = build_app()
    except (ValueError, ConfigurationError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    web.run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
