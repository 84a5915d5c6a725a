"""
Scheduler for appointment reminders using APScheduler.
Hands reminders for upcoming appointments to an injected notifier.

Supports Redis backend for horizontal scaling (multiple instances).
"""

from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from apscheduler.jobstores.redis import RedisJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import settings
from db import get_db_client
from models.appointment import Appointment
from utils.exceptions import DatabaseError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="scheduler.log", log_dir="logs"
)

# Delivers a rendered reminder; returns True when it was sent
Notifier = Callable[[Appointment, str], Awaitable[bool]]


def _create_scheduler() -> AsyncIOScheduler:
    """
    Create scheduler with Redis backend for clustering support.

    Falls back to the in-memory job store if Redis is not configured.
    """
    redis_url = getattr(settings, "redis_url", None)

    if redis_url:
        try:
            # redis://host:port/db or redis://:password@host:port/db
            parsed = urlparse(redis_url)
            host = parsed.hostname or "localhost"
            port = parsed.port or 6379
            db = int(parsed.path.lstrip("/")) if parsed.path.lstrip("/") else 0

            jobstores = {
                "default": RedisJobStore(
                    host=host,
                    port=port,
                    db=db,
                    password=parsed.password or None,
                )
            }
            logger.info(f"Scheduler using Redis backend: {host}:{port}/{db}")
            return AsyncIOScheduler(jobstores=jobstores)
        except Exception as e:
            logger.warning(
                f"Failed to initialize Redis scheduler: {e}. Falling back to in-memory scheduler."
            )
            return AsyncIOScheduler()

    logger.info("Scheduler using in-memory backend (single instance mode)")
    return AsyncIOScheduler()


scheduler = _create_scheduler()

# Notifier - injected via setup_scheduler or set_notifier
_notifier: Optional[Notifier] = None


def set_notifier(notifier: Notifier) -> None:
    """Set the coroutine that delivers reminders (SMS, email, ...)."""
    global _notifier
    _notifier = notifier
    logger.info("Notifier set for scheduler")


def build_reminder_message(appointment: Appointment, template: Optional[str] = None) -> str:
    """Render the reminder template for an appointment."""
    template = template or settings.reminder_template
    return template.format(
        customer_name=appointment.customer_name or "there",
        date=appointment.date.strftime("%A, %B %d"),
        time=appointment.time.strftime("%I:%M %p").lstrip("0"),
    )


async def send_reminder(appointment: Appointment) -> bool:
    """
    Send one reminder and mark it sent.

    Returns:
        True if sent and recorded, False otherwise
    """
    if not _notifier:
        logger.error("Notifier not available - cannot send reminder")
        return False

    try:
        message = build_reminder_message(appointment)
        delivered = await _notifier(appointment, message)
        if not delivered:
            logger.warning(f"Notifier did not deliver reminder for {appointment.id}")
            return False

        db = get_db_client()
        if not await db.mark_reminder_sent(appointment.id):
            logger.warning(f"Failed to mark reminder as sent for appointment {appointment.id}")
            return False

        logger.info(f"Reminder sent for appointment {appointment.id}")
        return True

    except Exception as e:
        logger.error(
            f"Failed to send reminder for appointment {appointment.id}: {e}", exc_info=True
        )
        return False


async def check_and_send_reminders() -> None:
    """Check for appointments that need reminders and send them."""
    if not _notifier:
        logger.warning("No notifier configured - skipping reminder check")
        return

    try:
        db = get_db_client()
        appointments = await db.get_appointments_for_reminder(settings.reminder_hours_before)

        if not appointments:
            logger.debug("No appointments require reminders at this time")
            return

        logger.info(f"Processing {len(appointments)} appointments for reminders")

        sent_count = 0
        failed_count = 0
        for appointment in appointments:
            if not appointment.is_active or appointment.reminder_sent:
                continue
            if await send_reminder(appointment):
                sent_count += 1
            else:
                failed_count += 1

        logger.info(
            f"Reminder processing complete: {sent_count} sent, {failed_count} failed"
        )

    except DatabaseError as e:
        logger.error(f"Database error checking reminders: {e}", exc_info=True)
    except Exception as e:
        logger.error(f"Unexpected error checking reminders: {e}", exc_info=True)


def setup_scheduler(notifier: Optional[Notifier] = None) -> None:
    """
    Register the hourly reminder job and start the scheduler.

    Args:
        notifier: Optional notifier. If None, set it later via set_notifier().
    """
    if notifier:
        set_notifier(notifier)

    scheduler.add_job(
        check_and_send_reminders,
        trigger=CronTrigger(minute=0),  # Every hour at minute 0
        id="check_reminders",
        name="Check and send appointment reminders",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started")


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown()
    logger.info("Scheduler stopped")
