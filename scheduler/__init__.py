"""Task scheduler for appointment reminders."""

from .reminders import (
    build_reminder_message,
    check_and_send_reminders,
    send_reminder,
    set_notifier,
    setup_scheduler,
    shutdown_scheduler,
)

__all__ = [
    "build_reminder_message",
    "check_and_send_reminders",
    "send_reminder",
    "set_notifier",
    "setup_scheduler",
    "shutdown_scheduler",
]
