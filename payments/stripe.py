"""
Stripe webhook event handling.

Charges and payment intents are created by the checkout front end; this
module only records the outcome on the appointment the payment belongs to.
The appointment id travels in the payment intent metadata.
"""

from typing import Any, Dict

from db import get_db_client
from models.appointment import PaymentStatus
from utils.exceptions import AppointmentNotFoundError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__,
    log_level="INFO",
    log_file="payments.log",
    log_dir="logs"
)

APPOINTMENT_METADATA_KEY = "appointmentId"

# Payment intent events that carry appointment metadata
_INTENT_EVENT_STATUSES = {
    "payment_intent.succeeded": PaymentStatus.PAID,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
}


async def _record_intent_event(
    event_type: str, payment_intent: Dict[str, Any]
) -> Dict[str, Any]:
    appointment_id = (payment_intent.get("metadata") or {}).get(APPOINTMENT_METADATA_KEY)

    if not appointment_id:
        logger.warning(f"Webhook {event_type} received without {APPOINTMENT_METADATA_KEY}")
        return {"status": "ignored", "message": f"No {APPOINTMENT_METADATA_KEY} in metadata"}

    payment_status = _INTENT_EVENT_STATUSES[event_type]
    db = get_db_client()

    try:
        await db.update_payment_status(
            appointment_id, payment_status, payment_intent_id=payment_intent.get("id")
        )
    except AppointmentNotFoundError:
        logger.warning(f"Payment event for unknown appointment {appointment_id}")
        return {
            "status": "ignored",
            "message": "Appointment not found",
            "appointment_id": appointment_id,
        }

    if payment_status == PaymentStatus.PAID:
        logger.info(f"Payment confirmed for appointment {appointment_id}")
        return {"status": "success", "appointment_id": appointment_id}

    logger.warning(f"Payment failed for appointment {appointment_id}")
    return {"status": "failed", "appointment_id": appointment_id}


async def _record_refund(charge: Dict[str, Any]) -> Dict[str, Any]:
    payment_intent_id = charge.get("payment_intent")
    if not payment_intent_id:
        logger.warning("Refund received without payment_intent")
        return {"status": "ignored", "message": "No payment_intent on charge"}

    db = get_db_client()
    appointment_ids = await db.update_payment_status_by_intent(
        payment_intent_id, PaymentStatus.REFUNDED
    )

    if not appointment_ids:
        logger.warning(f"Refund for payment intent {payment_intent_id} matched no appointment")
        return {"status": "ignored", "message": "No appointment for payment intent"}

    logger.info(f"Refund recorded for appointments {', '.join(appointment_ids)}")
    return {"status": "success", "appointment_ids": appointment_ids}


async def handle_webhook(event_data: dict) -> dict:
    """
    Handle Stripe webhook events.

    Args:
        event_data: Verified Stripe event

    Returns:
        Response dict describing what was recorded
    """
    event_type = event_data.get("type")
    event_object = (event_data.get("data") or {}).get("object")

    if not event_object:
        return {"status": "error", "message": "Invalid webhook data"}

    if event_type in _INTENT_EVENT_STATUSES:
        return await _record_intent_event(event_type, event_object)

    if event_type == "charge.refunded":
        return await _record_refund(event_object)

    return {"status": "processed", "event_type": event_type}
