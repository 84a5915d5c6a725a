"""
HTTP endpoints for the scheduler back end.

- POST /webhook/stripe: Stripe webhook receiver with signature verification,
  payload validation and idempotency by event id
- GET /api/availability: enumerated time slots for a date and service list
- GET /health: service status and webhook metrics
"""

import json
import time
from collections import deque
from typing import Dict, List, Optional

import stripe
from aiohttp import web
from aiohttp.web import Request, Response
from stripe import SignatureVerificationError

from bookings import get_available_time_slots
from config import get_business_settings, settings
from db import get_db_client
from models.service import Service, total_duration
from payments import handle_webhook
from utils.constants import SERVICE_REQUIRED
from utils.datetime_utils import parse_date
from utils.exceptions import DatabaseError, ValidationError, WebhookVerificationError
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="webhook.log", log_dir="logs"
)

MAX_REQUEST_BODY_SIZE = 1024 * 1024  # 1MB
_MAX_EVENT_HISTORY = 1000
_EVENT_ID_CLEANUP_INTERVAL = 3600  # seconds
_EVENT_ID_MAX_AGE = 86400  # seconds

_processed_events: deque = deque(maxlen=_MAX_EVENT_HISTORY)
_processed_event_ids: Dict[str, float] = {}  # event_id -> timestamp
_last_cleanup_time = time.time()

_health_metrics = {
    "total_events": 0,
    "successful_events": 0,
    "failed_events": 0,
    "verification_failures": 0,
    "validation_failures": 0,
    "duplicate_events": 0,
    "start_time": time.time(),
}


def _error_response(error: str, message: str, status: int) -> Response:
    return web.json_response(
        {"status": "error", "error": error, "message": message}, status=status
    )


def _cleanup_old_event_ids() -> None:
    """Drop idempotency entries older than _EVENT_ID_MAX_AGE, at most once per interval."""
    global _last_cleanup_time
    current_time = time.time()

    if current_time - _last_cleanup_time < _EVENT_ID_CLEANUP_INTERVAL:
        return

    cutoff_time = current_time - _EVENT_ID_MAX_AGE
    expired_ids = [
        event_id
        for event_id, timestamp in _processed_event_ids.items()
        if timestamp < cutoff_time
    ]
    for event_id in expired_ids:
        _processed_event_ids.pop(event_id, None)

    _last_cleanup_time = current_time
    if expired_ids:
        logger.debug(f"Cleaned up {len(expired_ids)} expired event IDs")


def _verify_webhook_signature(payload: bytes, signature: Optional[str]) -> Dict:
    """
    Verify Stripe webhook signature.

    Args:
        payload: Raw request body bytes
        signature: Stripe-Signature header value

    Returns:
        Parsed event data

    Raises:
        WebhookVerificationError: If signature verification fails
        ValidationError: If no secret is configured outside test mode
    """
    if not settings.stripe_webhook_secret:
        # Unverified webhooks are only tolerated with Stripe test keys
        if settings.stripe_secret_key.startswith("sk_test_") and not settings.is_production:
            logger.warning(
                "STRIPE_WEBHOOK_SECRET not set - skipping signature verification. "
                "This is insecure and should only be used in development."
            )
            try:
                return json.loads(payload.decode("utf-8"))
            except ValueError as e:
                raise ValidationError(f"Webhook payload is not valid JSON: {e}") from e
        raise ValidationError(
            "Stripe webhook secret is required for production webhook verification"
        )

    if not signature:
        raise WebhookVerificationError("Missing Stripe-Signature header")

    try:
        return stripe.Webhook.construct_event(
            payload, signature, settings.stripe_webhook_secret
        )
    except ValueError as e:
        raise WebhookVerificationError(f"Invalid payload: {e}") from e
    except SignatureVerificationError as e:
        raise WebhookVerificationError(f"Invalid signature: {e}") from e


def _validate_webhook_payload(payload: Dict) -> None:
    """
    Validate webhook payload structure.

    Raises:
        ValidationError: If payload structure is invalid
    """
    if not isinstance(payload, dict):
        raise ValidationError("Webhook payload must be a JSON object")

    for field in ("id", "type"):
        value = payload.get(field)
        if not isinstance(value, str) or not value:
            raise ValidationError(f"Webhook '{field}' must be a non-empty string")

    if not isinstance(payload.get("data"), dict):
        raise ValidationError("Webhook payload 'data' field must be an object")


def _check_and_mark_idempotency(event_id: str) -> bool:
    """
    Check if an event was already handled and mark it if not.

    Returns:
        True if the event was already processed, False if newly marked
    """
    _cleanup_old_event_ids()

    if event_id in _processed_event_ids:
        return True

    _processed_event_ids[event_id] = time.time()
    return False


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add security headers to all responses."""
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
    )

    if request.path.startswith("/webhook/"):
        response.headers["Allow"] = "POST"

    return response


async def stripe_webhook_handler(request: Request) -> Response:
    """
    Receive a Stripe event and record its payment outcome.

    A failed event is unmarked so Stripe's retry is processed again.
    """
    event_id: Optional[str] = None
    event_type: Optional[str] = None

    try:
        content_length = request.headers.get("Content-Length")
        if content_length and content_length.isdigit():
            if int(content_length) > MAX_REQUEST_BODY_SIZE:
                _health_metrics["validation_failures"] += 1
                return _error_response(
                    "request_too_large",
                    f"Request body exceeds maximum size of {MAX_REQUEST_BODY_SIZE} bytes",
                    413,
                )

        raw_body = await request.read()

        if len(raw_body) > MAX_REQUEST_BODY_SIZE:
            _health_metrics["validation_failures"] += 1
            return _error_response(
                "request_too_large",
                f"Request body exceeds maximum size of {MAX_REQUEST_BODY_SIZE} bytes",
                413,
            )

        if not raw_body:
            logger.warning("Received empty webhook payload")
            _health_metrics["validation_failures"] += 1
            return _error_response("empty_payload", "Empty payload", 400)

        signature = request.headers.get("Stripe-Signature")
        payload = _verify_webhook_signature(raw_body, signature)
        _validate_webhook_payload(payload)

        event_id = str(payload["id"])
        event_type = str(payload["type"])
        logger.info(f"Received Stripe webhook: event_id={event_id}, type={event_type}")

        if _check_and_mark_idempotency(event_id):
            _health_metrics["duplicate_events"] += 1
            logger.info(f"Duplicate webhook event {event_id} ignored")
            return web.json_response(
                {
                    "status": "success",
                    "message": "Event already processed",
                    "event_id": event_id,
                    "event_type": event_type,
                }
            )

        _health_metrics["total_events"] += 1
        try:
            result = await handle_webhook(payload)
        except Exception:
            _processed_event_ids.pop(event_id, None)
            raise

        _health_metrics["successful_events"] += 1
        _processed_events.append(
            {"id": event_id, "type": event_type, "timestamp": time.time()}
        )

        return web.json_response(
            {
                "status": "success",
                "event_id": event_id,
                "event_type": event_type,
                "result": result,
            }
        )

    except WebhookVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        _health_metrics["verification_failures"] += 1
        return _error_response("verification_failed", "Invalid webhook signature", 401)

    except ValidationError as e:
        logger.warning(f"Invalid webhook payload: {e}")
        _health_metrics["validation_failures"] += 1
        return _error_response("validation_failed", str(e), 400)

    except Exception as e:
        logger.error(
            f"Unexpected webhook error for event {event_id or 'unknown'} "
            f"({event_type or 'unknown'}): {e}",
            exc_info=True,
        )
        _health_metrics["failed_events"] += 1
        return _error_response(
            "processing_failed", "Internal server error while processing webhook", 500
        )


def _resolve_services(requested: List[str], catalog: List[Service]) -> List[Service]:
    """
    Look up requested service ids in the catalog, keeping request order.

    Raises:
        ValidationError: If no service is requested or an id is unknown
    """
    if not requested:
        raise ValidationError(SERVICE_REQUIRED)

    by_id = {service.id: service for service in catalog}
    unknown = [service_id for service_id in requested if service_id not in by_id]
    if unknown:
        raise ValidationError(f"Unknown service: {', '.join(unknown)}")

    return [by_id[service_id] for service_id in requested]


async def availability_handler(request: Request) -> Response:
    """
    GET /api/availability?date=YYYY-MM-DD&services=id,id

    Returns every enumerated slot for the date with its availability.
    """
    date_param = request.query.get("date", "")
    service_ids = [
        s.strip() for s in request.query.get("services", "").split(",") if s.strip()
    ]

    try:
        day = parse_date(date_param)
    except ValueError as e:
        return _error_response("invalid_date", str(e), 400)

    try:
        db = get_db_client()
        services = _resolve_services(service_ids, await db.get_services())
        duration = total_duration(services)
        slots = await get_available_time_slots(
            day, duration, db=db, business=get_business_settings()
        )
    except ValidationError as e:
        return _error_response("invalid_services", str(e), 400)
    except DatabaseError as e:
        logger.error(f"Availability lookup failed for {day}: {e}", exc_info=True)
        return _error_response(
            "unavailable", "Appointment data is temporarily unavailable", 503
        )

    return web.json_response(
        {
            "date": day.isoformat(),
            "duration_minutes": duration,
            "services": [service.id for service in services],
            "slots": [
                {
                    "time": slot.time.strftime("%H:%M"),
                    "available": slot.available,
                    "appointment_id": slot.appointment_id,
                }
                for slot in slots
            ],
        }
    )


async def health_check(request: Request) -> Response:
    """Service status with webhook metrics."""
    _cleanup_old_event_ids()

    uptime_seconds = time.time() - _health_metrics["start_time"]
    total = _health_metrics["total_events"]
    success_rate = (
        (_health_metrics["successful_events"] / total * 100) if total > 0 else 0.0
    )

    recent_event_types: Dict[str, int] = {}
    for event in _processed_events:
        event_type = event.get("type", "unknown")
        recent_event_types[event_type] = recent_event_types.get(event_type, 0) + 1

    return web.json_response(
        {
            "status": "ok",
            "service": "mobile-detailing-scheduler",
            "timestamp": time.time(),
            "uptime_hours": round(uptime_seconds / 3600, 2),
            "metrics": {
                "total_events": total,
                "successful_events": _health_metrics["successful_events"],
                "failed_events": _health_metrics["failed_events"],
                "verification_failures": _health_metrics["verification_failures"],
                "validation_failures": _health_metrics["validation_failures"],
                "duplicate_events": _health_metrics["duplicate_events"],
                "success_rate_percent": round(success_rate, 2),
                "unique_event_ids_tracked": len(_processed_event_ids),
                "recent_event_types": recent_event_types,
            },
            "configuration": {
                "webhook_secret_configured": bool(settings.stripe_webhook_secret),
                "max_request_size_bytes": MAX_REQUEST_BODY_SIZE,
            },
        }
    )


def create_app() -> web.Application:
    """
    Create aiohttp application with middleware and routes.

    Returns:
        Configured web application
    """
    app = web.Application(
        middlewares=[security_headers_middleware],
        client_max_size=MAX_REQUEST_BODY_SIZE,
    )

    app.router.add_post("/webhook/stripe", stripe_webhook_handler)
    app.router.add_get("/api/availability", availability_handler)
    app.router.add_get("/health", health_check)

    return app
