"""Payment status tracking from Stripe webhooks."""

from .stripe import handle_webhook

__all__ = ["handle_webhook"]
