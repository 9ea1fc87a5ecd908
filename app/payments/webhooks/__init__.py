"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored idempotently, parsed into typed events and
processed asynchronously via Celery tasks.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from payments.webhooks.events import Unrecognized, WebhookPayloadEvent, parse_event
from payments.webhooks.handlers import dispatch_event, register_handler
from payments.webhooks.views import stripe_webhook

__all__ = [
    "Unrecognized",
    "WebhookPayloadEvent",
    "dispatch_event",
    "parse_event",
    "register_handler",
    "stripe_webhook",
]
