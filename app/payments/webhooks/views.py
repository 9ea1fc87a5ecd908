"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately

Once the signature is verified the response is always 2xx: processing
failures are recorded on the WebhookEvent, not reported to Stripe.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue Stripe webhook events.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new, duplicate or already processed)
        - 400: Missing/invalid signature or malformed envelope

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    # Step 1: Verify signature
    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except StripeInvalidRequestError as e:
        if e.stripe_code == "invalid_payload":
            logger.warning("Webhook payload could not be parsed", extra={"error": str(e)})
            return HttpResponse("Invalid event", status=400)
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": str(e)},
        )
        return HttpResponse("Invalid signature", status=400)
    except Exception as e:
        logger.error(
            f"Unexpected error verifying webhook: {type(e).__name__}",
            exc_info=True,
        )
        return HttpResponse("Verification error", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    logger.info(
        "Received Stripe webhook",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
        },
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: If already processed, return success
    if not created:
        if webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"stripe_event_id": stripe_event_id},
            )
            return HttpResponse("Already processed", status=200)

        logger.info(
            "Webhook redelivered before processing finished",
            extra={
                "stripe_event_id": stripe_event_id,
                "status": webhook_event.status,
            },
        )

    # Step 4: Queue for async processing
    try:
        from payments.tasks import process_webhook_event

        process_webhook_event.delay(str(webhook_event.id))
        logger.info(
            "Webhook queued for processing",
            extra={
                "stripe_event_id": stripe_event_id,
                "webhook_event_id": str(webhook_event.id),
            },
        )
    except Exception:
        # Stored as pending; cleanup_stuck_webhooks re-queues it later.
        logger.error(
            "Failed to queue webhook",
            extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
