"""
Celery tasks for payment processing.

This module provides async tasks for:
- Processing Stripe webhook events
- Retrying failed webhook events
- Periodic cleanup of stuck events
- Expiring subscription grace periods

Usage:
    from payments.tasks import process_webhook_event

    # Queue a webhook for async processing
    process_webhook_event.delay(str(webhook_event.id))

    # Expire grace periods (scheduled hourly via celery-beat)
    from payments.tasks import expire_grace_periods
    expire_grace_periods.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
RETRY_BATCH_SIZE = 100


def _max_webhook_retries() -> int:
    return getattr(settings, "WEBHOOK_MAX_RETRIES", 5)


# =============================================================================
# Webhook Processing Tasks
# =============================================================================


@shared_task(acks_late=True)
def process_webhook_event(webhook_event_id: str) -> dict:
    """
    Apply one stored Stripe webhook event.

    The WebhookEvent row stays locked for the whole run, so duplicate
    deliveries of one event are serialized and the second sees it
    processed. Handler work runs in a savepoint: a failure rolls back
    every domain write while the failure itself is recorded on the event.

    Failures are not retried by Celery; retry_failed_webhooks re-queues
    them.

    Returns:
        Dict with processing result status
    """
    from payments.webhooks.events import parse_event
    from payments.webhooks.handlers import dispatch_event

    if isinstance(webhook_event_id, str):
        webhook_event_id = UUID(webhook_event_id)

    with transaction.atomic():
        webhook_event = (
            WebhookEvent.objects.select_for_update().filter(id=webhook_event_id).first()
        )
        if webhook_event is None:
            logger.error(
                "WebhookEvent not found",
                extra={"webhook_event_id": str(webhook_event_id)},
            )
            return {"status": "not_found", "webhook_event_id": str(webhook_event_id)}

        if webhook_event.is_processed:
            logger.info(
                "WebhookEvent already processed, skipping",
                extra={
                    "webhook_event_id": str(webhook_event_id),
                    "stripe_event_id": webhook_event.stripe_event_id,
                },
            )
            return {
                "status": "already_processed",
                "webhook_event_id": str(webhook_event_id),
            }

        webhook_event.mark_processing()
        webhook_event.save()

        log_context = {
            "webhook_event_id": str(webhook_event_id),
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
            "retry_count": webhook_event.retry_count,
        }

        try:
            with transaction.atomic():
                event = parse_event(webhook_event.payload)
                result = dispatch_event(event, webhook_event)
                if not result.success:
                    transaction.set_rollback(True)
        except Exception as e:
            logger.exception("Webhook handler raised", extra=log_context)
            result = ServiceResult.from_exception(e)

        if result.success:
            webhook_event.mark_processed()
            webhook_event.save()
            logger.info("Webhook processed successfully", extra=log_context)
            return {
                "status": "processed",
                "webhook_event_id": str(webhook_event_id),
                "stripe_event_id": webhook_event.stripe_event_id,
            }

        error_msg = result.error or "Handler returned failure"
        webhook_event.mark_failed(error_msg)
        webhook_event.save()
        logger.error(
            "Webhook processing failed",
            extra={
                **log_context,
                "error": error_msg,
                "error_code": result.error_code,
            },
        )
        return {
            "status": "failed",
            "webhook_event_id": str(webhook_event_id),
            "error": error_msg,
            "error_code": result.error_code,
        }


@shared_task
def retry_failed_webhooks() -> dict:
    """
    Periodic task to re-queue failed webhook events.

    Events that have used WEBHOOK_MAX_RETRIES attempts stay failed for
    operator follow-up.

    Returns:
        Dict with count of webhooks queued for retry
    """
    failed_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=_max_webhook_retries(),
    ).order_by("created_at")[:RETRY_BATCH_SIZE]

    queued_count = 0
    for webhook in failed_webhooks:
        process_webhook_event.delay(str(webhook.id))
        queued_count += 1
        logger.info(
            "Queued failed webhook for retry",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "event_type": webhook.event_type,
                "retry_count": webhook.retry_count,
            },
        )

    if queued_count:
        logger.info(
            f"Queued {queued_count} failed webhooks for retry",
            extra={"queued_count": queued_count},
        )
    return {"queued_count": queued_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Periodic task for events a worker never finished.

    - PROCESSING past the threshold is reset to FAILED so
      retry_failed_webhooks picks it up
    - PENDING past the threshold (queueing failed or the worker died before
      committing) is queued again

    Returns:
        Dict with counts of webhooks reset and re-queued
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)

    reset_count = 0
    stuck_webhooks = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )
    for webhook in stuck_webhooks:
        webhook.mark_failed("Processing timed out - reset for retry")
        webhook.save()
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "webhook_event_id": str(webhook.id),
                "stripe_event_id": webhook.stripe_event_id,
                "event_type": webhook.event_type,
                "stuck_since": webhook.updated_at.isoformat(),
            },
        )

    requeued_count = 0
    pending_ids = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PENDING,
        created_at__lt=threshold,
    ).values_list("id", flat=True)[:RETRY_BATCH_SIZE]
    for webhook_id in pending_ids:
        process_webhook_event.delay(str(webhook_id))
        requeued_count += 1

    if reset_count or requeued_count:
        logger.info(
            "Cleaned up stuck webhooks",
            extra={"reset_count": reset_count, "requeued_count": requeued_count},
        )
    return {"reset_count": reset_count, "requeued_count": requeued_count}


# =============================================================================
# Subscription Tasks
# =============================================================================


@shared_task
def expire_grace_periods() -> dict:
    """
    Periodic task revoking eligibility for teams whose grace period ended.

    Scheduled hourly through django-celery-beat.

    Returns:
        Dict with count of teams made ineligible
    """
    from payments.services import SubscriptionService

    expired_count = SubscriptionService.expire_grace_periods(timezone.now())
    return {"expired_count": expired_count}
