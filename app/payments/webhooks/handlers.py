"""
Webhook event handlers for parsed Stripe events.

Handlers are registered per event class. Every member of
WebhookPayloadEvent must have a handler; a missing one fails at import
time, so the payments app refuses to start rather than silently dropping
events.

Handlers run inside the task's savepoint and return a ServiceResult:
    success → the webhook is marked processed
    failure → the webhook is marked failed for operator follow-up

Usage:
    from payments.webhooks.handlers import dispatch_event

    event = parse_event(webhook_event.payload)
    result = dispatch_event(event, webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.core.exceptions import ImproperlyConfigured

from core.services import ServiceResult

from payments.models import WebhookEvent
from payments.services import OnboardingService, SubscriptionService
from payments.state_machines.onboarding import AccountUpdated
from payments.state_machines.subscription import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCancelled,
    SubscriptionUpdated,
)
from payments.webhooks.events import Unrecognized, WebhookPayloadEvent

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


Handler = Callable[[WebhookPayloadEvent, WebhookEvent], ServiceResult]

# Maps event classes to handler functions
WEBHOOK_HANDLERS: dict[type, Handler] = {}


def register_handler(*event_classes: type) -> Callable[[Handler], Handler]:
    """
    Decorator to register a handler for one or more event classes.

    Usage:
        @register_handler(InvoicePaymentFailed)
        def handle_invoice_failed(event, webhook_event) -> ServiceResult:
            ...
    """

    def decorator(func: Handler) -> Handler:
        for event_class in event_classes:
            WEBHOOK_HANDLERS[event_class] = func
        return func

    return decorator


def dispatch_event(event: WebhookPayloadEvent, webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a parsed event to its handler.

    Raises:
        TypeError: ``event`` is not a WebhookPayloadEvent member
    """
    handler = WEBHOOK_HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"No webhook handler for {type(event).__name__}")

    logger.info(
        "Dispatching webhook event",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
            "event": type(event).__name__,
        },
    )
    return handler(event, webhook_event)


def check_handlers() -> None:
    """
    Raise ImproperlyConfigured if any event class lacks a handler.
    """
    missing = sorted(
        event_class.__name__
        for event_class in WebhookPayloadEvent.__args__
        if event_class not in WEBHOOK_HANDLERS
    )
    if missing:
        raise ImproperlyConfigured(f"Webhook events without a handler: {missing}")


# =============================================================================
# Account Handlers
# =============================================================================


@register_handler(AccountUpdated)
def handle_account_updated(event: AccountUpdated, webhook_event: WebhookEvent) -> ServiceResult:
    """
    Sync a payout account's onboarding and payout status.

    An account id with no local ConnectedAccount fails the event
    (ACCOUNT_NOT_RESOLVED) so an operator can investigate.
    """
    return OnboardingService.apply_account_status(event)


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler(CheckoutCompleted)
def handle_checkout_completed(event: CheckoutCompleted, webhook_event: WebhookEvent) -> ServiceResult:
    """
    Mark a team's registration paid and record the entry fee and first dues.

    The team comes from the session metadata. An unknown team is logged and
    acknowledged.
    """
    team = SubscriptionService.lock_team(event.team_id)
    if team is None:
        logger.warning(
            "Checkout completed for unknown team",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "session_id": event.session_id,
                "team_id": event.team_id,
            },
        )
        return ServiceResult.success(None)

    return SubscriptionService.apply(team, event, webhook_event.stripe_event_id)


@register_handler(
    InvoicePaymentSucceeded,
    InvoicePaymentFailed,
    SubscriptionCancelled,
    SubscriptionUpdated,
)
def handle_subscription_event(event, webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply an invoice or subscription lifecycle event to the owning team.

    Events for a subscription no team owns (yet) are logged and
    acknowledged. This covers invoices delivered before the checkout that
    attaches the subscription.
    """
    team = SubscriptionService.find_team_for_subscription(event.subscription_id)
    if team is None:
        logger.info(
            "No team for subscription",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "event_type": webhook_event.event_type,
                "stripe_subscription_id": event.subscription_id,
            },
        )
        return ServiceResult.success(None)

    return SubscriptionService.apply(team, event, webhook_event.stripe_event_id)


# =============================================================================
# Everything Else
# =============================================================================


@register_handler(Unrecognized)
def handle_unrecognized(event: Unrecognized, webhook_event: WebhookEvent) -> ServiceResult:
    logger.info(
        "Ignoring unhandled webhook event type",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": event.event_type,
        },
    )
    return ServiceResult.success(None)


check_handlers()
