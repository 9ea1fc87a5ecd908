"""
Parsing of stored Stripe webhook envelopes into typed events.

parse_event() maps the provider's JSON envelope onto the closed set of
event dataclasses the handlers understand. Event types without a parser
become Unrecognized and are acknowledged without effect.

Supported event types:
    account.updated                → AccountUpdated
    checkout.session.completed     → CheckoutCompleted
    invoice.payment_succeeded      → InvoicePaymentSucceeded
    invoice.payment_failed         → InvoicePaymentFailed
    customer.subscription.deleted  → SubscriptionCancelled
    customer.subscription.updated  → SubscriptionUpdated

Usage:
    from payments.webhooks.events import parse_event

    event = parse_event(webhook_event.payload)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any, Callable, Union

from django.utils import timezone

from payments.exceptions import InvalidWebhookPayloadError
from payments.state_machines.onboarding import AccountUpdated
from payments.state_machines.subscription import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCancelled,
    SubscriptionUpdated,
)


@dataclass(frozen=True)
class Unrecognized:
    """An event type this system does not act on."""

    event_type: str
    occurred_at: datetime | None = None


WebhookPayloadEvent = Union[
    AccountUpdated,
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    InvoicePaymentFailed,
    SubscriptionCancelled,
    SubscriptionUpdated,
    Unrecognized,
]


# =============================================================================
# Field helpers
# =============================================================================


def _timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _object_id(value: Any) -> str | None:
    """Id of a reference that may be a bare id or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _require(obj: dict[str, Any], key: str, event_type: str) -> Any:
    value = obj.get(key)
    if not value:
        raise InvalidWebhookPayloadError(
            f"{event_type} payload is missing '{key}'",
            details={"event_type": event_type, "field": key},
        )
    return value


def _first_line_item(obj: dict[str, Any]) -> dict[str, Any]:
    data = (obj.get("lines") or {}).get("data") or []
    return data[0] if data else {}


def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    subscription_id = _object_id(invoice.get("subscription"))
    if subscription_id:
        return subscription_id
    # Newer API versions nest the reference under parent.subscription_details
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return _object_id(details.get("subscription"))


def _invoice_period(invoice: dict[str, Any]) -> tuple[datetime | None, datetime | None]:
    period = _first_line_item(invoice).get("period") or {}
    start = period.get("start") or invoice.get("period_start")
    end = period.get("end") or invoice.get("period_end")
    return _timestamp(start), _timestamp(end)


def _subscription_period(subscription: dict[str, Any]) -> tuple[datetime | None, datetime | None]:
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None or end is None:
        item = ((subscription.get("items") or {}).get("data") or [{}])[0]
        start = start or item.get("current_period_start")
        end = end or item.get("current_period_end")
    return _timestamp(start), _timestamp(end)


# =============================================================================
# Parsers
# =============================================================================


_PARSERS: dict[str, Callable[[dict[str, Any], datetime], WebhookPayloadEvent]] = {}


def _parses(event_type: str) -> Callable:
    def decorator(func: Callable) -> Callable:
        _PARSERS[event_type] = func
        return func

    return decorator


@_parses("account.updated")
def _parse_account_updated(obj: dict[str, Any], occurred_at: datetime) -> AccountUpdated:
    requirements = obj.get("requirements") or {}
    return AccountUpdated(
        account_id=_require(obj, "id", "account.updated"),
        charges_enabled=bool(obj.get("charges_enabled")),
        payouts_enabled=bool(obj.get("payouts_enabled")),
        details_submitted=bool(obj.get("details_submitted")),
        disabled_reason=requirements.get("disabled_reason"),
        occurred_at=occurred_at,
    )


@_parses("checkout.session.completed")
def _parse_checkout_completed(obj: dict[str, Any], occurred_at: datetime) -> CheckoutCompleted:
    metadata = obj.get("metadata") or {}
    return CheckoutCompleted(
        session_id=_require(obj, "id", "checkout.session.completed"),
        occurred_at=occurred_at,
        team_id=metadata.get("team_id"),
        subscription_id=_object_id(obj.get("subscription")),
        customer_id=_object_id(obj.get("customer")),
        invoice_id=_object_id(obj.get("invoice")),
        payment_intent_id=_object_id(obj.get("payment_intent")),
    )


@_parses("invoice.payment_succeeded")
def _parse_invoice_paid(obj: dict[str, Any], occurred_at: datetime) -> WebhookPayloadEvent:
    subscription_id = _invoice_subscription_id(obj)
    if not subscription_id:
        # One-off invoices are not dues.
        return Unrecognized("invoice.payment_succeeded", occurred_at)

    period_start, period_end = _invoice_period(obj)
    return InvoicePaymentSucceeded(
        invoice_id=_require(obj, "id", "invoice.payment_succeeded"),
        subscription_id=subscription_id,
        occurred_at=occurred_at,
        amount_paid_cents=int(obj.get("amount_paid") or 0),
        billing_reason=obj.get("billing_reason"),
        period_start=period_start,
        period_end=period_end,
        payment_intent_id=_object_id(obj.get("payment_intent")),
    )


@_parses("invoice.payment_failed")
def _parse_invoice_failed(obj: dict[str, Any], occurred_at: datetime) -> WebhookPayloadEvent:
    subscription_id = _invoice_subscription_id(obj)
    if not subscription_id:
        return Unrecognized("invoice.payment_failed", occurred_at)

    return InvoicePaymentFailed(
        invoice_id=_require(obj, "id", "invoice.payment_failed"),
        subscription_id=subscription_id,
        occurred_at=occurred_at,
        attempt_count=int(obj.get("attempt_count") or 0),
        next_payment_attempt=_timestamp(obj.get("next_payment_attempt")),
    )


@_parses("customer.subscription.deleted")
def _parse_subscription_deleted(obj: dict[str, Any], occurred_at: datetime) -> SubscriptionCancelled:
    return SubscriptionCancelled(
        subscription_id=_require(obj, "id", "customer.subscription.deleted"),
        occurred_at=occurred_at,
        canceled_at=_timestamp(obj.get("canceled_at") or obj.get("ended_at")),
    )


@_parses("customer.subscription.updated")
def _parse_subscription_updated(obj: dict[str, Any], occurred_at: datetime) -> SubscriptionUpdated:
    period_start, period_end = _subscription_period(obj)
    return SubscriptionUpdated(
        subscription_id=_require(obj, "id", "customer.subscription.updated"),
        occurred_at=occurred_at,
        provider_status=obj.get("status"),
        cancel_at=_timestamp(obj.get("cancel_at")),
        current_period_start=period_start,
        current_period_end=period_end,
    )


def parse_event(envelope: dict[str, Any]) -> WebhookPayloadEvent:
    """
    Parse a verified Stripe event envelope.

    Args:
        envelope: Event dict with "type", "created" and "data.object"

    Returns:
        One of the WebhookPayloadEvent members

    Raises:
        InvalidWebhookPayloadError: A supported event type is missing
            required fields
    """
    event_type = envelope.get("type") or ""
    occurred_at = _timestamp(envelope.get("created")) or timezone.now()

    parser = _PARSERS.get(event_type)
    if parser is None:
        return Unrecognized(event_type, occurred_at)

    obj = (envelope.get("data") or {}).get("object")
    if not isinstance(obj, dict):
        raise InvalidWebhookPayloadError(
            f"{event_type} payload has no data.object",
            details={"event_type": event_type},
        )
    return parser(obj, occurred_at)


SUPPORTED_EVENT_TYPES = frozenset(_PARSERS)
