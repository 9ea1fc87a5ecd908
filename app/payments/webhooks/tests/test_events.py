"""
Tests for webhook envelope parsing.

Tests cover:
- Each supported event type
- Expanded vs bare object references
- Older and newer invoice layouts
- Unrecognized and malformed envelopes
"""

from datetime import datetime, timezone

import pytest

from payments.exceptions import InvalidWebhookPayloadError
from payments.state_machines.onboarding import AccountUpdated
from payments.state_machines.subscription import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCancelled,
    SubscriptionUpdated,
)
from payments.tests.stripe_payloads import (
    CREATED,
    account_object,
    checkout_session_object,
    envelope,
    invoice_object,
    subscription_object,
)
from payments.webhooks.events import SUPPORTED_EVENT_TYPES, Unrecognized, parse_event


def ts(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class TestParseEvent:
    def test_supported_types(self):
        assert SUPPORTED_EVENT_TYPES == {
            "account.updated",
            "checkout.session.completed",
            "invoice.payment_succeeded",
            "invoice.payment_failed",
            "customer.subscription.deleted",
            "customer.subscription.updated",
        }

    def test_account_updated(self):
        event = parse_event(
            envelope("account.updated", account_object(disabled_reason="rejected.fraud"))
        )

        assert event == AccountUpdated(
            account_id="acct_owner123",
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
            disabled_reason="rejected.fraud",
            occurred_at=ts(CREATED),
        )

    def test_checkout_completed(self):
        event = parse_event(
            envelope("checkout.session.completed", checkout_session_object("team-1"))
        )

        assert isinstance(event, CheckoutCompleted)
        assert event.session_id == "cs_test_hawks"
        assert event.team_id == "team-1"
        assert event.subscription_id == "sub_hawks"
        assert event.customer_id == "cus_hawks"
        assert event.invoice_id == "in_first"
        assert event.occurred_at == ts(CREATED)

    def test_checkout_with_expanded_references(self):
        obj = checkout_session_object("team-1")
        obj["subscription"] = {"id": "sub_expanded", "object": "subscription"}
        obj["customer"] = {"id": "cus_expanded"}

        event = parse_event(envelope("checkout.session.completed", obj))

        assert event.subscription_id == "sub_expanded"
        assert event.customer_id == "cus_expanded"

    def test_checkout_without_metadata(self):
        obj = checkout_session_object("team-1")
        obj["metadata"] = None

        event = parse_event(envelope("checkout.session.completed", obj))

        assert event.team_id is None

    def test_invoice_payment_succeeded(self):
        event = parse_event(envelope("invoice.payment_succeeded", invoice_object()))

        assert isinstance(event, InvoicePaymentSucceeded)
        assert event.invoice_id == "in_renewal"
        assert event.subscription_id == "sub_hawks"
        assert event.amount_paid_cents == 2000
        assert event.billing_reason == "subscription_cycle"
        assert event.period_start == ts(CREATED)
        assert event.period_end == ts(CREATED + 30 * 86400)
        assert event.payment_intent_id == "pi_renewal"

    def test_invoice_subscription_under_parent(self):
        obj = invoice_object(subscription_id=None)
        obj["parent"] = {"subscription_details": {"subscription": "sub_nested"}}

        event = parse_event(envelope("invoice.payment_succeeded", obj))

        assert event.subscription_id == "sub_nested"

    def test_invoice_period_fallback(self):
        obj = invoice_object()
        obj["lines"] = {"data": []}
        obj["period_start"] = CREATED + 10
        obj["period_end"] = CREATED + 20

        event = parse_event(envelope("invoice.payment_succeeded", obj))

        assert event.period_start == ts(CREATED + 10)
        assert event.period_end == ts(CREATED + 20)

    def test_one_off_invoice_is_unrecognized(self):
        event = parse_event(envelope("invoice.payment_succeeded", invoice_object(subscription_id=None)))

        assert event == Unrecognized("invoice.payment_succeeded", ts(CREATED))

    def test_invoice_payment_failed(self):
        obj = invoice_object(attempt_count=3)
        obj["next_payment_attempt"] = CREATED + 86400

        event = parse_event(envelope("invoice.payment_failed", obj))

        assert isinstance(event, InvoicePaymentFailed)
        assert event.attempt_count == 3
        assert event.next_payment_attempt == ts(CREATED + 86400)

    def test_subscription_deleted(self):
        event = parse_event(
            envelope(
                "customer.subscription.deleted",
                subscription_object(status="canceled", canceled_at=CREATED - 60),
            )
        )

        assert event == SubscriptionCancelled(
            subscription_id="sub_hawks",
            occurred_at=ts(CREATED),
            canceled_at=ts(CREATED - 60),
        )

    def test_subscription_updated(self):
        event = parse_event(
            envelope(
                "customer.subscription.updated",
                subscription_object(status="past_due", cancel_at=CREATED + 86400),
            )
        )

        assert isinstance(event, SubscriptionUpdated)
        assert event.provider_status == "past_due"
        assert event.cancel_at == ts(CREATED + 86400)
        assert event.current_period_end == ts(CREATED + 30 * 86400)

    def test_subscription_period_from_items(self):
        obj = subscription_object()
        del obj["current_period_start"]
        del obj["current_period_end"]
        obj["items"] = {"data": [{"current_period_start": CREATED, "current_period_end": CREATED + 5}]}

        event = parse_event(envelope("customer.subscription.updated", obj))

        assert event.current_period_start == ts(CREATED)
        assert event.current_period_end == ts(CREATED + 5)

    def test_unknown_type_is_unrecognized(self):
        event = parse_event(envelope("charge.refunded", {"id": "ch_1"}))

        assert event == Unrecognized("charge.refunded", ts(CREATED))

    def test_missing_created_uses_now(self):
        payload = envelope("charge.refunded", {})
        del payload["created"]

        event = parse_event(payload)

        assert event.occurred_at is not None

    def test_missing_object_raises(self):
        payload = envelope("invoice.payment_failed", {})
        payload["data"] = {}

        with pytest.raises(InvalidWebhookPayloadError):
            parse_event(payload)

    def test_missing_id_raises(self):
        obj = subscription_object()
        obj["id"] = None

        with pytest.raises(InvalidWebhookPayloadError) as exc_info:
            parse_event(envelope("customer.subscription.deleted", obj))

        assert exc_info.value.details == {
            "event_type": "customer.subscription.deleted",
            "field": "id",
        }
