"""
Tests for webhook views.

Tests cover:
- Stripe signature verification
- Webhook event creation and idempotency
- Task queuing
- Error handling
"""

import json
from unittest.mock import patch

import pytest
from django.test import RequestFactory

from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory
from payments.tests.stripe_payloads import envelope, invoice_object
from payments.webhooks.views import stripe_webhook


# =============================================================================
# Setup
# =============================================================================


VERIFY = "payments.webhooks.views.StripeAdapter.verify_webhook_signature"
DELAY = "payments.tasks.process_webhook_event.delay"


@pytest.fixture
def rf():
    """Request factory for creating test requests."""
    return RequestFactory()


def make_webhook_request(rf, payload: dict, signature: str = "test_sig"):
    """Create a POST request to the webhook endpoint."""
    return rf.post(
        "/api/v1/payments/webhooks/stripe/",
        data=json.dumps(payload),
        content_type="application/json",
        HTTP_STRIPE_SIGNATURE=signature,
    )


@pytest.fixture
def invoice_failed():
    return envelope("invoice.payment_failed", invoice_object(), event_id="evt_view_1")


# =============================================================================
# Signature Verification Tests
# =============================================================================


class TestStripeWebhookSignature:
    """Tests for signature verification."""

    def test_missing_signature_returns_400(self, rf, db):
        request = rf.post(
            "/api/v1/payments/webhooks/stripe/",
            data=json.dumps({"id": "evt_test"}),
            content_type="application/json",
        )

        response = stripe_webhook(request)

        assert response.status_code == 400
        assert b"Missing signature" in response.content

    def test_invalid_signature_returns_400(self, rf, db, invoice_failed):
        with patch(VERIFY) as mock_verify:
            mock_verify.side_effect = StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
            )

            response = stripe_webhook(make_webhook_request(rf, invoice_failed, "bad"))

        assert response.status_code == 400
        assert b"Invalid signature" in response.content
        assert WebhookEvent.objects.count() == 0

    def test_unparseable_body_returns_400(self, rf, db, invoice_failed):
        with patch(VERIFY) as mock_verify:
            mock_verify.side_effect = StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
            )

            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 400
        assert b"Invalid event" in response.content

    def test_unexpected_verification_error_returns_400(self, rf, db, invoice_failed):
        with patch(VERIFY, side_effect=RuntimeError("boom")):
            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 400
        assert b"Verification error" in response.content

    def test_get_not_allowed(self, rf, db):
        response = stripe_webhook(rf.get("/api/v1/payments/webhooks/stripe/"))

        assert response.status_code == 405


# =============================================================================
# Event Storage Tests
# =============================================================================


class TestStripeWebhookStorage:
    """Tests for event storage and queuing."""

    def test_stores_and_queues_event(self, rf, db, invoice_failed):
        with patch(VERIFY, return_value=invoice_failed), patch(DELAY) as mock_delay:
            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 200
        assert b"Accepted" in response.content
        webhook = WebhookEvent.objects.get(stripe_event_id="evt_view_1")
        assert webhook.event_type == "invoice.payment_failed"
        assert webhook.status == WebhookEventStatus.PENDING
        assert webhook.payload == invoice_failed
        mock_delay.assert_called_once_with(str(webhook.id))

    def test_missing_event_fields_returns_400(self, rf, db):
        with patch(VERIFY, return_value={"id": "evt_x"}), patch(DELAY) as mock_delay:
            response = stripe_webhook(make_webhook_request(rf, {"id": "evt_x"}))

        assert response.status_code == 400
        assert b"Invalid event" in response.content
        mock_delay.assert_not_called()

    def test_duplicate_delivery_stores_once(self, rf, db, invoice_failed):
        with patch(VERIFY, return_value=invoice_failed), patch(DELAY) as mock_delay:
            stripe_webhook(make_webhook_request(rf, invoice_failed))
            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 200
        assert WebhookEvent.objects.filter(stripe_event_id="evt_view_1").count() == 1
        assert mock_delay.call_count == 2

    def test_already_processed_not_requeued(self, rf, db, invoice_failed):
        WebhookEventFactory(
            stripe_event_id="evt_view_1",
            event_type="invoice.payment_failed",
            status=WebhookEventStatus.PROCESSED,
        )

        with patch(VERIFY, return_value=invoice_failed), patch(DELAY) as mock_delay:
            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 200
        assert b"Already processed" in response.content
        mock_delay.assert_not_called()

    def test_queue_failure_still_acknowledged(self, rf, db, invoice_failed):
        with patch(VERIFY, return_value=invoice_failed), patch(
            DELAY, side_effect=ConnectionError("broker down")
        ):
            response = stripe_webhook(make_webhook_request(rf, invoice_failed))

        assert response.status_code == 200
        webhook = WebhookEvent.objects.get(stripe_event_id="evt_view_1")
        assert webhook.status == WebhookEventStatus.PENDING
