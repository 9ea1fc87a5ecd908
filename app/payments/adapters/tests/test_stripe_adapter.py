"""
Tests for Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each exception type
- Successful API operations
- Webhook signature verification
- Helper functions (is_retryable_stripe_error)
"""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from django.test import override_settings

from payments.adapters import (
    IdempotencyKeyGenerator,
    StripeAdapter,
    is_retryable_stripe_error,
)
from payments.checkout import CheckoutConfig, compose_checkout
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    """Tests for IdempotencyKeyGenerator."""

    def test_format(self):
        key = IdempotencyKeyGenerator.generate("checkout_session", "team-1")

        operation, entity, attempt, short_hash = key.split(":")
        assert operation == "checkout_session"
        assert entity == "team-1"
        assert attempt == "1"
        assert len(short_hash) == 8

    def test_deterministic(self):
        first = IdempotencyKeyGenerator.generate("connect_account", 42)
        second = IdempotencyKeyGenerator.generate("connect_account", 42)

        assert first == second

    def test_attempt_changes_key(self):
        first = IdempotencyKeyGenerator.generate("checkout_session", "team-1", attempt=1)
        second = IdempotencyKeyGenerator.generate("checkout_session", "team-1", attempt=2)

        assert first != second

    def test_depends_on_secret_key(self):
        with override_settings(SECRET_KEY="one"):
            first = IdempotencyKeyGenerator.generate("checkout_session", "team-1")
        with override_settings(SECRET_KEY="two"):
            second = IdempotencyKeyGenerator.generate("checkout_session", "team-1")

        assert first != second


# =============================================================================
# Connect Tests
# =============================================================================


class TestConnectAccounts:
    """Tests for connected account operations."""

    def test_create_connect_account(self, mock_stripe_account):
        result = StripeAdapter.create_connect_account(
            email="owner@example.com",
            idempotency_key="connect_account:1:1:abc",
            metadata={"user_id": "1"},
        )

        assert result.id == "acct_test123"
        assert result.charges_enabled is False
        kwargs = mock_stripe_account.create.call_args.kwargs
        assert kwargs["type"] == "standard"
        assert kwargs["email"] == "owner@example.com"
        assert kwargs["idempotency_key"] == "connect_account:1:1:abc"
        assert kwargs["metadata"] == {"user_id": "1"}

    def test_retrieve_account_maps_flags(self, mock_stripe_account, mock_account):
        mock_stripe_account.retrieve.return_value = mock_account(
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
        )

        result = StripeAdapter.retrieve_account("acct_test123")

        mock_stripe_account.retrieve.assert_called_once_with("acct_test123")
        assert result.charges_enabled is True
        assert result.payouts_enabled is True
        assert result.details_submitted is True
        assert result.disabled_reason is None
        assert result.raw_response["object"] == "account"

    def test_retrieve_account_reads_disabled_reason(self, mock_stripe_account, mock_account):
        mock_stripe_account.retrieve.return_value = mock_account(
            disabled_reason="rejected.fraud"
        )

        result = StripeAdapter.retrieve_account("acct_test123")

        assert result.disabled_reason == "rejected.fraud"

    @override_settings(FRONTEND_URL="https://app.example.com/")
    def test_create_account_link(self, mock_stripe_account_link):
        result = StripeAdapter.create_account_link("acct_test123")

        assert result.url == "https://connect.stripe.com/setup/s/abc123"
        assert result.expires_at == datetime.fromtimestamp(1700000300, tz=timezone.utc)
        mock_stripe_account_link.create.assert_called_once_with(
            account="acct_test123",
            refresh_url="https://app.example.com/dashboard/stripe/refresh",
            return_url="https://app.example.com/dashboard/stripe/return",
            type="account_onboarding",
        )


# =============================================================================
# Checkout & Billing Tests
# =============================================================================


class TestCheckoutAndBilling:
    """Tests for checkout and billing portal sessions."""

    @pytest.fixture
    def checkout_request(self):
        competition = SimpleNamespace(
            id="comp-1",
            name="Sunday League",
            entry_fee=Decimal("100.00"),
            platform_fee_percentage=Decimal("8.00"),
        )
        team = SimpleNamespace(id="team-1", name="Hawks", entry_fee_paid=False)
        return compose_checkout(
            team,
            competition,
            "acct_owner",
            CheckoutConfig(frontend_url="https://app.example.com", dues_price_id="price_dues"),
        )

    def test_create_checkout_session(self, mock_stripe_checkout, checkout_request):
        result = StripeAdapter.create_checkout_session(checkout_request, "checkout:team-1:1:x")

        assert result.id == "cs_test123"
        assert result.url == "https://checkout.stripe.com/c/pay/cs_test123"
        kwargs = mock_stripe_checkout.create.call_args.kwargs
        assert kwargs["idempotency_key"] == "checkout:team-1:1:x"
        assert kwargs["mode"] == "subscription"
        assert kwargs["payment_intent_data"]["application_fee_amount"] == 800
        assert kwargs["metadata"]["team_id"] == "team-1"

    def test_create_billing_portal_session(self, mock_stripe_billing_portal):
        result = StripeAdapter.create_billing_portal_session(
            "cus_123", "https://app.example.com/my-teams"
        )

        assert result.url == "https://billing.stripe.com/p/session/abc"
        mock_stripe_billing_portal.create.assert_called_once_with(
            customer="cus_123",
            return_url="https://app.example.com/my-teams",
        )


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestErrorTranslation:
    """Stripe SDK errors are translated to domain exceptions."""

    def test_card_error(self, mock_stripe_account, card_error):
        mock_stripe_account.create.side_effect = card_error

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_connect_account("o@example.com", "key")

        assert exc_info.value.stripe_code == "card_declined"
        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_invalid_request_error(self, mock_stripe_checkout, invalid_request_error):
        mock_stripe_checkout.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_checkout_session(
                SimpleNamespace(metadata={}, to_stripe_params=lambda: {}), "key"
            )

        assert exc_info.value.stripe_code == "resource_missing"

    def test_invalid_account_error(self, mock_stripe_account, invalid_request_error):
        mock_stripe_account.retrieve.side_effect = invalid_request_error(
            message="No such account: 'acct_missing'", param="account"
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.retrieve_account("acct_missing")

    def test_rate_limit_error(self, mock_stripe_account, rate_limit_error):
        mock_stripe_account.retrieve.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.retrieve_account("acct_test123")

        assert exc_info.value.is_retryable is True

    def test_timeout_error(self, mock_stripe_account, timeout_error):
        mock_stripe_account.retrieve.side_effect = timeout_error

        with pytest.raises(StripeTimeoutError) as exc_info:
            StripeAdapter.retrieve_account("acct_test123")

        assert exc_info.value.is_retryable is True
        assert exc_info.value.status_code == 503

    def test_connection_error(self, mock_stripe_account, api_connection_error):
        mock_stripe_account.retrieve.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.retrieve_account("acct_test123")

    def test_api_error(self, mock_stripe_account, api_error):
        mock_stripe_account.retrieve.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.retrieve_account("acct_test123")

        assert exc_info.value.stripe_code == "api_error"

    def test_authentication_error(self, mock_stripe_account, authentication_error):
        mock_stripe_account.retrieve.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.retrieve_account("acct_test123")

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unexpected_error(self, mock_stripe_account):
        mock_stripe_account.retrieve.side_effect = RuntimeError("boom")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.retrieve_account("acct_test123")

        assert exc_info.value.stripe_code == "unknown_error"


# =============================================================================
# Webhook Verification Tests
# =============================================================================


class TestVerifyWebhookSignature:
    """Tests for StripeAdapter.verify_webhook_signature()."""

    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_abc")
    def test_returns_event_dict(self, mock_stripe_webhook):
        event = StripeAdapter.verify_webhook_signature(b"{}", "t=1,v1=sig")

        assert event["id"] == "evt_test123"
        assert event["type"] == "account.updated"
        mock_stripe_webhook.construct_event.assert_called_once_with(
            b"{}", "t=1,v1=sig", "whsec_abc"
        )

    def test_bad_signature(self, mock_stripe_webhook, signature_verification_error):
        mock_stripe_webhook.construct_event.side_effect = signature_verification_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"{}", "bad_signature")

        assert exc_info.value.stripe_code == "signature_verification_failed"

    def test_bad_payload(self, mock_stripe_webhook):
        mock_stripe_webhook.construct_event.side_effect = ValueError("Expecting value")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"not json", "t=1,v1=sig")

        assert exc_info.value.stripe_code == "invalid_payload"


# =============================================================================
# Helper Function Tests
# =============================================================================


class TestIsRetryableStripeError:
    """Tests for is_retryable_stripe_error."""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (StripeTimeoutError("t"), True),
            (StripeRateLimitError("r"), True),
            (StripeAPIUnavailableError("u"), True),
            (StripeInvalidRequestError("i"), False),
            (StripeCardDeclinedError("c"), False),
            (ValueError("v"), False),
        ],
    )
    def test_classification(self, error, expected):
        assert is_retryable_stripe_error(error) is expected
