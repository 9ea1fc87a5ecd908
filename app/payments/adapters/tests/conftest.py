"""
Pytest fixtures for Stripe adapter tests.

This module provides fixtures for testing the Stripe adapter, including
mock Stripe API responses and error conditions.

Sections:
    - Mock Stripe Response Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_account():
    """Create a mock Account response."""

    def _create(
        id: str = "acct_test123",
        charges_enabled: bool = False,
        payouts_enabled: bool = False,
        details_submitted: bool = False,
        disabled_reason: str | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "account",
                "type": "standard",
                "charges_enabled": charges_enabled,
                "payouts_enabled": payouts_enabled,
                "details_submitted": details_submitted,
                "requirements": {"disabled_reason": disabled_reason},
            }
        )

    return _create


@pytest.fixture
def mock_account_link():
    """Create a mock AccountLink response."""
    return MockStripeObject(
        {
            "object": "account_link",
            "url": "https://connect.stripe.com/setup/s/abc123",
            "expires_at": 1700000300,
        }
    )


@pytest.fixture
def mock_checkout_session():
    """Create a mock Checkout Session response."""
    return MockStripeObject(
        {
            "id": "cs_test123",
            "object": "checkout.session",
            "url": "https://checkout.stripe.com/c/pay/cs_test123",
        }
    )


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""
    error = stripe.CardError(
        message="Your card was declined.",
        param=None,
        code="card_declined",
    )
    error.decline_code = "generic_decline"
    return error


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such price: 'price_missing'",
        param: str | None = "line_items[1][price]",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(
            message=message,
            param=param,
            code=code,
        )

    return _create


@pytest.fixture
def rate_limit_error():
    """Create a Stripe RateLimitError."""
    return stripe.RateLimitError(
        message="Too many requests hit the API too quickly.",
    )


@pytest.fixture
def api_connection_error():
    """Create a Stripe APIConnectionError."""
    return stripe.APIConnectionError(
        message="Could not connect to Stripe.",
    )


@pytest.fixture
def timeout_error():
    """Create a Stripe APIConnectionError raised by a timeout."""
    return stripe.APIConnectionError(
        message="Request to Stripe timed out",
    )


@pytest.fixture
def api_error():
    """Create a Stripe APIError."""
    return stripe.APIError(
        message="Something went wrong on Stripe's end.",
    )


@pytest.fixture
def authentication_error():
    """Create a Stripe AuthenticationError."""
    return stripe.AuthenticationError(
        message="Invalid API Key provided.",
    )


@pytest.fixture
def signature_verification_error():
    """Create a Stripe SignatureVerificationError."""
    return stripe.SignatureVerificationError(
        message="Unable to verify webhook signature.",
        sig_header="bad_signature",
    )


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_account(mock_account):
    """Mock stripe.Account API."""
    with patch("stripe.Account") as mock:
        mock.create.return_value = mock_account()
        mock.retrieve.return_value = mock_account()
        yield mock


@pytest.fixture
def mock_stripe_account_link(mock_account_link):
    """Mock stripe.AccountLink API."""
    with patch("stripe.AccountLink") as mock:
        mock.create.return_value = mock_account_link
        yield mock


@pytest.fixture
def mock_stripe_checkout(mock_checkout_session):
    """Mock stripe.checkout.Session API."""
    with patch("stripe.checkout.Session") as mock:
        mock.create.return_value = mock_checkout_session
        yield mock


@pytest.fixture
def mock_stripe_billing_portal():
    """Mock stripe.billing_portal.Session API."""
    with patch("stripe.billing_portal.Session") as mock:
        mock.create.return_value = MockStripeObject(
            {"id": "bps_test123", "url": "https://billing.stripe.com/p/session/abc"}
        )
        yield mock


@pytest.fixture
def mock_stripe_webhook():
    """Mock stripe.Webhook API."""
    with patch("stripe.Webhook") as mock:
        mock.construct_event.return_value = MockStripeObject(
            {
                "id": "evt_test123",
                "type": "account.updated",
                "created": 1700000000,
                "data": {
                    "object": {
                        "id": "acct_test123",
                        "object": "account",
                    }
                },
            }
        )
        yield mock
