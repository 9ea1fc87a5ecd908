"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency and observability.

Usage:
    from payments.adapters import StripeAdapter

    account = StripeAdapter.retrieve_account("acct_123")
"""

from payments.adapters.stripe_adapter import (
    AccountLinkResult,
    BillingPortalResult,
    CheckoutSessionResult,
    ConnectAccountResult,
    IdempotencyKeyGenerator,
    StripeAdapter,
    is_retryable_stripe_error,
)

__all__ = [
    "AccountLinkResult",
    "BillingPortalResult",
    "CheckoutSessionResult",
    "ConnectAccountResult",
    "IdempotencyKeyGenerator",
    "StripeAdapter",
    "is_retryable_stripe_error",
]
