"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Team / account lookup failures on direct requests
    │   └── AccountNotResolvedError - Provider account id unknown locally
    ├── PaymentValidationError - Bad input / business rule violations
    │   ├── InvalidAmountError - Negative amount or percentage out of range
    │   ├── AlreadyPaidError - Checkout requested for a team that has paid
    │   ├── PayoutsNotEnabledError - Organizer cannot receive funds yet
    │   └── InvalidWebhookPayloadError - Known event type, malformed object
    └── PaymentProcessingError - Payment processing failures
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidAccountError - Invalid Stripe account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient)
            ├── StripeAPIUnavailableError - API unavailable (transient)
            └── StripeTimeoutError - Request timeout (transient)

    DuplicateSubscriptionIdError - Two teams claim one subscription (ConflictError)

Usage:
    from payments.exceptions import AlreadyPaidError, StripeError

    try:
        session = CheckoutService.create_checkout_session(team_id, user)
    except AlreadyPaidError as e:
        return Response(e.to_dict(), status=400)
    except StripeError as e:
        status_code = 503 if e.is_retryable else 502
        return Response(e.to_dict(), status=status_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment-related entity cannot be found on a direct request.

    Webhook paths do not raise this for teams; an unknown team there is
    logged and acknowledged instead.
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    status_code: int = 404


class AccountNotResolvedError(PaymentNotFoundError):
    """
    Raised when a provider account id has no local ConnectedAccount.

    On the webhook path this marks the event failed for operator follow-up.
    """

    default_error_code: str = "ACCOUNT_NOT_RESOLVED"


class PaymentValidationError(PaymentError):
    """Raised when payment input or a payment business rule is invalid."""

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class InvalidAmountError(PaymentValidationError):
    """
    Raised by the fee splitter for a negative amount or a percentage
    outside [0, 100].
    """

    default_error_code: str = "INVALID_AMOUNT"


class AlreadyPaidError(PaymentValidationError):
    """Raised when checkout is requested for a team whose entry fee is paid."""

    default_error_code: str = "ALREADY_PAID"


class PayoutsNotEnabledError(PaymentValidationError):
    """
    Raised when an operation needs the organizer's payout status to be
    ENABLED (e.g. publishing a competition).
    """

    default_error_code: str = "PAYOUTS_NOT_ENABLED"


class InvalidWebhookPayloadError(PaymentValidationError):
    """Raised when a recognized webhook event is missing fields it needs."""

    default_error_code: str = "INVALID_WEBHOOK_PAYLOAD"


class PaymentProcessingError(PaymentError):
    """Raised when payment processing fails."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    status_code: int = 502


class DuplicateSubscriptionIdError(ConflictError):
    """
    Raised when one provider subscription id maps to more than one team.

    This is a data-integrity failure: the triggering event is failed and
    nothing is written.
    """

    default_error_code: str = "DUPLICATE_SUBSCRIPTION_ID"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: True for transient failures (timeouts, outages, rate
            limits). Nothing local was mutated, so the caller may try again.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """Card was declined by the issuing bank."""

    default_error_code: str = "CARD_DECLINED"


class StripeInvalidAccountError(StripeError):
    """The connected account is missing, restricted or otherwise unusable."""

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters, unknown resource, or failed webhook
    signature verification.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (caller may retry)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Too many requests to Stripe."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True
    status_code: int = 503


class StripeAPIUnavailableError(StripeError):
    """Stripe could not be reached or returned a server error."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
    status_code: int = 503


class StripeTimeoutError(StripeError):
    """The request exceeded STRIPE_API_TIMEOUT_SECONDS."""

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
    status_code: int = 503


__all__ = [
    "PaymentError",
    "PaymentNotFoundError",
    "AccountNotResolvedError",
    "PaymentValidationError",
    "InvalidAmountError",
    "AlreadyPaidError",
    "PayoutsNotEnabledError",
    "InvalidWebhookPayloadError",
    "PaymentProcessingError",
    "DuplicateSubscriptionIdError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
