"""
Stripe API adapter for marketplace payment operations.

All Stripe calls go through this adapter so that timeouts, error
translation, idempotency keys and logging are handled in one place.

Features:
- Bounded timeout on every call (STRIPE_API_TIMEOUT_SECONDS), no SDK retries
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on every create call

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import StripeAdapter

    account = StripeAdapter.create_connect_account(
        email=owner.email,
        idempotency_key=IdempotencyKeyGenerator.generate("connect_account", owner.pk),
    )
    link = StripeAdapter.create_account_link(account.id)
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

if TYPE_CHECKING:
    from payments.checkout import CheckoutSessionRequest


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class ConnectAccountResult:
    """
    A connected account as reported by Stripe.

    Attributes:
        id: Account ID (acct_xxx)
        charges_enabled: Whether the account can accept charges
        payouts_enabled: Whether the account can receive payouts
        details_submitted: Whether the owner finished the onboarding form
        disabled_reason: requirements.disabled_reason (e.g. "rejected.fraud")
        raw_response: Full Stripe response dict
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    disabled_reason: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class AccountLinkResult:
    """Hosted onboarding link for a connected account."""

    url: str
    expires_at: datetime | None = None


@dataclass
class CheckoutSessionResult:
    """A created Checkout Session."""

    id: str
    url: str


@dataclass
class BillingPortalResult:
    """A created customer billing portal session."""

    url: str


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="checkout_session",
            entity_id=team.id,
        )
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str | int,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is transient.

    Views use this to pick 503 (try again later) over 502.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def _timestamp_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are static - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        account = StripeAdapter.retrieve_account("acct_123")
        session = StripeAdapter.create_checkout_session(request, idem_key)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key and timeout."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        # Failures surface to the caller; no SDK-level retries
        stripe.max_network_retries = 0
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        level: int = logging.INFO,
    ) -> Any:
        """Run one Stripe call with timing logs and error translation."""
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.log(level, "Starting Stripe operation", extra=log_context)

        try:
            result = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        logger.log(
            level,
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return result

    # =========================================================================
    # Connect
    # =========================================================================

    @classmethod
    def create_connect_account(
        cls,
        email: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ConnectAccountResult:
        """
        Create a standard connected account for a competition owner.

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_connect_account",
            "idempotency_key": idempotency_key,
        }
        account = cls._execute(
            log_context,
            lambda: stripe.Account.create(
                type="standard",
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
        )
        return cls._to_account_result(account)

    @classmethod
    def create_account_link(cls, account_id: str) -> AccountLinkResult:
        """
        Create a hosted onboarding link.

        Refresh and return URLs point at the frontend dashboard.
        """
        frontend_url = settings.FRONTEND_URL.rstrip("/")
        log_context = {
            "operation": "create_account_link",
            "stripe_account_id": account_id,
        }
        link = cls._execute(
            log_context,
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=f"{frontend_url}/dashboard/stripe/refresh",
                return_url=f"{frontend_url}/dashboard/stripe/return",
                type="account_onboarding",
            ),
        )
        return AccountLinkResult(
            url=link.url,
            expires_at=_timestamp_to_datetime(getattr(link, "expires_at", None)),
        )

    @classmethod
    def retrieve_account(cls, account_id: str) -> ConnectAccountResult:
        """
        Fetch the current capability flags of a connected account.

        Raises:
            StripeInvalidAccountError: Account does not exist
        """
        log_context = {
            "operation": "retrieve_account",
            "stripe_account_id": account_id,
        }
        account = cls._execute(
            log_context,
            lambda: stripe.Account.retrieve(account_id),
            level=logging.DEBUG,
        )
        return cls._to_account_result(account)

    @staticmethod
    def _to_account_result(account: Any) -> ConnectAccountResult:
        requirements = getattr(account, "requirements", None) or {}
        if hasattr(requirements, "get"):
            disabled_reason = requirements.get("disabled_reason")
        else:
            disabled_reason = getattr(requirements, "disabled_reason", None)
        return ConnectAccountResult(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
            details_submitted=bool(account.details_submitted),
            disabled_reason=disabled_reason,
            raw_response=account.to_dict() if hasattr(account, "to_dict") else {},
        )

    # =========================================================================
    # Checkout & Billing
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        request: CheckoutSessionRequest,
        idempotency_key: str,
    ) -> CheckoutSessionResult:
        """
        Create a subscription-mode Checkout Session from a composed request.

        Raises:
            StripeInvalidAccountError: Destination account unusable
            StripeInvalidRequestError: Invalid parameters
            StripeTimeoutError: Request timed out
        """
        log_context = {
            "operation": "create_checkout_session",
            "team_id": request.metadata.get("team_id"),
            "idempotency_key": idempotency_key,
        }
        session = cls._execute(
            log_context,
            lambda: stripe.checkout.Session.create(
                idempotency_key=idempotency_key,
                **request.to_stripe_params(),
            ),
        )
        return CheckoutSessionResult(id=session.id, url=session.url)

    @classmethod
    def create_billing_portal_session(
        cls,
        customer_id: str,
        return_url: str,
    ) -> BillingPortalResult:
        """Create a customer portal session for managing dues."""
        log_context = {
            "operation": "create_billing_portal_session",
            "stripe_customer_id": customer_id,
        }
        session = cls._execute(
            log_context,
            lambda: stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            ),
        )
        return BillingPortalResult(url=session.url)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or unparseable body
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            )
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            )
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInvalidAccountError: Invalid Connect account
            StripeInvalidRequestError: Invalid request parameters
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, StripeError):
            raise error

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            )

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            if "account" in str(error).lower():
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                )
            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            )

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            )

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe did not respond in time. Please retry.",
                    stripe_code="timeout",
                )
            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            )

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            )

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            )

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            )
