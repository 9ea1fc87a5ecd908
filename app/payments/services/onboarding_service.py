"""
Onboarding service: persistence and provider I/O for payout accounts.

The status derivation itself lives in payments.state_machines.onboarding.
This service loads a ConnectedAccount under a row lock, applies the pure
transition and saves the result. The webhook push (account.updated) and the
manual pull (refresh_account_status) go through the same apply function.

Usage:
    from payments.services import OnboardingService

    link = OnboardingService.create_onboarding_link(owner)
    redirect(link.url)

    OnboardingService.ensure_payouts_enabled(owner)  # before publishing
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from core.exceptions import PermissionDeniedError
from core.services import BaseService, ServiceResult

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    AccountNotResolvedError,
    PaymentNotFoundError,
    PayoutsNotEnabledError,
)
from payments.models import ConnectedAccount
from payments.state_machines import OnboardingStatus, PayoutStatus
from payments.state_machines import onboarding
from payments.state_machines.onboarding import AccountUpdated, OnboardingState


@dataclass
class OnboardingLink:
    """A single-use hosted onboarding URL."""

    account_id: str
    url: str
    expires_at: datetime | None = None


@dataclass
class OnboardingStatusView:
    """Read-only view of an owner's payout account."""

    onboarding_status: str
    payout_status: str
    stripe_account_id: str | None = None
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: bool = False
    onboarded_at: datetime | None = None

    @property
    def can_publish(self) -> bool:
        return onboarding.can_publish(self.payout_status)


def _whole_seconds(value: datetime) -> datetime:
    return value.replace(microsecond=0)


class OnboardingService(BaseService):
    """
    Service for organizer payout-account onboarding.

    Provider calls happen before any row is locked, so a timeout leaves no
    local change behind and the caller may simply retry.
    """

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        """Get the Stripe adapter class."""
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    @staticmethod
    def _require_owner(user) -> None:
        if not user.is_competition_owner:
            raise PermissionDeniedError(
                "Only competition owners can set up payouts",
                details={"user_id": str(user.pk)},
            )

    @classmethod
    def begin_onboarding(cls, user) -> ConnectedAccount:
        """
        Ensure the owner has a provider payout account.

        Creates one (and moves NOT_STARTED to INCOMPLETE) when no account id
        exists; otherwise returns the existing account unchanged.

        Raises:
            PermissionDeniedError: User is not a competition owner
            StripeError: Account creation failed (nothing persisted)
        """
        cls._require_owner(user)

        existing = ConnectedAccount.objects.filter(user=user).first()
        if existing is not None and existing.stripe_account_id:
            return existing

        result = cls.get_stripe_adapter().create_connect_account(
            email=user.email,
            idempotency_key=IdempotencyKeyGenerator.generate("connect_account", user.pk),
            metadata={"user_id": str(user.pk)},
        )

        with cls.atomic():
            account, _ = ConnectedAccount.objects.select_for_update().get_or_create(
                user=user
            )
            if account.stripe_account_id:
                return account

            state = onboarding.begin(OnboardingState.from_account(account))
            account.stripe_account_id = result.id
            account.onboarding_status = state.onboarding_status
            account.payout_status = state.payout_status
            account.save()

        cls.get_logger().info(
            "Payout account created",
            extra={
                "user_id": str(user.pk),
                "stripe_account_id": result.id,
            },
        )
        return account

    @classmethod
    def create_onboarding_link(cls, user) -> OnboardingLink:
        """
        Begin onboarding if needed and return a hosted onboarding link.

        Raises:
            PermissionDeniedError: User is not a competition owner
            StripeError: Provider call failed
        """
        account = cls.begin_onboarding(user)
        link = cls.get_stripe_adapter().create_account_link(account.stripe_account_id)
        return OnboardingLink(
            account_id=account.stripe_account_id,
            url=link.url,
            expires_at=link.expires_at,
        )

    @classmethod
    def apply_account_status(
        cls,
        update: AccountUpdated,
    ) -> ServiceResult[ConnectedAccount]:
        """
        Apply a provider report of an account's capabilities.

        Snapshots older than the last applied one are ignored. Times are
        compared to the second, the resolution of provider event timestamps,
        so a webhook from the same second as a manual refresh still applies. A
        ``rejected.*`` disabled reason blocks the account.

        Returns:
            ServiceResult with the account, or failure ACCOUNT_NOT_RESOLVED
            when no local account has the provider id
        """
        logger = cls.get_logger()
        observed_at = update.occurred_at or timezone.now()

        with cls.atomic():
            account = (
                ConnectedAccount.objects.select_for_update()
                .filter(stripe_account_id=update.account_id)
                .first()
            )
            if account is None:
                return ServiceResult.failure(
                    f"No payout account for {update.account_id}",
                    error_code=AccountNotResolvedError.default_error_code,
                )

            if account.status_synced_at and _whole_seconds(observed_at) < _whole_seconds(
                account.status_synced_at
            ):
                logger.info(
                    "Ignoring stale account snapshot",
                    extra={
                        "stripe_account_id": update.account_id,
                        "observed_at": observed_at.isoformat(),
                        "status_synced_at": account.status_synced_at.isoformat(),
                    },
                )
                return ServiceResult.success(account)

            old_state = OnboardingState.from_account(account)
            new_state = onboarding.apply_update(old_state, update, now=observed_at)

            account.onboarding_status = new_state.onboarding_status
            account.payout_status = new_state.payout_status
            account.onboarded_at = new_state.onboarded_at
            account.charges_enabled = update.charges_enabled
            account.payouts_enabled = update.payouts_enabled
            account.details_submitted = update.details_submitted
            account.disabled_reason = update.disabled_reason or ""
            account.status_synced_at = observed_at
            account.save()

        if new_state != old_state:
            logger.info(
                "Payout account status changed",
                extra={
                    "stripe_account_id": update.account_id,
                    "old_onboarding_status": old_state.onboarding_status,
                    "new_onboarding_status": new_state.onboarding_status,
                    "old_payout_status": old_state.payout_status,
                    "new_payout_status": new_state.payout_status,
                },
            )
        return ServiceResult.success(account)

    @classmethod
    def refresh_account_status(cls, user) -> ConnectedAccount:
        """
        Pull the account from the provider and apply it.

        Raises:
            PaymentNotFoundError: Onboarding has not started
            StripeError: Provider call failed (nothing persisted)
        """
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None or not account.stripe_account_id:
            raise PaymentNotFoundError(
                "Payout onboarding has not been started",
                details={"user_id": str(user.pk)},
            )

        result = cls.get_stripe_adapter().retrieve_account(account.stripe_account_id)
        applied = cls.apply_account_status(
            AccountUpdated(
                account_id=result.id,
                charges_enabled=result.charges_enabled,
                payouts_enabled=result.payouts_enabled,
                details_submitted=result.details_submitted,
                disabled_reason=result.disabled_reason,
                occurred_at=timezone.now(),
            )
        )
        if not applied:
            raise AccountNotResolvedError(applied.error)
        return applied.data

    @staticmethod
    def get_status(user) -> OnboardingStatusView:
        """Current onboarding view; a user without an account is NOT_STARTED."""
        account = ConnectedAccount.objects.filter(user=user).first()
        if account is None:
            return OnboardingStatusView(
                onboarding_status=OnboardingStatus.NOT_STARTED,
                payout_status=PayoutStatus.NONE,
            )
        return OnboardingStatusView(
            onboarding_status=account.onboarding_status,
            payout_status=account.payout_status,
            stripe_account_id=account.stripe_account_id,
            charges_enabled=account.charges_enabled,
            payouts_enabled=account.payouts_enabled,
            details_submitted=account.details_submitted,
            onboarded_at=account.onboarded_at,
        )

    @classmethod
    def ensure_payouts_enabled(cls, user) -> None:
        """
        Precondition for publishing a competition.

        Raises:
            PayoutsNotEnabledError: The owner cannot receive payouts yet
        """
        status = cls.get_status(user)
        if not status.can_publish:
            raise PayoutsNotEnabledError(
                "Complete payout onboarding before publishing",
                details={
                    "onboarding_status": status.onboarding_status,
                    "payout_status": status.payout_status,
                },
            )
