"""
Onboarding state machine for organizer payout accounts.

Pure functions over an immutable OnboardingState. Nothing here touches the
database or Stripe; OnboardingService loads the state, calls one of these
functions and persists the result.

States:
    not_started → incomplete → verified
    blocked is reachable from any state

Usage:
    from payments.state_machines.onboarding import OnboardingState, apply_account_status

    state = OnboardingState.from_account(account)
    new_state = apply_account_status(
        state,
        charges_enabled=True,
        payouts_enabled=True,
        details_submitted=True,
        now=timezone.now(),
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from payments.state_machines.states import OnboardingStatus, PayoutStatus

# Stripe reports permanent rejections as "rejected.fraud", "rejected.other", ...
REJECTED_REASON_PREFIX = "rejected."


@dataclass(frozen=True)
class OnboardingState:
    """
    Snapshot of an account's onboarding fields.

    Attributes:
        onboarding_status: OnboardingStatus value
        payout_status: PayoutStatus value
        onboarded_at: When the account first became verified
    """

    onboarding_status: str = OnboardingStatus.NOT_STARTED
    payout_status: str = PayoutStatus.NONE
    onboarded_at: datetime | None = None

    @classmethod
    def from_account(cls, account) -> OnboardingState:
        """Build a snapshot from a ConnectedAccount (or any object with the fields)."""
        return cls(
            onboarding_status=account.onboarding_status,
            payout_status=account.payout_status,
            onboarded_at=account.onboarded_at,
        )


@dataclass(frozen=True)
class AccountUpdated:
    """
    Provider report of a connected account's capabilities.

    Produced by the webhook parser (account.updated) and by manual refresh.
    """

    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    details_submitted: bool
    disabled_reason: str | None = None
    occurred_at: datetime | None = None

    @property
    def is_rejected(self) -> bool:
        return is_rejection(self.disabled_reason)


def is_rejection(disabled_reason: str | None) -> bool:
    """True when the provider has permanently rejected the account."""
    return bool(disabled_reason) and disabled_reason.startswith(REJECTED_REASON_PREFIX)


def begin(state: OnboardingState) -> OnboardingState:
    """Move a fresh account into onboarding. Other states are returned as-is."""
    if state.onboarding_status == OnboardingStatus.NOT_STARTED:
        return replace(state, onboarding_status=OnboardingStatus.INCOMPLETE)
    return state


def apply_account_status(
    state: OnboardingState,
    charges_enabled: bool,
    payouts_enabled: bool,
    details_submitted: bool,
    now: datetime,
) -> OnboardingState:
    """
    Derive onboarding and payout status from the provider's capability flags.

    - charges and payouts enabled → verified / enabled
    - otherwise, details submitted → incomplete / pending
    - otherwise → incomplete / none

    The result depends only on the three flags. The prior state only
    contributes onboarded_at, which is stamped on the first entry into
    verified and never overwritten.
    """
    if charges_enabled and payouts_enabled:
        return OnboardingState(
            onboarding_status=OnboardingStatus.VERIFIED,
            payout_status=PayoutStatus.ENABLED,
            onboarded_at=state.onboarded_at or now,
        )

    payout_status = PayoutStatus.PENDING if details_submitted else PayoutStatus.NONE
    return OnboardingState(
        onboarding_status=OnboardingStatus.INCOMPLETE,
        payout_status=payout_status,
        onboarded_at=state.onboarded_at,
    )


def block(state: OnboardingState) -> OnboardingState:
    """Block the account from any state."""
    return replace(
        state,
        onboarding_status=OnboardingStatus.BLOCKED,
        payout_status=PayoutStatus.BLOCKED,
    )


def apply_update(state: OnboardingState, update: AccountUpdated, now: datetime) -> OnboardingState:
    """Apply a provider account report: rejections block, anything else is derived from the flags."""
    if update.is_rejected:
        return block(state)
    return apply_account_status(
        state,
        charges_enabled=update.charges_enabled,
        payouts_enabled=update.payouts_enabled,
        details_submitted=update.details_submitted,
        now=now,
    )


def can_publish(payout_status: str) -> bool:
    """A competition can go live only when its owner can receive payouts."""
    return payout_status == PayoutStatus.ENABLED
