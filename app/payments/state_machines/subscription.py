"""
Subscription state machine for team dues.

A total, side-effect-free function from (current team state, event, policy)
to a Transition describing the new team state, the ledger charges to record
and the audit record to append. SubscriptionService performs the I/O.

Transitions:
    | Event                    | Precondition            | New status | Eligibility        |
    |--------------------------|-------------------------|------------|--------------------|
    | CheckoutCompleted        | entry fee not yet paid  | active     | true               |
    | InvoicePaymentSucceeded  | not cancelled           | active     | true               |
    | InvoicePaymentFailed     | not cancelled           | past_due   | unchanged (grace)  |
    | SubscriptionCancelled    | not cancelled           | cancelled  | false              |
    | SubscriptionUpdated      | not cancelled           | reactivate | true on reactivate |
    | GracePeriodExpired       | past_due, window over   | past_due   | false              |

An unmet precondition yields Transition.applied == False and no effects.
Invoice, failure and update events older than the newest one already
applied (state.synced_at) do not change status; a stale paid invoice
still records its charge.

Usage:
    from payments.state_machines.subscription import (
        TeamSubscriptionState, InvoicePaymentFailed, transition,
    )

    result = transition(TeamSubscriptionState.from_team(team), event, policy)
    if result.applied:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Union

from payments.fees import PLATFORM_ONLY_PERCENT
from payments.state_machines.states import (
    SubscriptionEventType,
    SubscriptionStatus,
    TransactionType,
)

# Billing reason Stripe sets on the first invoice of a subscription.
BILLING_REASON_SUBSCRIPTION_CREATE = "subscription_create"

PROVIDER_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.INCOMPLETE,
    "incomplete_expired": SubscriptionStatus.CANCELLED,
    "canceled": SubscriptionStatus.CANCELLED,
}


# =============================================================================
# State and policy
# =============================================================================


@dataclass(frozen=True)
class TeamSubscriptionState:
    """Snapshot of the team fields owned by this state machine."""

    entry_fee_paid: bool = False
    entry_fee_paid_at: datetime | None = None
    subscription_id: str | None = None
    customer_id: str | None = None
    status: str = SubscriptionStatus.NONE
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at: datetime | None = None
    grace_period_ends_at: datetime | None = None
    is_eligible: bool = True
    synced_at: datetime | None = None

    @classmethod
    def from_team(cls, team) -> TeamSubscriptionState:
        return cls(
            entry_fee_paid=team.entry_fee_paid,
            entry_fee_paid_at=team.entry_fee_paid_at,
            subscription_id=team.stripe_subscription_id,
            customer_id=team.stripe_customer_id,
            status=team.subscription_status,
            current_period_start=team.current_period_start,
            current_period_end=team.current_period_end,
            cancel_at=team.cancel_at,
            grace_period_ends_at=team.grace_period_ends_at,
            is_eligible=team.is_eligible,
            synced_at=team.subscription_synced_at,
        )

    def as_team_fields(self) -> dict:
        """Map back to Team model field names."""
        return {
            "entry_fee_paid": self.entry_fee_paid,
            "entry_fee_paid_at": self.entry_fee_paid_at,
            "stripe_subscription_id": self.subscription_id,
            "stripe_customer_id": self.customer_id,
            "subscription_status": self.status,
            "current_period_start": self.current_period_start,
            "current_period_end": self.current_period_end,
            "cancel_at": self.cancel_at,
            "grace_period_ends_at": self.grace_period_ends_at,
            "is_eligible": self.is_eligible,
            "subscription_synced_at": self.synced_at,
        }


@dataclass(frozen=True)
class SubscriptionPolicy:
    """
    Business rules the transitions need.

    Attributes:
        entry_fee_cents: The competition's one-time entry fee
        entry_fee_percent: Platform share of the entry fee
        dues_amount_cents: Fixed recurring dues (100% platform revenue)
        grace_period: How long a past-due team stays eligible
    """

    entry_fee_cents: int
    entry_fee_percent: Decimal
    dues_amount_cents: int
    grace_period: timedelta


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class CheckoutCompleted:
    """checkout.session.completed for a league registration."""

    session_id: str
    occurred_at: datetime
    team_id: str | None = None
    subscription_id: str | None = None
    customer_id: str | None = None
    invoice_id: str | None = None
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class InvoicePaymentSucceeded:
    """invoice.payment_succeeded for a dues subscription."""

    invoice_id: str
    subscription_id: str
    occurred_at: datetime
    amount_paid_cents: int = 0
    billing_reason: str | None = None
    period_start: datetime | None = None
    period_end: datetime | None = None
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class InvoicePaymentFailed:
    """invoice.payment_failed for a dues subscription."""

    invoice_id: str
    subscription_id: str
    occurred_at: datetime
    attempt_count: int = 0
    next_payment_attempt: datetime | None = None


@dataclass(frozen=True)
class SubscriptionCancelled:
    """customer.subscription.deleted (external cancellation)."""

    subscription_id: str
    occurred_at: datetime
    canceled_at: datetime | None = None


@dataclass(frozen=True)
class SubscriptionUpdated:
    """customer.subscription.updated."""

    subscription_id: str
    occurred_at: datetime
    provider_status: str | None = None
    cancel_at: datetime | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None


@dataclass(frozen=True)
class GracePeriodExpired:
    """Raised locally by the periodic grace-period sweep."""

    occurred_at: datetime


TeamEvent = Union[
    CheckoutCompleted,
    InvoicePaymentSucceeded,
    InvoicePaymentFailed,
    SubscriptionCancelled,
    SubscriptionUpdated,
    GracePeriodExpired,
]


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class LedgerCharge:
    """A ledger row the service must record (split via the fee splitter)."""

    transaction_type: str
    amount_cents: int
    fee_percent: Decimal
    description: str
    checkout_session_id: str | None = None
    invoice_id: str | None = None
    payment_intent_id: str | None = None


@dataclass(frozen=True)
class AuditRecord:
    """A subscription audit entry the service must append."""

    old_status: str
    new_status: str
    event_type: str


@dataclass(frozen=True)
class Transition:
    """
    Outcome of applying an event.

    Attributes:
        state: The team state after the event (unchanged when not applied)
        charges: Ledger rows to record
        audit: Audit entry to append, if any
        local_audit: Audit entry derived locally from the event (recorded
            without a provider event id), if any
        applied: False when a precondition was not met
        reason: Why the event was not applied
    """

    state: TeamSubscriptionState
    charges: tuple[LedgerCharge, ...] = ()
    audit: AuditRecord | None = None
    local_audit: AuditRecord | None = None
    applied: bool = True
    reason: str | None = None


def _noop(state: TeamSubscriptionState, reason: str) -> Transition:
    return Transition(state=state, applied=False, reason=reason)


def _is_stale(state: TeamSubscriptionState, occurred_at: datetime) -> bool:
    """True when a newer provider event has already been applied."""
    return state.synced_at is not None and occurred_at < state.synced_at


# =============================================================================
# Transition table
# =============================================================================


_TRANSITIONS: dict[type, Callable[..., Transition]] = {}


def _handles(event_type: type) -> Callable:
    def decorator(func: Callable[..., Transition]) -> Callable[..., Transition]:
        _TRANSITIONS[event_type] = func
        return func

    return decorator


@_handles(CheckoutCompleted)
def _on_checkout_completed(
    state: TeamSubscriptionState,
    event: CheckoutCompleted,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.entry_fee_paid:
        return _noop(state, "entry fee already paid")

    charges = []
    if policy.entry_fee_cents > 0:
        charges.append(
            LedgerCharge(
                transaction_type=TransactionType.ENTRY_FEE,
                amount_cents=policy.entry_fee_cents,
                fee_percent=policy.entry_fee_percent,
                description="Entry fee",
                checkout_session_id=event.session_id,
                payment_intent_id=event.payment_intent_id,
            )
        )
    charges.append(
        LedgerCharge(
            transaction_type=TransactionType.SUBSCRIPTION,
            amount_cents=policy.dues_amount_cents,
            fee_percent=PLATFORM_ONLY_PERCENT,
            description="Monthly dues",
            checkout_session_id=event.session_id,
            invoice_id=event.invoice_id,
            payment_intent_id=event.payment_intent_id,
        )
    )

    new_state = replace(
        state,
        entry_fee_paid=True,
        entry_fee_paid_at=event.occurred_at,
        subscription_id=event.subscription_id or state.subscription_id,
        customer_id=event.customer_id or state.customer_id,
        status=SubscriptionStatus.ACTIVE,
        grace_period_ends_at=None,
        is_eligible=True,
    )
    return Transition(
        state=new_state,
        charges=tuple(charges),
        audit=AuditRecord(
            old_status=state.status,
            new_status=SubscriptionStatus.ACTIVE,
            event_type=SubscriptionEventType.CREATED,
        ),
    )


@_handles(InvoicePaymentSucceeded)
def _on_invoice_paid(
    state: TeamSubscriptionState,
    event: InvoicePaymentSucceeded,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.status == SubscriptionStatus.CANCELLED:
        return _noop(state, "subscription cancelled")

    first_invoice = event.billing_reason == BILLING_REASON_SUBSCRIPTION_CREATE
    charges = ()
    if not first_invoice:
        # First invoice: dues were recorded when the checkout completed.
        charges = (
            LedgerCharge(
                transaction_type=TransactionType.SUBSCRIPTION,
                amount_cents=event.amount_paid_cents or policy.dues_amount_cents,
                fee_percent=PLATFORM_ONLY_PERCENT,
                description="Monthly dues",
                invoice_id=event.invoice_id,
                payment_intent_id=event.payment_intent_id,
            ),
        )

    if _is_stale(state, event.occurred_at):
        # The money is real, but a newer event decides the status.
        if not charges:
            return _noop(state, "older than the last applied event")
        return Transition(state=state, charges=charges)

    new_state = replace(
        state,
        status=SubscriptionStatus.ACTIVE,
        current_period_start=event.period_start or state.current_period_start,
        current_period_end=event.period_end or state.current_period_end,
        grace_period_ends_at=None,
        is_eligible=True,
    )

    if first_invoice:
        return Transition(state=new_state)

    return Transition(
        state=new_state,
        charges=charges,
        audit=AuditRecord(
            old_status=state.status,
            new_status=SubscriptionStatus.ACTIVE,
            event_type=SubscriptionEventType.RENEWED,
        ),
    )


@_handles(InvoicePaymentFailed)
def _on_invoice_failed(
    state: TeamSubscriptionState,
    event: InvoicePaymentFailed,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.status == SubscriptionStatus.CANCELLED:
        return _noop(state, "subscription cancelled")
    if _is_stale(state, event.occurred_at):
        return _noop(state, "older than the last applied event")

    grace_ends = state.grace_period_ends_at
    grace_started = state.status != SubscriptionStatus.PAST_DUE or grace_ends is None
    if grace_started:
        grace_ends = event.occurred_at + policy.grace_period

    new_state = replace(
        state,
        status=SubscriptionStatus.PAST_DUE,
        grace_period_ends_at=grace_ends,
        # Never eligible once the grace window has run out.
        is_eligible=state.is_eligible and event.occurred_at < grace_ends,
    )
    return Transition(
        state=new_state,
        audit=AuditRecord(
            old_status=state.status,
            new_status=SubscriptionStatus.PAST_DUE,
            event_type=SubscriptionEventType.PAYMENT_FAILED,
        ),
        local_audit=(
            AuditRecord(
                old_status=SubscriptionStatus.PAST_DUE,
                new_status=SubscriptionStatus.PAST_DUE,
                event_type=SubscriptionEventType.GRACE_PERIOD_STARTED,
            )
            if grace_started
            else None
        ),
    )


@_handles(SubscriptionCancelled)
def _on_cancelled(
    state: TeamSubscriptionState,
    event: SubscriptionCancelled,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.status == SubscriptionStatus.CANCELLED:
        return _noop(state, "subscription already cancelled")

    new_state = replace(
        state,
        status=SubscriptionStatus.CANCELLED,
        cancel_at=event.canceled_at or state.cancel_at or event.occurred_at,
        grace_period_ends_at=None,
        is_eligible=False,
    )
    return Transition(
        state=new_state,
        audit=AuditRecord(
            old_status=state.status,
            new_status=SubscriptionStatus.CANCELLED,
            event_type=SubscriptionEventType.CANCELLED,
        ),
    )


@_handles(SubscriptionUpdated)
def _on_updated(
    state: TeamSubscriptionState,
    event: SubscriptionUpdated,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.status == SubscriptionStatus.CANCELLED:
        return _noop(state, "subscription cancelled")
    if _is_stale(state, event.occurred_at):
        return _noop(state, "older than the last applied event")

    synced = replace(
        state,
        cancel_at=event.cancel_at,
        current_period_start=event.current_period_start or state.current_period_start,
        current_period_end=event.current_period_end or state.current_period_end,
    )

    provider_status = PROVIDER_STATUS_MAP.get(event.provider_status or "")
    reactivated = provider_status in (
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.TRIALING,
    ) and state.status in (SubscriptionStatus.PAST_DUE, SubscriptionStatus.INCOMPLETE)

    if reactivated:
        new_state = replace(
            synced,
            status=provider_status,
            grace_period_ends_at=None,
            is_eligible=True,
        )
        return Transition(
            state=new_state,
            audit=AuditRecord(
                old_status=state.status,
                new_status=provider_status,
                event_type=SubscriptionEventType.REACTIVATED,
            ),
        )

    if synced == state:
        return _noop(state, "nothing to update")
    # Status changes other than reactivation arrive as invoice/deletion events.
    return Transition(state=synced)


@_handles(GracePeriodExpired)
def _on_grace_expired(
    state: TeamSubscriptionState,
    event: GracePeriodExpired,
    policy: SubscriptionPolicy,
) -> Transition:
    if state.status != SubscriptionStatus.PAST_DUE or not state.is_eligible:
        return _noop(state, "team is not in a grace period")
    if state.grace_period_ends_at is None or state.grace_period_ends_at > event.occurred_at:
        return _noop(state, "grace period still running")

    return Transition(
        state=replace(state, is_eligible=False),
        audit=AuditRecord(
            old_status=state.status,
            new_status=SubscriptionStatus.PAST_DUE,
            event_type=SubscriptionEventType.PAST_DUE,
        ),
    )


def transition(
    state: TeamSubscriptionState,
    event: TeamEvent,
    policy: SubscriptionPolicy,
) -> Transition:
    """
    Apply ``event`` to ``state``.

    Provider events older than the last applied one leave the status alone.
    Applying a provider event advances ``state.synced_at`` to its time;
    GracePeriodExpired is raised locally and does not.

    Raises:
        TypeError: ``event`` is not one of the subscription event types
    """
    handler = _TRANSITIONS.get(type(event))
    if handler is None:
        raise TypeError(f"Not a subscription event: {type(event).__name__}")
    result = handler(state, event, policy)

    if not result.applied or isinstance(event, GracePeriodExpired):
        return result
    synced_at = result.state.synced_at
    if synced_at is None or event.occurred_at > synced_at:
        result = replace(result, state=replace(result.state, synced_at=event.occurred_at))
    return result


_missing = {
    event_type.__name__
    for event_type in TeamEvent.__args__
    if event_type not in _TRANSITIONS
}
if _missing:
    raise ImportError(f"Subscription events without a transition: {sorted(_missing)}")
