"""
Data types for ledger operations.

Types:
    Money: A monetary amount in cents with currency
    RecordTransactionParams: Parameters for recording a ledger row
    CompetitionTotals: Aggregated amounts for a competition

Usage:
    from payments.ledger.types import RecordTransactionParams

    params = RecordTransactionParams(
        team_id=team.id,
        competition_id=competition.id,
        transaction_type=TransactionType.ENTRY_FEE,
        amount_cents=10000,
        fee_percent=Decimal("8.00"),
        checkout_session_id="cs_123",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Money:
    """
    A monetary amount in the smallest currency unit.

    Example:
        print(Money(cents=5000))  # "$50.00 USD"
    """

    cents: int
    currency: str = "usd"

    def __str__(self) -> str:
        dollars = self.cents / 100
        return f"${dollars:.2f} {self.currency.upper()}"


@dataclass
class RecordTransactionParams:
    """
    Parameters for recording one ledger row.

    The split is computed by the ledger from ``fee_percent``; callers choose
    the policy (competition percentage for entry fees, 100 for dues).

    Required Attributes:
        team_id: Team that paid
        competition_id: Competition the payment belongs to
        transaction_type: TransactionType value
        amount_cents: Total charge in cents
        fee_percent: Platform share in percent

    Optional Attributes:
        payee_id: Organizer receiving the net amount
        checkout_session_id / invoice_id: Idempotency keys (one is required)
        payment_intent_id: Provider PaymentIntent reference
        stripe_event_id: Event that produced the row
        stripe_created_at: Provider timestamp
        description: Human-readable description
    """

    team_id: uuid.UUID
    competition_id: uuid.UUID
    transaction_type: str
    amount_cents: int
    fee_percent: Decimal

    payee_id: int | None = None
    checkout_session_id: str | None = None
    invoice_id: str | None = None
    payment_intent_id: str | None = None
    stripe_event_id: str | None = None
    stripe_created_at: datetime | None = None
    description: str = ""
    currency: str = "usd"


@dataclass
class CompetitionTotals:
    """Gross, platform fee and organizer net for a competition."""

    gross: Money
    platform_fee: Money
    net_to_owner: Money
