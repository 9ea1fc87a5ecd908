"""
Ledger service: the only writer of PaymentTransaction and SubscriptionEvent.

Writes are idempotent. A ledger row is keyed by (checkout session, type) or,
for dues, by invoice id; an audit row by provider event id. Replaying the
same provider event returns the stored row instead of inserting a second one.

Usage:
    from payments.ledger import LedgerService, RecordTransactionParams

    txn, created = LedgerService.record_transaction(RecordTransactionParams(
        team_id=team.id,
        competition_id=competition.id,
        transaction_type=TransactionType.SUBSCRIPTION,
        amount_cents=2000,
        fee_percent=PLATFORM_ONLY_PERCENT,
        invoice_id="in_123",
    ))
"""

from __future__ import annotations

import logging
import uuid

from django.db import IntegrityError, transaction
from django.db.models import Sum

from payments.fees import split
from payments.models import PaymentTransaction, SubscriptionEvent
from payments.state_machines import TransactionType

from .exceptions import MissingIdempotencyKey, TransactionMismatch
from .types import CompetitionTotals, Money, RecordTransactionParams

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Fee split computed here so every row satisfies amount = fee + net
    - Idempotency via provider identifiers backed by unique constraints
    - Savepoints so a lost insert race does not poison the caller's transaction

    All methods are static - no instance state is maintained.
    """

    @staticmethod
    def _find_existing(params: RecordTransactionParams) -> PaymentTransaction | None:
        if params.checkout_session_id:
            existing = PaymentTransaction.objects.filter(
                stripe_checkout_session_id=params.checkout_session_id,
                transaction_type=params.transaction_type,
            ).first()
            if existing:
                return existing
        if params.invoice_id and params.transaction_type == TransactionType.SUBSCRIPTION:
            return PaymentTransaction.objects.filter(
                stripe_invoice_id=params.invoice_id,
                transaction_type=TransactionType.SUBSCRIPTION,
            ).first()
        return None

    @staticmethod
    def record_transaction(
        params: RecordTransactionParams,
    ) -> tuple[PaymentTransaction, bool]:
        """
        Record a ledger row, or return the one already stored for the same key.

        Args:
            params: Row parameters

        Returns:
            (transaction, created)

        Raises:
            InvalidAmountError: Negative amount or percentage outside [0, 100]
            MissingIdempotencyKey: Neither session nor invoice id given
            TransactionMismatch: A row exists for the key with another amount
        """
        if not params.checkout_session_id and not params.invoice_id:
            raise MissingIdempotencyKey(
                "Ledger rows need a checkout session id or an invoice id",
                details={"transaction_type": params.transaction_type},
            )

        fee_split = split(params.amount_cents, params.fee_percent)

        existing = LedgerService._find_existing(params)
        if existing is not None:
            LedgerService._check_matches(existing, fee_split.amount_cents)
            return existing, False

        try:
            with transaction.atomic():
                txn = PaymentTransaction.objects.create(
                    team_id=params.team_id,
                    competition_id=params.competition_id,
                    payee_id=params.payee_id,
                    transaction_type=params.transaction_type,
                    amount_cents=fee_split.amount_cents,
                    platform_fee_cents=fee_split.platform_fee_cents,
                    net_to_owner_cents=fee_split.net_cents,
                    currency=params.currency,
                    stripe_checkout_session_id=params.checkout_session_id,
                    stripe_invoice_id=params.invoice_id,
                    stripe_payment_intent_id=params.payment_intent_id,
                    stripe_event_id=params.stripe_event_id,
                    stripe_created_at=params.stripe_created_at,
                    description=params.description,
                )
        except IntegrityError:
            # Another worker inserted the same key between lookup and insert
            existing = LedgerService._find_existing(params)
            if existing is None:
                raise
            LedgerService._check_matches(existing, fee_split.amount_cents)
            return existing, False

        logger.info(
            "Ledger transaction recorded",
            extra={
                "transaction_id": str(txn.id),
                "team_id": str(params.team_id),
                "transaction_type": params.transaction_type,
                "amount_cents": txn.amount_cents,
                "platform_fee_cents": txn.platform_fee_cents,
                "net_to_owner_cents": txn.net_to_owner_cents,
            },
        )
        return txn, True

    @staticmethod
    def _check_matches(existing: PaymentTransaction, amount_cents: int) -> None:
        if existing.amount_cents != amount_cents:
            raise TransactionMismatch(
                existing.id,
                expected=existing.amount_cents,
                received=amount_cents,
            )

    @staticmethod
    def record_subscription_event(
        team_id: uuid.UUID,
        event_type: str,
        old_status: str,
        new_status: str,
        stripe_event_id: str | None = None,
        stripe_subscription_id: str | None = None,
        metadata: dict | None = None,
    ) -> tuple[SubscriptionEvent, bool]:
        """
        Append an audit row. A provider event id is recorded at most once.

        Returns:
            (event, created)
        """
        if stripe_event_id:
            existing = SubscriptionEvent.objects.filter(
                stripe_event_id=stripe_event_id
            ).first()
            if existing:
                return existing, False

        try:
            with transaction.atomic():
                event = SubscriptionEvent.objects.create(
                    team_id=team_id,
                    event_type=event_type,
                    old_status=old_status,
                    new_status=new_status,
                    stripe_event_id=stripe_event_id,
                    stripe_subscription_id=stripe_subscription_id or "",
                    metadata=metadata or {},
                )
        except IntegrityError:
            if not stripe_event_id:
                raise
            return SubscriptionEvent.objects.get(stripe_event_id=stripe_event_id), False

        return event, True

    @staticmethod
    def get_team_transactions(team_id: uuid.UUID) -> list[PaymentTransaction]:
        """All ledger rows for a team, oldest first."""
        return list(
            PaymentTransaction.objects.filter(team_id=team_id).order_by("created_at")
        )

    @staticmethod
    def get_competition_totals(competition_id: uuid.UUID) -> CompetitionTotals:
        """
        Sum gross, platform fee and organizer net over a competition's
        non-refund rows.
        """
        totals = (
            PaymentTransaction.objects.filter(competition_id=competition_id)
            .exclude(transaction_type=TransactionType.REFUND)
            .aggregate(
                gross=Sum("amount_cents"),
                platform_fee=Sum("platform_fee_cents"),
                net=Sum("net_to_owner_cents"),
            )
        )
        return CompetitionTotals(
            gross=Money(cents=totals["gross"] or 0),
            platform_fee=Money(cents=totals["platform_fee"] or 0),
            net_to_owner=Money(cents=totals["net"] or 0),
        )


# Singleton instance for convenience
# Usage: from payments.ledger.services import ledger
ledger = LedgerService()
