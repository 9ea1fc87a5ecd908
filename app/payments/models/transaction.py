"""
PaymentTransaction model: the append-mostly payment ledger.

One row per charge the platform has observed. Entry fees are split by the
competition's platform percentage, recurring dues are 100% platform revenue.
Rows are only created through LedgerService, which makes writes idempotent
on the provider identifiers.

Usage:
    from payments.models import PaymentTransaction

    dues = PaymentTransaction.objects.filter(
        team=team,
        transaction_type=TransactionType.SUBSCRIPTION,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import TransactionStatus, TransactionType


class PaymentTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single ledger entry.

    Fields:
        team: Team that paid
        competition: Competition the payment belongs to
        payee: Organizer receiving the net amount (null for dues)
        transaction_type: ENTRY_FEE, SUBSCRIPTION or REFUND
        status: Settlement status
        amount_cents / platform_fee_cents / net_to_owner_cents: The split
        currency: ISO 4217 currency code (lowercase)
        stripe_*: Provider identifiers used for idempotency and support
        refunded_amount_cents / refunded_at: Refund bookkeeping
        stripe_created_at: Provider timestamp of the originating event

    Constraints:
        - amount = platform fee + net for every non-refund row
        - one row per (checkout session, type)
        - one subscription row per invoice
    """

    team = models.ForeignKey(
        "competitions.Team",
        on_delete=models.PROTECT,
        related_name="transactions",
        help_text="Team that made the payment",
    )

    competition = models.ForeignKey(
        "competitions.Competition",
        on_delete=models.PROTECT,
        related_name="transactions",
        help_text="Competition the payment belongs to",
    )

    payee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="received_transactions",
        help_text="Organizer receiving the net amount",
    )

    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        db_index=True,
        help_text="What the payment is for",
    )

    status = models.CharField(
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.SUCCEEDED,
        db_index=True,
        help_text="Settlement status",
    )

    # ==========================================================================
    # Amounts (cents)
    # ==========================================================================

    amount_cents = models.BigIntegerField(
        help_text="Total amount in cents",
    )

    platform_fee_cents = models.BigIntegerField(
        default=0,
        help_text="Portion kept by the platform",
    )

    net_to_owner_cents = models.BigIntegerField(
        default=0,
        help_text="Portion routed to the organizer",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Provider identifiers
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_checkout_session_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )

    stripe_invoice_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Invoice ID (in_xxx)",
    )

    stripe_event_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe Event ID (evt_xxx) that produced this row",
    )

    # ==========================================================================
    # Refunds
    # ==========================================================================

    refunded_amount_cents = models.BigIntegerField(
        default=0,
        help_text="Total refunded so far",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the last refund was issued",
    )

    stripe_created_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Provider timestamp of the originating event",
    )

    description = models.CharField(
        max_length=255,
        blank=True,
        default="",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Transaction"
        verbose_name_plural = "Payment Transactions"
        indexes = [
            models.Index(fields=["team", "transaction_type"], name="txn_team_type_idx"),
            models.Index(fields=["competition", "created_at"], name="txn_competition_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=(
                    models.Q(transaction_type=TransactionType.REFUND)
                    | models.Q(
                        amount_cents=models.F("platform_fee_cents")
                        + models.F("net_to_owner_cents")
                    )
                ),
                name="transaction_split_sums_to_amount",
            ),
            models.CheckConstraint(
                check=models.Q(amount_cents__gte=0),
                name="transaction_amount_non_negative",
            ),
            models.UniqueConstraint(
                fields=["stripe_checkout_session_id", "transaction_type"],
                condition=models.Q(stripe_checkout_session_id__isnull=False),
                name="unique_transaction_per_session_type",
            ),
            models.UniqueConstraint(
                fields=["stripe_invoice_id"],
                condition=models.Q(
                    transaction_type=TransactionType.SUBSCRIPTION,
                    stripe_invoice_id__isnull=False,
                ),
                name="unique_subscription_transaction_per_invoice",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"PaymentTransaction({self.transaction_type}, {amount_display})"
