"""
ConnectedAccount model for organizer payout accounts.

Each competition owner has at most one ConnectedAccount. A user without a
row is treated as NOT_STARTED / NONE. The status fields are only written by
OnboardingService, which derives them with the onboarding state machine.

Usage:
    from payments.models import ConnectedAccount

    account = ConnectedAccount.objects.filter(user=owner).first()
    if account and account.is_ready_for_payouts:
        ...
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin

from payments.state_machines import OnboardingStatus, PayoutStatus


class ConnectedAccount(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
    """
    A Stripe Connect (standard) account that receives entry-fee payouts.

    Fields:
        user: OneToOne link to the competition owner
        stripe_account_id: Stripe Account ID (acct_xxx), set once created
        onboarding_status: Verification lifecycle
        payout_status: Whether funds can be routed here
        charges_enabled / payouts_enabled / details_submitted: Last provider flags
        disabled_reason: Provider's requirements.disabled_reason, if any
        onboarded_at: First time the account became verified
        status_synced_at: Timestamp of the provider snapshot last applied
        metadata: Flexible JSON storage

    Note:
        payout_status is ENABLED only while onboarding_status is VERIFIED.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="connected_account",
        help_text="Competition owner this account pays out to",
    )

    stripe_account_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe Account ID (acct_xxx)",
    )

    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.NOT_STARTED,
        db_index=True,
        help_text="Current onboarding status",
    )

    payout_status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        default=PayoutStatus.NONE,
        db_index=True,
        help_text="Current payout status",
    )

    charges_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled charges for this account",
    )

    payouts_enabled = models.BooleanField(
        default=False,
        help_text="Whether Stripe has enabled payouts for this account",
    )

    details_submitted = models.BooleanField(
        default=False,
        help_text="Whether the owner has submitted onboarding details",
    )

    disabled_reason = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe requirements.disabled_reason",
    )

    onboarded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the account first became verified",
    )

    status_synced_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Provider timestamp of the last applied status snapshot",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Connected Account"
        verbose_name_plural = "Connected Accounts"

    def __str__(self) -> str:
        return f"ConnectedAccount({self.stripe_account_id}, {self.onboarding_status})"

    @property
    def is_ready_for_payouts(self) -> bool:
        return (
            self.onboarding_status == OnboardingStatus.VERIFIED
            and self.payout_status == PayoutStatus.ENABLED
        )
