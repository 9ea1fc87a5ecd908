"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.
The transition logic lives next door in onboarding.py and subscription.py.

State Machines Overview:

Onboarding (ConnectedAccount.onboarding_status / payout_status):
    not_started → incomplete → verified
    any → blocked
    payout_status = enabled only while onboarding_status = verified

Team subscription (Team.subscription_status):
    none → active (checkout completed)
    active → past_due (invoice payment failed)
    past_due → active (invoice paid / provider reactivation)
    any → cancelled (terminal)

Webhook processing (WebhookEvent.status):
    pending → processing → processed
    pending → processing → failed → processing (manual retry)
"""

from django.db import models


class OnboardingStatus(models.TextChoices):
    """Verification lifecycle of an organizer's payout account."""

    NOT_STARTED = "not_started", "Not Started"
    INCOMPLETE = "incomplete", "Incomplete"
    VERIFIED = "verified", "Verified"
    BLOCKED = "blocked", "Blocked"


class PayoutStatus(models.TextChoices):
    """
    Whether funds can be routed to the organizer's payout account.

    ENABLED requires OnboardingStatus.VERIFIED.
    """

    NONE = "none", "None"
    PENDING = "pending", "Pending"
    ENABLED = "enabled", "Enabled"
    BLOCKED = "blocked", "Blocked"


class SubscriptionStatus(models.TextChoices):
    """
    Recurring-dues lifecycle of a team.

    Terminal state: CANCELLED
    """

    NONE = "none", "None"
    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    CANCELLED = "cancelled", "Cancelled"
    INCOMPLETE = "incomplete", "Incomplete"
    TRIALING = "trialing", "Trialing"


class SubscriptionEventType(models.TextChoices):
    """Kinds of entries in the subscription audit trail."""

    CREATED = "created", "Created"
    RENEWED = "renewed", "Renewed"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    CANCELLED = "cancelled", "Cancelled"
    PAST_DUE = "past_due", "Past Due"
    GRACE_PERIOD_STARTED = "grace_period_started", "Grace Period Started"
    REACTIVATED = "reactivated", "Reactivated"


class TransactionType(models.TextChoices):
    """What a ledger row pays for."""

    ENTRY_FEE = "entry_fee", "Entry Fee"
    SUBSCRIPTION = "subscription", "Subscription"
    REFUND = "refund", "Refund"


class TransactionStatus(models.TextChoices):
    """Settlement status of a ledger row."""

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (operator retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "OnboardingStatus",
    "PayoutStatus",
    "SubscriptionStatus",
    "SubscriptionEventType",
    "TransactionType",
    "TransactionStatus",
    "WebhookEventStatus",
]
