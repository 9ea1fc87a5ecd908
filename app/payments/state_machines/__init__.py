"""
State machine enums and pure transition functions for payments.

The enums are TextChoices stored on the models. onboarding.py and
subscription.py hold the transitions; they never touch the database.
"""

from payments.state_machines.states import (
    OnboardingStatus,
    PayoutStatus,
    SubscriptionEventType,
    SubscriptionStatus,
    TransactionStatus,
    TransactionType,
    WebhookEventStatus,
)

__all__ = [
    "OnboardingStatus",
    "PayoutStatus",
    "SubscriptionEventType",
    "SubscriptionStatus",
    "TransactionStatus",
    "TransactionType",
    "WebhookEventStatus",
]
