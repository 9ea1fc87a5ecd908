"""
Payment domain models.

- ConnectedAccount: Organizer payout account and onboarding status
- PaymentTransaction: Ledger of entry fees and dues
- SubscriptionEvent: Append-only audit trail of team subscription changes
- WebhookEvent: Stripe webhook event tracking for idempotent processing
"""

from payments.models.connected_account import ConnectedAccount
from payments.models.subscription_event import AppendOnlyError, SubscriptionEvent
from payments.models.transaction import PaymentTransaction
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "AppendOnlyError",
    "ConnectedAccount",
    "PaymentTransaction",
    "SubscriptionEvent",
    "WebhookEvent",
]
