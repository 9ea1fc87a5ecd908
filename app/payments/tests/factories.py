"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import (
        ConnectedAccountFactory,
        PaymentTransactionFactory,
        WebhookEventFactory,
    )

    # Owner whose payouts are enabled
    account = ConnectedAccountFactory(user=owner)

    # Account that has just started onboarding
    account = ConnectedAccountFactory(incomplete=True)
"""

import factory
from django.utils import timezone

from authentication.tests.factories import OwnerFactory
from competitions.tests.factories import TeamFactory
from payments.models import ConnectedAccount, PaymentTransaction, WebhookEvent
from payments.state_machines import (
    OnboardingStatus,
    PayoutStatus,
    TransactionType,
    WebhookEventStatus,
)


class ConnectedAccountFactory(factory.django.DjangoModelFactory):
    """
    Factory for ConnectedAccount.

    Defaults to a fully onboarded account (verified, payouts enabled).
    """

    class Meta:
        model = ConnectedAccount

    user = factory.SubFactory(OwnerFactory)
    stripe_account_id = factory.Sequence(lambda n: f"acct_test{n:08d}")
    onboarding_status = OnboardingStatus.VERIFIED
    payout_status = PayoutStatus.ENABLED
    charges_enabled = True
    payouts_enabled = True
    details_submitted = True
    onboarded_at = factory.LazyFunction(timezone.now)

    class Params:
        incomplete = factory.Trait(
            onboarding_status=OnboardingStatus.INCOMPLETE,
            payout_status=PayoutStatus.NONE,
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
            onboarded_at=None,
        )


class PaymentTransactionFactory(factory.django.DjangoModelFactory):
    """Factory for an entry-fee ledger row ($100 at 8%)."""

    class Meta:
        model = PaymentTransaction

    team = factory.SubFactory(TeamFactory)
    competition = factory.SelfAttribute("team.competition")
    payee = factory.SelfAttribute("team.competition.owner")
    transaction_type = TransactionType.ENTRY_FEE
    amount_cents = 10000
    platform_fee_cents = 800
    net_to_owner_cents = 9200
    stripe_checkout_session_id = factory.Sequence(lambda n: f"cs_test{n:08d}")


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for WebhookEvent.

    The payload is a minimal envelope matching stripe_event_id and
    event_type; pass ``payload`` to supply a full event.
    """

    class Meta:
        model = WebhookEvent

    stripe_event_id = factory.Sequence(lambda n: f"evt_test{n:08d}")
    event_type = "ping"
    status = WebhookEventStatus.PENDING
    payload = factory.LazyAttribute(
        lambda o: {
            "id": o.stripe_event_id,
            "type": o.event_type,
            "created": 1700000000,
            "data": {"object": {}},
        }
    )
