"""
Pytest fixtures shared by all payments tests.

Usage:
    def test_checkout(team, payout_account, fake_stripe):
        fake_stripe.create_checkout_session.return_value = ...
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.utils import timezone

from authentication.tests.factories import CoachFactory, OwnerFactory
from competitions.tests.factories import CompetitionFactory, TeamFactory
from payments.services import CheckoutService, OnboardingService, SubscriptionService
from payments.state_machines import SubscriptionStatus
from payments.state_machines.subscription import SubscriptionPolicy
from payments.tests.factories import ConnectedAccountFactory


# =============================================================================
# Users, competitions and teams
# =============================================================================


@pytest.fixture
def owner(db):
    """Competition owner."""
    return OwnerFactory()


@pytest.fixture
def coach(db):
    """Coach registering a team."""
    return CoachFactory()


@pytest.fixture
def competition(db, owner):
    """Draft competition: $100.00 entry fee, 8% platform fee."""
    return CompetitionFactory(
        owner=owner,
        entry_fee=Decimal("100.00"),
        platform_fee_percentage=Decimal("8.00"),
    )


@pytest.fixture
def team(db, competition, coach):
    """Unpaid team coached by ``coach``."""
    return TeamFactory(competition=competition, coach=coach, name="Hawks")


@pytest.fixture
def payout_account(db, owner):
    """Owner's fully onboarded payout account."""
    return ConnectedAccountFactory(user=owner, stripe_account_id="acct_owner123")


@pytest.fixture
def active_team(db, team):
    """Team that has completed checkout and is subscribed."""
    now = timezone.now()
    team.entry_fee_paid = True
    team.entry_fee_paid_at = now
    team.stripe_customer_id = "cus_hawks"
    team.stripe_subscription_id = "sub_hawks"
    team.subscription_status = SubscriptionStatus.ACTIVE
    team.current_period_start = now
    team.current_period_end = now + timedelta(days=30)
    team.save()
    return team


@pytest.fixture
def policy():
    """Subscription policy matching the ``competition`` fixture."""
    return SubscriptionPolicy(
        entry_fee_cents=10000,
        entry_fee_percent=Decimal("8.00"),
        dues_amount_cents=2000,
        grace_period=timedelta(days=7),
    )


@pytest.fixture(autouse=True)
def billing_settings(settings):
    settings.LEAGUE_DUES_AMOUNT_CENTS = 2000
    settings.SUBSCRIPTION_GRACE_PERIOD_DAYS = 7
    settings.PLATFORM_FEE_PERCENT_DEFAULT = "8.00"
    return settings


# =============================================================================
# Stripe adapter injection
# =============================================================================


@pytest.fixture
def fake_stripe():
    """
    Inject a mock Stripe adapter into every payments service.

    The mock is reset afterwards so real adapters are used by other tests.
    """
    adapter = MagicMock(name="StripeAdapter")
    for service in (OnboardingService, SubscriptionService, CheckoutService):
        service.set_stripe_adapter(adapter)
    yield adapter
    for service in (OnboardingService, SubscriptionService, CheckoutService):
        service.set_stripe_adapter(None)
