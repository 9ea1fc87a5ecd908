"""
Tests for webhook event handlers.

Tests cover:
- Handler registry and exhaustiveness
- Routing of each event class to the right service
- Acknowledging events for unknown teams and subscriptions
"""

from unittest.mock import patch

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from payments.models import PaymentTransaction
from payments.state_machines import OnboardingStatus, SubscriptionStatus
from payments.state_machines.onboarding import AccountUpdated
from payments.state_machines.subscription import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    SubscriptionUpdated,
)
from payments.tests.factories import WebhookEventFactory
from payments.webhooks import handlers
from payments.webhooks.events import Unrecognized, WebhookPayloadEvent
from payments.webhooks.handlers import WEBHOOK_HANDLERS, check_handlers, dispatch_event


@pytest.fixture
def webhook_event(db):
    return WebhookEventFactory(stripe_event_id="evt_handler", event_type="test.event")


class TestRegistry:
    def test_every_event_class_has_a_handler(self):
        assert set(WebhookPayloadEvent.__args__) <= set(WEBHOOK_HANDLERS)
        check_handlers()

    def test_missing_handler_is_detected(self):
        with patch.dict(WEBHOOK_HANDLERS, clear=False):
            del WEBHOOK_HANDLERS[Unrecognized]

            with pytest.raises(ImproperlyConfigured, match="Unrecognized"):
                check_handlers()

    def test_dispatch_unknown_type_raises(self, webhook_event):
        with pytest.raises(TypeError):
            dispatch_event(object(), webhook_event)


class TestAccountUpdated:
    def test_updates_account(self, payout_account, webhook_event):
        event = AccountUpdated(
            account_id="acct_owner123",
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=True,
            occurred_at=timezone.now(),
        )

        result = dispatch_event(event, webhook_event)

        assert result.success
        payout_account.refresh_from_db()
        assert payout_account.onboarding_status == OnboardingStatus.INCOMPLETE

    def test_unknown_account_fails(self, webhook_event):
        event = AccountUpdated(
            account_id="acct_nobody",
            charges_enabled=True,
            payouts_enabled=True,
            details_submitted=True,
        )

        result = dispatch_event(event, webhook_event)

        assert not result.success
        assert result.error_code == "ACCOUNT_NOT_RESOLVED"


class TestCheckoutCompleted:
    def _event(self, team_id):
        return CheckoutCompleted(
            session_id="cs_1",
            occurred_at=timezone.now(),
            team_id=team_id,
            subscription_id="sub_hawks",
            customer_id="cus_hawks",
        )

    def test_applies_to_team(self, team, webhook_event):
        result = dispatch_event(self._event(str(team.id)), webhook_event)

        assert result.success
        team.refresh_from_db()
        assert team.entry_fee_paid is True
        assert PaymentTransaction.objects.filter(stripe_event_id="evt_handler").count() == 2

    @pytest.mark.parametrize("team_id", [None, "not-a-uuid", "6f1c3d8e-0000-4000-8000-000000000000"])
    def test_unknown_team_is_acknowledged(self, webhook_event, team_id):
        result = dispatch_event(self._event(team_id), webhook_event)

        assert result.success
        assert result.data is None
        assert PaymentTransaction.objects.count() == 0


class TestSubscriptionEvents:
    def test_routes_by_subscription_id(self, active_team, webhook_event):
        event = InvoicePaymentFailed(
            invoice_id="in_2",
            subscription_id="sub_hawks",
            occurred_at=timezone.now(),
        )

        result = dispatch_event(event, webhook_event)

        assert result.success
        active_team.refresh_from_db()
        assert active_team.subscription_status == SubscriptionStatus.PAST_DUE

    def test_unknown_subscription_is_acknowledged(self, webhook_event):
        event = SubscriptionUpdated(subscription_id="sub_nobody", occurred_at=timezone.now())

        with patch.object(handlers.SubscriptionService, "apply") as mock_apply:
            result = dispatch_event(event, webhook_event)

        assert result.success
        mock_apply.assert_not_called()


class TestUnrecognized:
    def test_acknowledged(self, webhook_event):
        result = dispatch_event(Unrecognized("charge.refunded"), webhook_event)

        assert result.success
        assert result.data is None
