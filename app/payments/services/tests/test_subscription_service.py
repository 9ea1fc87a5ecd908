"""
Tests for SubscriptionService.

Tests cover:
- Team lookup and locking
- Applying events: team fields, ledger rows and audit rows written together
- Duplicate subscription id protection
- Grace period sweep
- Billing portal sessions
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import transaction
from django.utils import timezone

from competitions.tests.factories import TeamFactory
from core.exceptions import PermissionDeniedError
from payments.adapters import BillingPortalResult
from payments.exceptions import (
    DuplicateSubscriptionIdError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.models import PaymentTransaction, SubscriptionEvent
from payments.services import SubscriptionService
from payments.state_machines import (
    SubscriptionEventType,
    SubscriptionStatus,
    TransactionType,
)
from payments.state_machines.subscription import (
    CheckoutCompleted,
    InvoicePaymentFailed,
    InvoicePaymentSucceeded,
    SubscriptionCancelled,
    SubscriptionUpdated,
)


def checkout_event(team, **overrides) -> CheckoutCompleted:
    fields = {
        "session_id": "cs_hawks",
        "occurred_at": timezone.now(),
        "team_id": str(team.id),
        "subscription_id": "sub_hawks",
        "customer_id": "cus_hawks",
        "invoice_id": "in_first",
        "payment_intent_id": "pi_hawks",
    }
    fields.update(overrides)
    return CheckoutCompleted(**fields)


class TestLookups:
    """Tests for lock_team() and find_team_for_subscription()."""

    def test_lock_team(self, team):
        with transaction.atomic():
            locked = SubscriptionService.lock_team(team.id)

        assert locked.pk == team.pk

    @pytest.mark.parametrize("team_id", [None, "", "not-a-uuid"])
    def test_lock_team_invalid_id(self, db, team_id):
        assert SubscriptionService.lock_team(team_id) is None

    def test_lock_team_missing(self, db):
        with transaction.atomic():
            assert SubscriptionService.lock_team(uuid.uuid4()) is None

    def test_find_team_for_subscription(self, active_team):
        with transaction.atomic():
            found = SubscriptionService.find_team_for_subscription("sub_hawks")

        assert found.pk == active_team.pk

    def test_find_team_for_unknown_subscription(self, db):
        with transaction.atomic():
            assert SubscriptionService.find_team_for_subscription("sub_unknown") is None
        assert SubscriptionService.find_team_for_subscription(None) is None

    def test_policy_for_competition(self, competition, policy):
        assert SubscriptionService.policy_for(competition) == policy


class TestApplyCheckoutCompleted:
    """Checkout completion marks the team paid and records both charges."""

    def test_team_updated(self, team):
        result = SubscriptionService.apply(team, checkout_event(team), stripe_event_id="evt_1")

        assert result.success
        assert result.data.applied
        team.refresh_from_db()
        assert team.entry_fee_paid is True
        assert team.subscription_status == SubscriptionStatus.ACTIVE
        assert team.stripe_subscription_id == "sub_hawks"
        assert team.stripe_customer_id == "cus_hawks"
        assert team.version == 2

    def test_ledger_rows(self, team):
        SubscriptionService.apply(team, checkout_event(team), stripe_event_id="evt_1")

        entry_fee = PaymentTransaction.objects.get(transaction_type=TransactionType.ENTRY_FEE)
        assert (entry_fee.amount_cents, entry_fee.platform_fee_cents, entry_fee.net_to_owner_cents) == (
            10000,
            800,
            9200,
        )
        assert entry_fee.payee_id == team.competition.owner_id
        assert entry_fee.stripe_event_id == "evt_1"
        assert entry_fee.description == "Entry fee - Hawks"

        dues = PaymentTransaction.objects.get(transaction_type=TransactionType.SUBSCRIPTION)
        assert (dues.amount_cents, dues.platform_fee_cents, dues.net_to_owner_cents) == (
            2000,
            2000,
            0,
        )
        assert dues.stripe_invoice_id == "in_first"

    def test_audit_row(self, team):
        SubscriptionService.apply(team, checkout_event(team), stripe_event_id="evt_1")

        audit = SubscriptionEvent.objects.get(team=team)
        assert audit.event_type == SubscriptionEventType.CREATED
        assert audit.old_status == SubscriptionStatus.NONE
        assert audit.new_status == SubscriptionStatus.ACTIVE
        assert audit.stripe_subscription_id == "sub_hawks"
        assert audit.metadata == {"invoice_id": "in_first", "session_id": "cs_hawks"}

    def test_second_checkout_is_noop(self, team):
        SubscriptionService.apply(team, checkout_event(team), stripe_event_id="evt_1")

        result = SubscriptionService.apply(
            team, checkout_event(team, session_id="cs_other"), stripe_event_id="evt_2"
        )

        assert result.success
        assert not result.data.applied
        assert PaymentTransaction.objects.count() == 2
        assert SubscriptionEvent.objects.count() == 1

    def test_subscription_owned_by_other_team(self, team, active_team):
        other = TeamFactory(competition=team.competition)

        with pytest.raises(DuplicateSubscriptionIdError) as exc_info:
            SubscriptionService.apply(other, checkout_event(other))

        assert exc_info.value.details["existing_team_id"] == str(active_team.id)
        assert PaymentTransaction.objects.count() == 0

    def test_ledger_failure_rolls_back_team(self, team):
        with patch(
            "payments.services.subscription_service.LedgerService.record_subscription_event",
            side_effect=RuntimeError("db gone"),
        ):
            with pytest.raises(RuntimeError):
                with transaction.atomic():
                    SubscriptionService.apply(team, checkout_event(team))

        team.refresh_from_db()
        assert team.entry_fee_paid is False
        assert PaymentTransaction.objects.count() == 0


class TestApplyInvoiceEvents:
    """Invoice events on an active team."""

    def test_renewal_records_dues(self, active_team):
        event = InvoicePaymentSucceeded(
            invoice_id="in_2",
            subscription_id="sub_hawks",
            occurred_at=timezone.now(),
            amount_paid_cents=2000,
            billing_reason="subscription_cycle",
        )

        SubscriptionService.apply(active_team, event, stripe_event_id="evt_renew")

        dues = PaymentTransaction.objects.get(stripe_invoice_id="in_2")
        assert dues.platform_fee_cents == 2000
        assert dues.net_to_owner_cents == 0
        assert SubscriptionEvent.objects.get(team=active_team).event_type == (
            SubscriptionEventType.RENEWED
        )

    def test_renewal_records_amount_paid(self, active_team):
        event = InvoicePaymentSucceeded(
            invoice_id="in_3",
            subscription_id="sub_hawks",
            occurred_at=timezone.now(),
            amount_paid_cents=2500,
            billing_reason="subscription_cycle",
        )

        SubscriptionService.apply(active_team, event, stripe_event_id="evt_renew_2500")

        dues = PaymentTransaction.objects.get(stripe_invoice_id="in_3")
        assert (dues.amount_cents, dues.platform_fee_cents, dues.net_to_owner_cents) == (
            2500,
            2500,
            0,
        )

    def test_payment_failure_starts_grace(self, active_team):
        now = timezone.now()
        event = InvoicePaymentFailed(
            invoice_id="in_2",
            subscription_id="sub_hawks",
            occurred_at=now,
            attempt_count=1,
        )

        SubscriptionService.apply(active_team, event, stripe_event_id="evt_fail")

        active_team.refresh_from_db()
        assert active_team.subscription_status == SubscriptionStatus.PAST_DUE
        assert active_team.grace_period_ends_at == now + timedelta(days=7)
        assert active_team.is_eligible is True
        audit = SubscriptionEvent.objects.get(stripe_event_id="evt_fail")
        assert audit.event_type == SubscriptionEventType.PAYMENT_FAILED
        assert audit.metadata["attempt_count"] == 1
        assert audit.metadata["grace_period_ends_at"] == (now + timedelta(days=7)).isoformat()
        grace = SubscriptionEvent.objects.get(
            team=active_team, event_type=SubscriptionEventType.GRACE_PERIOD_STARTED
        )
        assert grace.stripe_event_id is None
        assert grace.metadata["caused_by"] == "evt_fail"

    def test_stale_update_leaves_past_due_team_alone(self, active_team):
        failed_at = timezone.now()
        SubscriptionService.apply(
            active_team,
            InvoicePaymentFailed(
                invoice_id="in_2", subscription_id="sub_hawks", occurred_at=failed_at
            ),
            stripe_event_id="evt_fail",
        )
        active_team.refresh_from_db()
        assert active_team.subscription_synced_at == failed_at

        result = SubscriptionService.apply(
            active_team,
            SubscriptionUpdated(
                subscription_id="sub_hawks",
                occurred_at=failed_at - timedelta(days=1),
                provider_status="active",
            ),
            stripe_event_id="evt_stale_update",
        )

        assert result.data.applied is False
        active_team.refresh_from_db()
        assert active_team.subscription_status == SubscriptionStatus.PAST_DUE
        assert active_team.grace_period_ends_at == failed_at + timedelta(days=7)
        assert not SubscriptionEvent.objects.filter(stripe_event_id="evt_stale_update").exists()

    def test_cancellation(self, active_team):
        SubscriptionService.apply(
            active_team,
            SubscriptionCancelled(subscription_id="sub_hawks", occurred_at=timezone.now()),
            stripe_event_id="evt_cancel",
        )

        active_team.refresh_from_db()
        assert active_team.subscription_status == SubscriptionStatus.CANCELLED
        assert active_team.is_eligible is False


class TestExpireGracePeriods:
    """Tests for SubscriptionService.expire_grace_periods()."""

    def _past_due(self, team, grace_ends):
        team.subscription_status = SubscriptionStatus.PAST_DUE
        team.grace_period_ends_at = grace_ends
        team.is_eligible = True
        team.save()
        return team

    def test_expires_overdue_teams(self, active_team):
        now = timezone.now()
        self._past_due(active_team, now - timedelta(hours=1))

        expired = SubscriptionService.expire_grace_periods(now)

        assert expired == 1
        active_team.refresh_from_db()
        assert active_team.is_eligible is False
        assert active_team.subscription_status == SubscriptionStatus.PAST_DUE
        audit = SubscriptionEvent.objects.get(team=active_team)
        assert audit.event_type == SubscriptionEventType.PAST_DUE
        assert audit.stripe_event_id is None

    def test_running_grace_untouched(self, active_team):
        now = timezone.now()
        self._past_due(active_team, now + timedelta(days=2))

        assert SubscriptionService.expire_grace_periods(now) == 0
        active_team.refresh_from_db()
        assert active_team.is_eligible is True

    def test_active_teams_untouched(self, active_team):
        assert SubscriptionService.expire_grace_periods(timezone.now()) == 0

    def test_second_sweep_is_noop(self, active_team):
        now = timezone.now()
        self._past_due(active_team, now - timedelta(hours=1))
        SubscriptionService.expire_grace_periods(now)

        assert SubscriptionService.expire_grace_periods(now) == 0
        assert SubscriptionEvent.objects.filter(team=active_team).count() == 1


class TestBillingPortal:
    """Tests for SubscriptionService.create_billing_portal_session()."""

    def test_creates_session(self, active_team, fake_stripe):
        fake_stripe.create_billing_portal_session.return_value = BillingPortalResult(
            url="https://billing.stripe.com/p/session/x"
        )

        result = SubscriptionService.create_billing_portal_session(
            active_team.id, active_team.coach
        )

        assert result.url == "https://billing.stripe.com/p/session/x"
        fake_stripe.create_billing_portal_session.assert_called_once_with(
            customer_id="cus_hawks",
            return_url="https://app.example.com/my-teams",
        )

    def test_missing_team(self, coach, fake_stripe):
        with pytest.raises(PaymentNotFoundError):
            SubscriptionService.create_billing_portal_session(uuid.uuid4(), coach)

    def test_other_user_denied(self, active_team, owner, fake_stripe):
        with pytest.raises(PermissionDeniedError):
            SubscriptionService.create_billing_portal_session(active_team.id, owner)

    def test_team_without_customer(self, team, fake_stripe):
        with pytest.raises(PaymentValidationError):
            SubscriptionService.create_billing_portal_session(team.id, team.coach)

        fake_stripe.create_billing_portal_session.assert_not_called()
