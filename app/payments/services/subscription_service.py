"""
Subscription service: persistence for the team subscription state machine.

Every event is applied the same way:
    1. the caller resolves and locks the Team row
    2. transition() computes the new state, ledger charges and audit record
    3. team fields, ledger rows and the audit row are written in one
       atomic block

Usage:
    from payments.services import SubscriptionService

    with transaction.atomic():
        team = SubscriptionService.find_team_for_subscription("sub_123")
        if team is not None:
            SubscriptionService.apply(team, event, stripe_event_id="evt_123")
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from competitions.models import Team
from core.exceptions import PermissionDeniedError
from core.services import BaseService, ServiceResult

from payments.adapters import BillingPortalResult, StripeAdapter
from payments.exceptions import (
    DuplicateSubscriptionIdError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.fees import to_cents
from payments.ledger import LedgerService, RecordTransactionParams
from payments.state_machines import SubscriptionStatus
from payments.state_machines.subscription import (
    CheckoutCompleted,
    GracePeriodExpired,
    SubscriptionPolicy,
    TeamEvent,
    TeamSubscriptionState,
    Transition,
    transition,
)


class SubscriptionService(BaseService):
    """
    Service applying subscription events to teams.

    Teams passed to apply() must already be locked by the caller
    (find_team_for_subscription / lock_team inside transaction.atomic()).
    """

    # Stripe adapter - can be injected for testing
    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        """Get the Stripe adapter class."""
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _locked_teams():
        return Team.objects.select_for_update(of=("self",)).select_related(
            "competition"
        )

    @classmethod
    def lock_team(cls, team_id: uuid.UUID | str | None) -> Team | None:
        """Lock and return a team by id, or None for a missing/invalid id."""
        if not team_id:
            return None
        try:
            return cls._locked_teams().filter(id=team_id).first()
        except (ValueError, DjangoValidationError):
            return None

    @classmethod
    def find_team_for_subscription(cls, subscription_id: str | None) -> Team | None:
        """
        Lock and return the team owning ``subscription_id``.

        Returns:
            The team, or None when no team has the subscription

        Raises:
            DuplicateSubscriptionIdError: More than one team claims it
        """
        if not subscription_id:
            return None
        teams = list(cls._locked_teams().filter(stripe_subscription_id=subscription_id)[:2])
        if len(teams) > 1:
            raise DuplicateSubscriptionIdError(
                f"Subscription {subscription_id} is attached to more than one team",
                details={
                    "stripe_subscription_id": subscription_id,
                    "team_ids": [str(team.id) for team in teams],
                },
            )
        return teams[0] if teams else None

    # =========================================================================
    # Event application
    # =========================================================================

    @staticmethod
    def policy_for(competition) -> SubscriptionPolicy:
        """Fee and grace rules for a competition's teams."""
        return SubscriptionPolicy(
            entry_fee_cents=to_cents(competition.entry_fee),
            entry_fee_percent=competition.platform_fee_percentage,
            dues_amount_cents=settings.LEAGUE_DUES_AMOUNT_CENTS,
            grace_period=timedelta(days=settings.SUBSCRIPTION_GRACE_PERIOD_DAYS),
        )

    @classmethod
    def apply(
        cls,
        team: Team,
        event: TeamEvent,
        stripe_event_id: str | None = None,
    ) -> ServiceResult[Transition]:
        """
        Apply one subscription event to a locked team.

        Returns:
            ServiceResult with the Transition (applied may be False)

        Raises:
            DuplicateSubscriptionIdError: Checkout would attach a subscription
                id another team already owns
        """
        logger = cls.get_logger()
        competition = team.competition
        state = TeamSubscriptionState.from_team(team)

        if isinstance(event, CheckoutCompleted) and event.subscription_id:
            cls._check_subscription_unclaimed(team, event.subscription_id)

        result = transition(state, event, cls.policy_for(competition))
        log_context = {
            "team_id": str(team.id),
            "event": type(event).__name__,
            "stripe_event_id": stripe_event_id,
        }

        if not result.applied:
            logger.info(
                "Subscription event skipped",
                extra={**log_context, "reason": result.reason},
            )
            return ServiceResult.success(result)

        with cls.atomic():
            for name, value in result.state.as_team_fields().items():
                setattr(team, name, value)
            team.save()

            for charge in result.charges:
                LedgerService.record_transaction(
                    RecordTransactionParams(
                        team_id=team.id,
                        competition_id=competition.id,
                        payee_id=competition.owner_id,
                        transaction_type=charge.transaction_type,
                        amount_cents=charge.amount_cents,
                        fee_percent=charge.fee_percent,
                        checkout_session_id=charge.checkout_session_id,
                        invoice_id=charge.invoice_id,
                        payment_intent_id=charge.payment_intent_id,
                        stripe_event_id=stripe_event_id,
                        stripe_created_at=event.occurred_at,
                        description=f"{charge.description} - {team.name}",
                    )
                )

            if result.audit is not None:
                LedgerService.record_subscription_event(
                    team_id=team.id,
                    event_type=result.audit.event_type,
                    old_status=result.audit.old_status,
                    new_status=result.audit.new_status,
                    stripe_event_id=stripe_event_id,
                    stripe_subscription_id=result.state.subscription_id,
                    metadata=cls._audit_metadata(event, result.state),
                )
            if result.local_audit is not None:
                LedgerService.record_subscription_event(
                    team_id=team.id,
                    event_type=result.local_audit.event_type,
                    old_status=result.local_audit.old_status,
                    new_status=result.local_audit.new_status,
                    stripe_subscription_id=result.state.subscription_id,
                    metadata={
                        **cls._audit_metadata(event, result.state),
                        "caused_by": stripe_event_id,
                    },
                )

        logger.info(
            "Subscription event applied",
            extra={
                **log_context,
                "old_status": state.status,
                "new_status": result.state.status,
                "is_eligible": result.state.is_eligible,
                "charges": len(result.charges),
            },
        )
        return ServiceResult.success(result)

    @staticmethod
    def _check_subscription_unclaimed(team: Team, subscription_id: str) -> None:
        owner = (
            Team.objects.filter(stripe_subscription_id=subscription_id)
            .exclude(id=team.id)
            .values_list("id", flat=True)
            .first()
        )
        if owner is not None:
            raise DuplicateSubscriptionIdError(
                f"Subscription {subscription_id} already belongs to another team",
                details={
                    "stripe_subscription_id": subscription_id,
                    "team_id": str(team.id),
                    "existing_team_id": str(owner),
                },
            )

    @staticmethod
    def _audit_metadata(event: TeamEvent, state: TeamSubscriptionState) -> dict:
        metadata = {}
        for attr in ("invoice_id", "session_id", "attempt_count"):
            value = getattr(event, attr, None)
            if value is not None:
                metadata[attr] = value
        if state.grace_period_ends_at is not None:
            metadata["grace_period_ends_at"] = state.grace_period_ends_at.isoformat()
        return metadata

    # =========================================================================
    # Grace period sweep
    # =========================================================================

    @classmethod
    def expire_grace_periods(cls, now: datetime | None = None) -> int:
        """
        Revoke eligibility for past-due teams whose grace window has ended.

        Each team is locked and updated in its own transaction.

        Returns:
            Number of teams made ineligible
        """
        now = now or timezone.now()
        team_ids = list(
            Team.objects.filter(
                subscription_status=SubscriptionStatus.PAST_DUE,
                is_eligible=True,
                grace_period_ends_at__lte=now,
            ).values_list("id", flat=True)
        )

        expired = 0
        for team_id in team_ids:
            with cls.atomic():
                team = cls.lock_team(team_id)
                if team is None:
                    continue
                result = cls.apply(team, GracePeriodExpired(occurred_at=now))
                if result.data.applied:
                    expired += 1

        if expired:
            cls.get_logger().info(
                "Grace periods expired",
                extra={"expired_count": expired, "candidates": len(team_ids)},
            )
        return expired

    # =========================================================================
    # Billing portal
    # =========================================================================

    @classmethod
    def create_billing_portal_session(cls, team_id: uuid.UUID, user) -> BillingPortalResult:
        """
        Customer portal session for updating the team's payment method.

        Raises:
            PaymentNotFoundError: Team does not exist
            PermissionDeniedError: User is not the team's coach
            PaymentValidationError: Team has no billing customer yet
            StripeError: Provider call failed
        """
        team = Team.objects.filter(id=team_id).first()
        if team is None:
            raise PaymentNotFoundError(
                "Team not found",
                details={"team_id": str(team_id)},
            )
        if team.coach_id != user.pk:
            raise PermissionDeniedError(
                "Only the team's coach can manage its billing",
                details={"team_id": str(team_id)},
            )
        if not team.stripe_customer_id:
            raise PaymentValidationError(
                "Team has no billing account yet",
                details={"team_id": str(team_id)},
            )

        frontend_url = settings.FRONTEND_URL.rstrip("/")
        return cls.get_stripe_adapter().create_billing_portal_session(
            customer_id=team.stripe_customer_id,
            return_url=f"{frontend_url}/my-teams",
        )
