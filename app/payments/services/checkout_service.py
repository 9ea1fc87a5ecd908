"""
Checkout service: creates league registration checkout sessions.

Composition is delegated to payments.checkout.compose_checkout; this module
handles lookups, permission checks and the provider call. Nothing local is
written here. The team is marked paid by checkout.session.completed.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.utils import timezone

from competitions.models import Team
from core.exceptions import PermissionDeniedError
from core.services import BaseService

from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.checkout import CheckoutConfig, compose_checkout
from payments.exceptions import PaymentNotFoundError
from payments.models import ConnectedAccount

# Repeated clicks inside this window reuse one provider session.
CHECKOUT_IDEMPOTENCY_WINDOW_SECONDS = 600


@dataclass
class CheckoutSession:
    """A created checkout session the coach is redirected to."""

    session_id: str
    url: str
    entry_fee_cents: int = 0
    application_fee_cents: int = 0


class CheckoutService(BaseService):
    """Service for starting a team's registration checkout."""

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

    @classmethod
    def create_checkout_session(cls, team_id: uuid.UUID, user) -> CheckoutSession:
        """
        Create a checkout session for the team's entry fee and dues.

        Raises:
            PaymentNotFoundError: Team does not exist
            PermissionDeniedError: User is not the team's coach
            AlreadyPaidError: Entry fee already paid
            StripeError: Provider call failed
        """
        team = (
            Team.objects.select_related("competition", "competition__owner")
            .filter(id=team_id)
            .first()
        )
        if team is None:
            raise PaymentNotFoundError(
                "Team not found",
                details={"team_id": str(team_id)},
            )
        if team.coach_id != user.pk:
            raise PermissionDeniedError(
                "Only the team's coach can pay for registration",
                details={"team_id": str(team_id)},
            )

        competition = team.competition
        owner_account_id = (
            ConnectedAccount.objects.filter(user_id=competition.owner_id)
            .values_list("stripe_account_id", flat=True)
            .first()
        )

        request = compose_checkout(
            team,
            competition,
            owner_account_id=owner_account_id,
            config=CheckoutConfig.from_settings(),
            customer_email=user.email or None,
        )

        window = int(timezone.now().timestamp()) // CHECKOUT_IDEMPOTENCY_WINDOW_SECONDS
        result = cls.get_stripe_adapter().create_checkout_session(
            request,
            idempotency_key=IdempotencyKeyGenerator.generate(
                "checkout_session", team.id, attempt=window
            ),
        )

        cls.get_logger().info(
            "Checkout session created",
            extra={
                "team_id": str(team.id),
                "competition_id": str(competition.id),
                "session_id": result.id,
                "entry_fee_cents": request.entry_fee_cents,
                "application_fee_cents": request.application_fee_cents,
                "has_payout_account": bool(owner_account_id),
            },
        )
        return CheckoutSession(
            session_id=result.id,
            url=result.url,
            entry_fee_cents=request.entry_fee_cents,
            application_fee_cents=request.application_fee_cents,
        )
