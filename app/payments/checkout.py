"""
Checkout composition for league registration.

compose_checkout() is pure: it reads a team and its competition and returns
the provider-facing CheckoutSessionRequest. Nothing is persisted; a team is
only marked paid when checkout.session.completed arrives.

Session shape:
    - one-time entry fee line item (omitted when the fee is zero)
    - recurring dues line item referencing STRIPE_MONTHLY_DUES_PRICE_ID
    - metadata resolving the session back to the team and competition
    - when the owner has a payout account:
        one-time: application fee from the fee splitter, net to the owner
        recurring: 100% application fee, 0% to the owner

Usage:
    from payments.checkout import CheckoutConfig, compose_checkout

    request = compose_checkout(
        team,
        team.competition,
        owner_account_id="acct_123",
        config=CheckoutConfig.from_settings(),
    )
    params = request.to_stripe_params()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from payments.exceptions import AlreadyPaidError
from payments.fees import PLATFORM_ONLY_PERCENT, split, to_cents


@dataclass(frozen=True)
class CheckoutConfig:
    """Settings the composer depends on."""

    frontend_url: str
    dues_price_id: str
    currency: str = "usd"

    @classmethod
    def from_settings(cls) -> CheckoutConfig:
        return cls(
            frontend_url=settings.FRONTEND_URL.rstrip("/"),
            dues_price_id=settings.STRIPE_MONTHLY_DUES_PRICE_ID,
        )


@dataclass(frozen=True)
class CheckoutSessionRequest:
    """
    A provider-facing Checkout Session request.

    Attributes:
        line_items: One-time entry fee (optional) and recurring dues
        metadata: String map resolving the session to local entities
        success_url / cancel_url: Redirect targets
        customer_email: Prefilled payer email
        payment_intent_data: One-time routing instructions, if any
        subscription_data: Recurring metadata and routing instructions
        entry_fee_cents: Entry fee that will be charged
        application_fee_cents: Platform share of the entry fee
    """

    line_items: list[dict[str, Any]]
    metadata: dict[str, str]
    success_url: str
    cancel_url: str
    subscription_data: dict[str, Any]
    customer_email: str | None = None
    payment_intent_data: dict[str, Any] | None = None
    entry_fee_cents: int = 0
    application_fee_cents: int = 0
    mode: str = field(default="subscription")

    def to_stripe_params(self) -> dict[str, Any]:
        """Keyword arguments for stripe.checkout.Session.create."""
        params: dict[str, Any] = {
            "mode": self.mode,
            "line_items": self.line_items,
            "metadata": self.metadata,
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
            "subscription_data": self.subscription_data,
        }
        if self.customer_email:
            params["customer_email"] = self.customer_email
        if self.payment_intent_data:
            params["payment_intent_data"] = self.payment_intent_data
        return params


def compose_checkout(
    team,
    competition,
    owner_account_id: str | None,
    config: CheckoutConfig,
    customer_email: str | None = None,
) -> CheckoutSessionRequest:
    """
    Build the checkout request for a team's registration.

    Args:
        team: Team registering (read only)
        competition: The team's competition (read only)
        owner_account_id: Organizer's payout account, if onboarding started
        config: Frontend URL and recurring price reference
        customer_email: Prefilled payer email

    Raises:
        AlreadyPaidError: The team's entry fee is already paid
        InvalidAmountError: Entry fee or fee percentage out of range
    """
    if team.entry_fee_paid:
        raise AlreadyPaidError(
            "Entry fee has already been paid for this team",
            details={"team_id": str(team.id)},
        )

    entry_fee_cents = to_cents(competition.entry_fee)
    fee_split = split(entry_fee_cents, competition.platform_fee_percentage)

    line_items: list[dict[str, Any]] = []
    if entry_fee_cents > 0:
        line_items.append(
            {
                "price_data": {
                    "currency": config.currency,
                    "product_data": {
                        "name": f"{competition.name} - Entry Fee",
                        "description": f"One-time entry fee for {team.name}",
                    },
                    "unit_amount": entry_fee_cents,
                },
                "quantity": 1,
            }
        )
    line_items.append({"price": config.dues_price_id, "quantity": 1})

    metadata = {
        "team_id": str(team.id),
        "competition_id": str(competition.id),
        "team_name": team.name,
        "competition_name": competition.name,
    }
    subscription_data: dict[str, Any] = {
        "metadata": {
            "team_id": str(team.id),
            "competition_id": str(competition.id),
        },
    }

    payment_intent_data = None
    if owner_account_id:
        if entry_fee_cents > 0:
            payment_intent_data = {
                "application_fee_amount": fee_split.platform_fee_cents,
                "transfer_data": {"destination": owner_account_id},
            }
        # Dues are platform revenue; the owner receives nothing from them
        subscription_data["application_fee_percent"] = float(PLATFORM_ONLY_PERCENT)
        subscription_data["transfer_data"] = {
            "destination": owner_account_id,
            "amount_percent": 0,
        }

    return CheckoutSessionRequest(
        line_items=line_items,
        metadata=metadata,
        success_url=(
            f"{config.frontend_url}/teams/registration/success"
            "?session_id={CHECKOUT_SESSION_ID}"
        ),
        cancel_url=f"{config.frontend_url}/competitions/{competition.id}",
        subscription_data=subscription_data,
        customer_email=customer_email,
        payment_intent_data=payment_intent_data,
        entry_fee_cents=entry_fee_cents,
        application_fee_cents=fee_split.platform_fee_cents if owner_account_id else 0,
    )
