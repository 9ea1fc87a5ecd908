"""
Payment services coordinating state machines, the ledger and Stripe.

This module provides:
- OnboardingService: Organizer payout-account onboarding
- SubscriptionService: Applies subscription events to teams
- CheckoutService: Creates registration checkout sessions

Usage:
    from payments.services import CheckoutService

    session = CheckoutService.create_checkout_session(team_id, request.user)
    return redirect(session.url)

    from payments.services import SubscriptionService

    expired = SubscriptionService.expire_grace_periods()
"""

from payments.services.checkout_service import CheckoutService, CheckoutSession
from payments.services.onboarding_service import (
    OnboardingLink,
    OnboardingService,
    OnboardingStatusView,
)
from payments.services.subscription_service import SubscriptionService

__all__ = [
    "CheckoutService",
    "CheckoutSession",
    "OnboardingLink",
    "OnboardingService",
    "OnboardingStatusView",
    "SubscriptionService",
]
