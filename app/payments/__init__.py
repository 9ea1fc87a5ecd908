"""
Payments app for the competition marketplace.

This app handles:
- Splitting entry fees between the platform and competition owners
- Payout-account onboarding for competition owners
- Team registration checkout (entry fee + monthly dues)
- Subscription state and eligibility from Stripe webhooks
- The transaction ledger and subscription audit trail

Related apps:
    - authentication: User model (owners, coaches)
    - competitions: Competition and Team aggregates

Usage:
    from payments.services import CheckoutService

    session = CheckoutService.create_checkout_session(team_id, coach)
"""
