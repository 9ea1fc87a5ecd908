"""
Payments app configuration.

This app provides:
- Fee splitting and the transaction ledger
- Organizer payout onboarding (Stripe Connect)
- Team registration checkout and dues subscriptions
- Stripe webhook reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Registers webhook handlers and fails startup if any event type
        # has none.
        from payments.webhooks import handlers  # noqa: F401
