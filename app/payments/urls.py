"""
URL configuration for the payments app.

Routes:
    - POST /webhooks/stripe/ - Stripe webhook endpoint
    - POST /connect/onboarding-link/ - Begin payout onboarding
    - POST /connect/refresh-status/ - Pull payout account status
    - GET  /connect/status/ - Current onboarding status
    - POST /teams/<team_id>/checkout/ - Registration checkout
    - POST /teams/<team_id>/billing-portal/ - Dues billing portal

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    # Payout onboarding
    path(
        "connect/onboarding-link/",
        views.OnboardingLinkView.as_view(),
        name="onboarding_link",
    ),
    path(
        "connect/refresh-status/",
        views.RefreshAccountStatusView.as_view(),
        name="refresh_account_status",
    ),
    path(
        "connect/status/",
        views.OnboardingStatusView.as_view(),
        name="onboarding_status",
    ),
    # Team registration & billing
    path(
        "teams/<uuid:team_id>/checkout/",
        views.TeamCheckoutView.as_view(),
        name="team_checkout",
    ),
    path(
        "teams/<uuid:team_id>/billing-portal/",
        views.TeamBillingPortalView.as_view(),
        name="team_billing_portal",
    ),
]
