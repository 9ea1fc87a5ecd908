"""
DRF serializers for payments app.

Response-only serializers: every payments endpoint takes its input from the
URL and the authenticated user.

Related files:
    - services/: OnboardingService, CheckoutService, SubscriptionService
    - views.py: Payment API views

Usage:
    serializer = OnboardingStatusSerializer(OnboardingService.get_status(user))
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers


class OnboardingLinkSerializer(serializers.Serializer):
    """
    Hosted onboarding link.

    Fields:
        account_id: Stripe connected account id (acct_xxx)
        url: Single-use onboarding URL
        expires_at: When the link stops working
    """

    account_id = serializers.CharField(read_only=True)
    url = serializers.URLField(read_only=True)
    expires_at = serializers.DateTimeField(read_only=True, allow_null=True)


class OnboardingStatusSerializer(serializers.Serializer):
    """Current onboarding / payout status of the requesting owner."""

    onboarding_status = serializers.CharField(read_only=True)
    payout_status = serializers.CharField(read_only=True)
    stripe_account_id = serializers.CharField(read_only=True, allow_null=True)
    charges_enabled = serializers.BooleanField(read_only=True)
    payouts_enabled = serializers.BooleanField(read_only=True)
    details_submitted = serializers.BooleanField(read_only=True)
    onboarded_at = serializers.DateTimeField(read_only=True, allow_null=True)
    can_publish = serializers.BooleanField(read_only=True)


class ConnectedAccountStatusSerializer(serializers.Serializer):
    """Account state returned after a manual refresh."""

    stripe_account_id = serializers.CharField(read_only=True)
    onboarding_status = serializers.CharField(read_only=True)
    payout_status = serializers.CharField(read_only=True)
    charges_enabled = serializers.BooleanField(read_only=True)
    payouts_enabled = serializers.BooleanField(read_only=True)
    details_submitted = serializers.BooleanField(read_only=True)
    disabled_reason = serializers.CharField(read_only=True, allow_blank=True)
    onboarded_at = serializers.DateTimeField(read_only=True, allow_null=True)
    status_synced_at = serializers.DateTimeField(read_only=True, allow_null=True)


class CheckoutSessionSerializer(serializers.Serializer):
    """
    Created checkout session.

    Fields:
        session_id: Stripe Checkout Session id (cs_xxx)
        url: Hosted checkout URL to redirect the coach to
        entry_fee_cents: One-time entry fee in the session
        application_fee_cents: Platform share of the entry fee
    """

    session_id = serializers.CharField(read_only=True)
    url = serializers.URLField(read_only=True)
    entry_fee_cents = serializers.IntegerField(read_only=True)
    application_fee_cents = serializers.IntegerField(read_only=True)


class BillingPortalSerializer(serializers.Serializer):
    """Customer portal session URL."""

    url = serializers.URLField(read_only=True)


class PaymentErrorSerializer(serializers.Serializer):
    """Error body produced by BaseApplicationError.to_dict()."""

    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
