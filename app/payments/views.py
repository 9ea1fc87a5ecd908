"""
DRF views for payments app.

Endpoints:
    POST /api/v1/payments/connect/onboarding-link/ - Begin onboarding, get a link
    POST /api/v1/payments/connect/refresh-status/ - Pull account status from Stripe
    GET  /api/v1/payments/connect/status/ - Current onboarding status
    POST /api/v1/payments/teams/{team_id}/checkout/ - Create registration checkout
    POST /api/v1/payments/teams/{team_id}/billing-portal/ - Customer portal session

Errors:
    Application errors are returned as ``e.to_dict()`` with the exception's
    status code: 400 validation, 403 permission, 404 not found,
    502 provider failure, 503 retryable provider failure.

Security:
    - All endpoints here require authentication
    - The webhook endpoint lives in payments.webhooks.views
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError

from payments.serializers import (
    BillingPortalSerializer,
    CheckoutSessionSerializer,
    ConnectedAccountStatusSerializer,
    OnboardingLinkSerializer,
    OnboardingStatusSerializer,
    PaymentErrorSerializer,
)
from payments.services import CheckoutService, OnboardingService, SubscriptionService

logger = logging.getLogger(__name__)


PROVIDER_ERROR_RESPONSES = {
    502: OpenApiResponse(
        response=PaymentErrorSerializer,
        description="Stripe rejected the request",
    ),
    503: OpenApiResponse(
        response=PaymentErrorSerializer,
        description="Stripe unavailable or timed out; safe to retry",
    ),
}


def error_response(error: BaseApplicationError) -> Response:
    """Render an application error with its HTTP status."""
    if error.status_code >= 500:
        logger.warning(
            "Payment request failed",
            extra={"error_code": error.error_code, "status_code": error.status_code},
        )
    return Response(error.to_dict(), status=error.status_code)


# =============================================================================
# Payout account onboarding
# =============================================================================


class OnboardingLinkView(APIView):
    """
    Begin payout onboarding and return a hosted onboarding link.

    POST /api/v1/payments/connect/onboarding-link/

    Creates the Stripe account on first use. Calling again returns a fresh
    link for the same account.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_onboarding_link",
        summary="Create onboarding link",
        request=None,
        responses={
            200: OnboardingLinkSerializer,
            403: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="User is not a competition owner",
            ),
            **PROVIDER_ERROR_RESPONSES,
        },
        tags=["Payments - Onboarding"],
    )
    def post(self, request):
        try:
            link = OnboardingService.create_onboarding_link(request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(OnboardingLinkSerializer(link).data)


class RefreshAccountStatusView(APIView):
    """
    Pull the payout account from Stripe and apply its status.

    POST /api/v1/payments/connect/refresh-status/

    Used when the owner returns from hosted onboarding, before the
    account.updated webhook may have arrived.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="refresh_account_status",
        summary="Refresh payout account status",
        request=None,
        responses={
            200: ConnectedAccountStatusSerializer,
            404: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Onboarding has not been started",
            ),
            **PROVIDER_ERROR_RESPONSES,
        },
        tags=["Payments - Onboarding"],
    )
    def post(self, request):
        try:
            account = OnboardingService.refresh_account_status(request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(ConnectedAccountStatusSerializer(account).data)


class OnboardingStatusView(APIView):
    """
    Current onboarding and payout status of the requesting owner.

    GET /api/v1/payments/connect/status/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_onboarding_status",
        summary="Get onboarding status",
        responses={200: OnboardingStatusSerializer},
        tags=["Payments - Onboarding"],
    )
    def get(self, request):
        view = OnboardingService.get_status(request.user)
        return Response(OnboardingStatusSerializer(view).data)


# =============================================================================
# Team registration & billing
# =============================================================================


class TeamCheckoutView(APIView):
    """
    Create the registration checkout for a team.

    POST /api/v1/payments/teams/{team_id}/checkout/

    Only the team's coach may call this. The session charges the entry fee
    once and starts the monthly dues subscription.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_team_checkout",
        summary="Create team checkout session",
        request=None,
        responses={
            201: CheckoutSessionSerializer,
            400: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Entry fee already paid",
            ),
            403: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="User is not the team's coach",
            ),
            404: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Team not found",
            ),
            **PROVIDER_ERROR_RESPONSES,
        },
        tags=["Payments - Checkout"],
    )
    def post(self, request, team_id):
        try:
            session = CheckoutService.create_checkout_session(team_id, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(
            CheckoutSessionSerializer(session).data,
            status=status.HTTP_201_CREATED,
        )


class TeamBillingPortalView(APIView):
    """
    Create a customer portal session for the team's dues.

    POST /api/v1/payments/teams/{team_id}/billing-portal/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_team_billing_portal",
        summary="Create billing portal session",
        request=None,
        responses={
            200: BillingPortalSerializer,
            400: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Team has no billing account yet",
            ),
            403: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="User is not the team's coach",
            ),
            404: OpenApiResponse(
                response=PaymentErrorSerializer,
                description="Team not found",
            ),
            **PROVIDER_ERROR_RESPONSES,
        },
        tags=["Payments - Checkout"],
    )
    def post(self, request, team_id):
        try:
            portal = SubscriptionService.create_billing_portal_session(team_id, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(BillingPortalSerializer(portal).data)
