"""
DRF views for competitions app.

Endpoints:
    POST /api/v1/competitions/{competition_id}/publish/ - Publish a draft competition
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError

from competitions.serializers import CompetitionSerializer
from competitions.services import CompetitionService


class PublishCompetitionView(APIView):
    """
    Publish a draft competition.

    POST /api/v1/competitions/{competition_id}/publish/

    Response:
        200 OK: Competition published
        400 Bad Request: Payouts not enabled, or competition not a draft
        403 Forbidden: Not the competition owner
        404 Not Found: Unknown competition
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="publish_competition",
        summary="Publish competition",
        description=(
            "Open a draft competition for registration. Requires the owner's "
            "payout account to be fully enabled."
        ),
        request=None,
        responses={
            200: CompetitionSerializer,
            400: OpenApiResponse(description="Payouts not enabled or invalid status"),
            403: OpenApiResponse(description="Not the competition owner"),
            404: OpenApiResponse(description="Competition not found"),
        },
        tags=["Competitions"],
    )
    def post(self, request, competition_id):
        try:
            competition = CompetitionService.publish(competition_id, request.user)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.status_code)
        return Response(CompetitionSerializer(competition).data)
