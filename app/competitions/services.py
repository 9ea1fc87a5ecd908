"""
Competition services.

Usage:
    from competitions.services import CompetitionService

    competition = CompetitionService.publish(competition_id, request.user)
"""

from __future__ import annotations

import uuid

from django_fsm import can_proceed

from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService

from competitions.models import Competition
from payments.services import OnboardingService


class CompetitionService(BaseService):
    """Service for competition lifecycle operations."""

    @classmethod
    def publish(cls, competition_id: uuid.UUID, user) -> Competition:
        """
        Publish a draft competition.

        The owner must be able to receive payouts first, otherwise entry
        fees would have nowhere to go.

        Raises:
            NotFoundError: Competition does not exist
            PermissionDeniedError: User does not own the competition
            PayoutsNotEnabledError: Owner's payout status is not enabled
            ValidationError: Competition is not a draft
        """
        with cls.atomic():
            competition = (
                Competition.objects.select_for_update().filter(id=competition_id).first()
            )
            if competition is None:
                raise NotFoundError(
                    "Competition not found",
                    details={"competition_id": str(competition_id)},
                )
            if competition.owner_id != user.pk:
                raise PermissionDeniedError(
                    "Only the competition owner can publish it",
                    details={"competition_id": str(competition_id)},
                )

            OnboardingService.ensure_payouts_enabled(user)

            if not can_proceed(competition.publish):
                raise ValidationError(
                    f"Cannot publish a {competition.status} competition",
                    error_code="INVALID_COMPETITION_STATUS",
                    details={
                        "competition_id": str(competition_id),
                        "status": competition.status,
                    },
                )
            competition.publish()
            competition.save()

        cls.get_logger().info(
            "Competition published",
            extra={
                "competition_id": str(competition.id),
                "owner_id": str(user.pk),
            },
        )
        return competition
