"""
Tests for CompetitionService.

Publishing is gated on the owner's payout status.
"""

import uuid

import pytest

from competitions.models import Competition, CompetitionStatus
from competitions.services import CompetitionService
from competitions.tests.factories import CompetitionFactory
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from payments.exceptions import PayoutsNotEnabledError
from payments.tests.factories import ConnectedAccountFactory


@pytest.fixture
def competition(db):
    return CompetitionFactory()


class TestPublish:
    """Tests for CompetitionService.publish()."""

    def test_publishes_when_payouts_enabled(self, competition):
        ConnectedAccountFactory(user=competition.owner)

        published = CompetitionService.publish(competition.id, competition.owner)

        assert published.status == CompetitionStatus.PUBLISHED
        assert published.published_at is not None
        stored = Competition.objects.get(pk=competition.pk)
        assert stored.status == CompetitionStatus.PUBLISHED
        assert stored.published_at is not None

    def test_owner_without_account_cannot_publish(self, competition):
        with pytest.raises(PayoutsNotEnabledError):
            CompetitionService.publish(competition.id, competition.owner)

        stored = Competition.objects.get(pk=competition.pk)
        assert stored.status == CompetitionStatus.DRAFT
        assert stored.published_at is None

    def test_incomplete_onboarding_cannot_publish(self, competition):
        ConnectedAccountFactory(user=competition.owner, incomplete=True)

        with pytest.raises(PayoutsNotEnabledError) as exc_info:
            CompetitionService.publish(competition.id, competition.owner)

        assert exc_info.value.details["onboarding_status"] == "incomplete"
        assert Competition.objects.get(pk=competition.pk).status == CompetitionStatus.DRAFT

    def test_blocked_account_cannot_publish(self, competition):
        ConnectedAccountFactory(
            user=competition.owner,
            onboarding_status="blocked",
            payout_status="blocked",
        )

        with pytest.raises(PayoutsNotEnabledError):
            CompetitionService.publish(competition.id, competition.owner)

    def test_only_owner_can_publish(self, competition):
        other = ConnectedAccountFactory().user

        with pytest.raises(PermissionDeniedError):
            CompetitionService.publish(competition.id, other)

    def test_missing_competition(self, db):
        owner = ConnectedAccountFactory().user

        with pytest.raises(NotFoundError):
            CompetitionService.publish(uuid.uuid4(), owner)

    def test_published_competition_cannot_publish_again(self, competition):
        ConnectedAccountFactory(user=competition.owner)
        CompetitionService.publish(competition.id, competition.owner)

        with pytest.raises(ValidationError) as exc_info:
            CompetitionService.publish(competition.id, competition.owner)

        assert exc_info.value.error_code == "INVALID_COMPETITION_STATUS"
