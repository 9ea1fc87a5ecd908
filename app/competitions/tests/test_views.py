"""
Tests for competition API views.
"""

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from competitions.tests.factories import CompetitionFactory
from payments.tests.factories import ConnectedAccountFactory


@pytest.fixture
def competition(db):
    return CompetitionFactory()


@pytest.fixture
def owner_client(competition):
    client = APIClient()
    client.force_authenticate(user=competition.owner)
    return client


def publish_url(competition) -> str:
    return reverse("competitions:publish", kwargs={"competition_id": competition.id})


class TestPublishCompetitionView:
    def test_publishes(self, owner_client, competition):
        ConnectedAccountFactory(user=competition.owner)

        response = owner_client.post(publish_url(competition))

        assert response.status_code == 200
        assert response.data["status"] == "published"
        assert response.data["id"] == str(competition.id)

    def test_payouts_not_enabled_returns_400(self, owner_client, competition):
        response = owner_client.post(publish_url(competition))

        assert response.status_code == 400
        assert response.data["error_code"] == "PAYOUTS_NOT_ENABLED"

    def test_requires_authentication(self, competition):
        response = APIClient().post(publish_url(competition))

        assert response.status_code == 401
