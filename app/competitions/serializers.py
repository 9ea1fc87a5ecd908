"""
DRF serializers for competitions app.
"""

from __future__ import annotations

from rest_framework import serializers

from competitions.models import Competition


class CompetitionSerializer(serializers.ModelSerializer):
    """Competition summary returned by lifecycle endpoints."""

    class Meta:
        model = Competition
        fields = [
            "id",
            "name",
            "entry_fee",
            "platform_fee_percentage",
            "status",
            "published_at",
            "max_teams",
            "registration_deadline",
        ]
        read_only_fields = fields
