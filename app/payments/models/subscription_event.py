"""
SubscriptionEvent model: append-only audit trail of team subscription changes.

Rows are written by SubscriptionService alongside the team update they
describe. Existing rows cannot be modified or deleted through the ORM.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import SubscriptionEventType, SubscriptionStatus


class AppendOnlyError(Exception):
    """Raised on an attempt to modify or delete an audit row."""


class SubscriptionEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One subscription status change for a team.

    Fields:
        team: Team whose subscription changed
        stripe_subscription_id: Subscription the change belongs to
        event_type: What happened
        old_status / new_status: Team subscription status before and after
        stripe_event_id: Provider event that caused the change (null for
            locally raised events such as grace period expiry)
        metadata: Extra context (invoice id, grace window, ...)
    """

    team = models.ForeignKey(
        "competitions.Team",
        on_delete=models.PROTECT,
        related_name="subscription_events",
    )

    stripe_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx) at the time of the change",
    )

    event_type = models.CharField(
        max_length=30,
        choices=SubscriptionEventType.choices,
        db_index=True,
    )

    old_status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
    )

    new_status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
    )

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe Event ID (evt_xxx)",
    )

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Subscription Event"
        verbose_name_plural = "Subscription Events"
        indexes = [
            models.Index(fields=["team", "created_at"], name="sub_event_team_created_idx"),
        ]

    def __str__(self) -> str:
        return f"SubscriptionEvent({self.event_type}, {self.old_status} -> {self.new_status})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError("Subscription events cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Subscription events cannot be deleted")
