"""
Competition and Team models.

Competition.status is managed by django-fsm. Publishing additionally
requires the owner's payout account to be enabled, which is checked by
CompetitionService before the transition runs.

Usage:
    from competitions.models import Competition, Team

    competition = Competition.objects.create(
        owner=owner,
        name="Spring League",
        entry_fee=Decimal("100.00"),
    )
    team = Team.objects.create(competition=competition, coach=coach, name="Hawks")
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin

from payments.state_machines import SubscriptionStatus


def default_platform_fee_percentage() -> Decimal:
    return Decimal(str(settings.PLATFORM_FEE_PERCENT_DEFAULT))


class CompetitionStatus(models.TextChoices):
    """
    Lifecycle of a competition.

    Only DRAFT -> PUBLISHED is driven by this backend; the later states
    are reserved for season scheduling outside this backend.
    """

    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"
    ACTIVE = "active", "Active"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Competition(UUIDPrimaryKeyMixin, BaseModel):
    """
    A league or tournament run by a competition owner.

    Fields:
        owner: Organizer receiving the entry-fee net amount
        name: Display name (used in checkout line items)
        entry_fee: One-time entry fee in dollars
        platform_fee_percentage: Platform share of the entry fee (0-100)
        status: FSM-managed lifecycle state
        published_at: When the competition was published
        max_teams: Optional registration cap
        registration_deadline: Optional registration cut-off
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_competitions",
        help_text="Competition owner receiving entry-fee payouts",
    )

    name = models.CharField(max_length=200)

    description = models.TextField(blank=True, default="")

    entry_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="One-time entry fee per team",
    )

    platform_fee_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=default_platform_fee_percentage,
        validators=[
            MinValueValidator(Decimal("0.00")),
            MaxValueValidator(Decimal("100.00")),
        ],
        help_text="Platform share of the entry fee, in percent",
    )

    status = FSMField(
        default=CompetitionStatus.DRAFT,
        choices=CompetitionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the competition (managed by FSM)",
    )

    published_at = models.DateTimeField(null=True, blank=True)

    max_teams = models.PositiveIntegerField(null=True, blank=True)

    registration_deadline = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Competition"
        verbose_name_plural = "Competitions"
        constraints = [
            models.CheckConstraint(
                check=models.Q(entry_fee__gte=0),
                name="competition_entry_fee_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(platform_fee_percentage__gte=0)
                & models.Q(platform_fee_percentage__lte=100),
                name="competition_fee_percentage_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Competition({self.name}, {self.status})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=CompetitionStatus.DRAFT,
        target=CompetitionStatus.PUBLISHED,
    )
    def publish(self):
        """
        Open the competition for registration.

        Transition: DRAFT -> PUBLISHED
        """
        self.published_at = timezone.now()


class Team(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
    """
    A team registered in a competition.

    The payment fields below are written only by
    payments.services.SubscriptionService, under a row lock.

    Fields:
        competition: Competition the team plays in
        coach: User who registered (and pays for) the team
        name: Unique within the competition
        entry_fee_paid / entry_fee_paid_at: One-time fee settlement
        stripe_customer_id / stripe_subscription_id: Provider references
        subscription_status: Recurring-dues lifecycle
        current_period_start / current_period_end: Current billing period
        cancel_at: Scheduled or effective cancellation time
        grace_period_ends_at: End of eligibility grace after a failed payment
        is_eligible: Whether the team may play
        subscription_synced_at: Provider time of the newest subscription event
            applied; older deliveries are not allowed to change status
    """

    competition = models.ForeignKey(
        Competition,
        on_delete=models.PROTECT,
        related_name="teams",
    )

    coach = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="coached_teams",
    )

    name = models.CharField(max_length=100)

    # ==========================================================================
    # Payment state (owned by SubscriptionService)
    # ==========================================================================

    entry_fee_paid = models.BooleanField(default=False)

    entry_fee_paid_at = models.DateTimeField(null=True, blank=True)

    stripe_customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe Customer ID (cus_xxx)",
    )

    stripe_subscription_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    subscription_status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.NONE,
        db_index=True,
    )

    current_period_start = models.DateTimeField(null=True, blank=True)

    current_period_end = models.DateTimeField(null=True, blank=True)

    cancel_at = models.DateTimeField(null=True, blank=True)

    grace_period_ends_at = models.DateTimeField(null=True, blank=True)

    is_eligible = models.BooleanField(default=True)

    subscription_synced_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Provider timestamp of the newest applied subscription event",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Team"
        verbose_name_plural = "Teams"
        constraints = [
            models.UniqueConstraint(
                fields=["competition", "name"],
                name="unique_team_name_per_competition",
            ),
        ]
        indexes = [
            models.Index(
                fields=["subscription_status", "grace_period_ends_at"],
                name="team_sub_status_grace_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Team({self.name}, {self.subscription_status})"
