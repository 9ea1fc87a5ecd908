"""
Authentication models.

- User: Custom user model with email-based authentication and a league role

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """
    Role a user plays in the league marketplace.

    COMPETITION_OWNER: Organizes competitions and receives entry-fee payouts
    COACH: Registers teams and pays entry fees / dues
    PLATFORM_OWNER: Operates the marketplace
    """

    COMPETITION_OWNER = "competition_owner", "Competition Owner"
    COACH = "coach", "Coach"
    PLATFORM_OWNER = "platform_owner", "Platform Owner"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Payout-account state (provider account id, onboarding and payout
    status) is not stored here; it lives on payments.ConnectedAccount so
    that only the onboarding service writes it.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name used in provider metadata
        role: League role (owner, coach, platform owner)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        owner = User.objects.create_user(
            email="owner@example.com",
            password="securepassword",
            role=UserRole.COMPETITION_OWNER,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    full_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="User's display name",
    )

    role = models.CharField(
        max_length=32,
        choices=UserRole.choices,
        default=UserRole.COACH,
        db_index=True,
        help_text="League role of this user",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        if self.full_name:
            return self.full_name.split()[0]
        return self.email.split("@")[0]

    @property
    def is_competition_owner(self) -> bool:
        return self.role == UserRole.COMPETITION_OWNER

    @property
    def is_coach(self) -> bool:
        return self.role == UserRole.COACH
