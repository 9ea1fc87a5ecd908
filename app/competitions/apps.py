"""
Django app configuration for competitions.
"""

from django.apps import AppConfig


class CompetitionsConfig(AppConfig):
    """Configuration for the competitions application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "competitions"
    verbose_name = "Competitions"
