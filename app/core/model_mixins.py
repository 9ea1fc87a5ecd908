"""
Model mixins combined with BaseModel by the domain apps.

Available Mixins:
    UUIDPrimaryKeyMixin: UUID primary key
    VersionedModelMixin: Optimistic version counter

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin

    class Team(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
        name = models.CharField(max_length=100)
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import F


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID as primary key instead of an auto-increment integer.

    IDs are non-guessable and can be embedded in provider metadata
    (checkout sessions, subscriptions) without leaking row counts.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True


class VersionedModelMixin(models.Model):
    """
    Optimistic version counter.

    Every update increments ``version`` atomically in the database with an
    F() expression, so two writers that both read version N leave the row at
    N + 2 and the change history stays detectable.

    Fields:
        version: Starts at 1, incremented on each update
    """

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Save, bumping ``version`` on updates."""
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
            update_fields = kwargs.get("update_fields")
            if update_fields is not None and "version" not in update_fields:
                kwargs["update_fields"] = [*update_fields, "version"]
        super().save(*args, **kwargs)
        if is_update:
            # Replace the F() expression with the stored value
            self.refresh_from_db(fields=["version"])
