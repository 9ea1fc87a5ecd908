"""
Django admin configuration for competitions.

Lifecycle status and team payment fields are read-only here: status moves
through CompetitionService, payment fields through the webhook reconciler.
"""

from django.contrib import admin

from competitions.models import Competition, Team


class TeamInline(admin.TabularInline):
    model = Team
    extra = 0
    fields = ["name", "coach", "entry_fee_paid", "subscription_status", "is_eligible"]
    readonly_fields = ["entry_fee_paid", "subscription_status", "is_eligible"]
    show_change_link = True


@admin.register(Competition)
class CompetitionAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "owner",
        "status",
        "entry_fee",
        "platform_fee_percentage",
        "published_at",
        "created_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "name", "owner__email"]
    readonly_fields = ["id", "status", "published_at", "created_at", "updated_at"]
    ordering = ["-created_at"]
    inlines = [TeamInline]


@admin.register(Team)
class TeamAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "competition",
        "coach",
        "entry_fee_paid",
        "subscription_status",
        "is_eligible",
        "grace_period_ends_at",
    ]
    list_filter = ["subscription_status", "entry_fee_paid", "is_eligible"]
    search_fields = ["id", "name", "stripe_subscription_id", "stripe_customer_id"]
    readonly_fields = [
        "id",
        "entry_fee_paid",
        "entry_fee_paid_at",
        "stripe_customer_id",
        "stripe_subscription_id",
        "subscription_status",
        "current_period_start",
        "current_period_end",
        "cancel_at",
        "grace_period_ends_at",
        "is_eligible",
        "subscription_synced_at",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
