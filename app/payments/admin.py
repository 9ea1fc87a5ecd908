"""
Payment admin configuration.

Ledger rows, subscription events and webhook events are audit records:
they can be inspected but not added or deleted through the admin.
"""

from django.contrib import admin, messages

from payments.models import (
    ConnectedAccount,
    PaymentTransaction,
    SubscriptionEvent,
    WebhookEvent,
)

__all__ = [
    "ConnectedAccountAdmin",
    "PaymentTransactionAdmin",
    "SubscriptionEventAdmin",
    "WebhookEventAdmin",
]


@admin.register(ConnectedAccount)
class ConnectedAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for ConnectedAccount.

    Provides visibility into owner payout accounts. Status is derived from
    Stripe; change it by refreshing from Stripe, not here.
    """

    list_display = [
        "id",
        "user",
        "stripe_account_id",
        "onboarding_status",
        "payout_status",
        "charges_enabled",
        "payouts_enabled",
        "status_synced_at",
    ]
    list_filter = ["onboarding_status", "payout_status", "payouts_enabled"]
    search_fields = ["id", "stripe_account_id", "user__email"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "version",
        "onboarding_status",
        "payout_status",
        "charges_enabled",
        "payouts_enabled",
        "details_submitted",
        "disabled_reason",
        "onboarded_at",
        "status_synced_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "user", "stripe_account_id"),
            },
        ),
        (
            "Status",
            {
                "fields": (
                    "onboarding_status",
                    "payout_status",
                    "charges_enabled",
                    "payouts_enabled",
                    "details_submitted",
                    "disabled_reason",
                    "onboarded_at",
                    "status_synced_at",
                ),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("metadata", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentTransaction (ledger rows).

    Read-only: rows are written by the webhook reconciler.
    """

    list_display = [
        "id",
        "team",
        "competition",
        "transaction_type",
        "amount_display",
        "platform_fee_display",
        "net_display",
        "status",
        "created_at",
    ]
    list_filter = ["transaction_type", "status", "currency", "created_at"]
    search_fields = [
        "id",
        "team__name",
        "competition__name",
        "stripe_checkout_session_id",
        "stripe_invoice_id",
        "stripe_payment_intent_id",
        "stripe_event_id",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    @staticmethod
    def _dollars(cents: int, currency: str) -> str:
        return f"${cents / 100:.2f} {currency.upper()}"

    @admin.display(description="Amount")
    def amount_display(self, obj: PaymentTransaction) -> str:
        return self._dollars(obj.amount_cents, obj.currency)

    @admin.display(description="Platform fee")
    def platform_fee_display(self, obj: PaymentTransaction) -> str:
        return self._dollars(obj.platform_fee_cents, obj.currency)

    @admin.display(description="Net to owner")
    def net_display(self, obj: PaymentTransaction) -> str:
        return self._dollars(obj.net_to_owner_cents, obj.currency)

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for ledger rows (audit trail)."""
        return False


@admin.register(SubscriptionEvent)
class SubscriptionEventAdmin(admin.ModelAdmin):
    """Admin configuration for the append-only subscription audit trail."""

    list_display = [
        "id",
        "team",
        "event_type",
        "old_status",
        "new_status",
        "stripe_event_id",
        "created_at",
    ]
    list_filter = ["event_type", "new_status", "created_at"]
    search_fields = ["team__name", "stripe_subscription_id", "stripe_event_id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status and lets operators
    re-queue failed events once the cause (e.g. an unresolved account) is
    fixed.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "stripe_event_id",
        "event_type",
        "payload",
        "processed_at",
        "retry_count",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["requeue_events"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "stripe_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.action(description="Re-queue selected unprocessed events")
    def requeue_events(self, request, queryset):
        from payments.tasks import process_webhook_event

        queued = 0
        for webhook in queryset.exclude(status="processed"):
            process_webhook_event.delay(str(webhook.id))
            queued += 1
        self.message_user(request, f"Queued {queued} webhook event(s)", messages.SUCCESS)

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False
