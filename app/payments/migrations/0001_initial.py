import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


SUBSCRIPTION_STATUS_CHOICES = [
    ("none", "None"),
    ("active", "Active"),
    ("past_due", "Past Due"),
    ("cancelled", "Cancelled"),
    ("incomplete", "Incomplete"),
    ("trialing", "Trialing"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("competitions", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ConnectedAccount",
            fields=[
                *_timestamps(),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                _uuid_pk(),
                (
                    "stripe_account_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "onboarding_status",
                    models.CharField(
                        choices=[
                            ("not_started", "Not Started"),
                            ("incomplete", "Incomplete"),
                            ("verified", "Verified"),
                            ("blocked", "Blocked"),
                        ],
                        db_index=True,
                        default="not_started",
                        help_text="Current onboarding status",
                        max_length=20,
                    ),
                ),
                (
                    "payout_status",
                    models.CharField(
                        choices=[
                            ("none", "None"),
                            ("pending", "Pending"),
                            ("enabled", "Enabled"),
                            ("blocked", "Blocked"),
                        ],
                        db_index=True,
                        default="none",
                        help_text="Current payout status",
                        max_length=20,
                    ),
                ),
                (
                    "charges_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled charges for this account",
                    ),
                ),
                (
                    "payouts_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled payouts for this account",
                    ),
                ),
                (
                    "details_submitted",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the owner has submitted onboarding details",
                    ),
                ),
                (
                    "disabled_reason",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Stripe requirements.disabled_reason",
                        max_length=255,
                    ),
                ),
                (
                    "onboarded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the account first became verified",
                        null=True,
                    ),
                ),
                (
                    "status_synced_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Provider timestamp of the last applied status snapshot",
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON metadata",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        help_text="Competition owner this account pays out to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="connected_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Connected Account",
                "verbose_name_plural": "Connected Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "stripe_event_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'invoice.payment_failed')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe (JSON)"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0,
                        help_text="Number of processing attempts",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["event_type", "created_at"],
                        name="webhook_type_created_idx",
                    ),
                    models.Index(
                        fields=["status", "retry_count"],
                        name="webhook_status_retry_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentTransaction",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("entry_fee", "Entry Fee"),
                            ("subscription", "Subscription"),
                            ("refund", "Refund"),
                        ],
                        db_index=True,
                        help_text="What the payment is for",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("partially_refunded", "Partially Refunded"),
                        ],
                        db_index=True,
                        default="succeeded",
                        help_text="Settlement status",
                        max_length=20,
                    ),
                ),
                ("amount_cents", models.BigIntegerField(help_text="Total amount in cents")),
                (
                    "platform_fee_cents",
                    models.BigIntegerField(default=0, help_text="Portion kept by the platform"),
                ),
                (
                    "net_to_owner_cents",
                    models.BigIntegerField(
                        default=0, help_text="Portion routed to the organizer"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "stripe_checkout_session_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe Checkout Session ID (cs_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "stripe_invoice_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Stripe Invoice ID (in_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Event ID (evt_xxx) that produced this row",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "refunded_amount_cents",
                    models.BigIntegerField(default=0, help_text="Total refunded so far"),
                ),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the last refund was issued",
                        null=True,
                    ),
                ),
                (
                    "stripe_created_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Provider timestamp of the originating event",
                        null=True,
                    ),
                ),
                (
                    "description",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "competition",
                    models.ForeignKey(
                        help_text="Competition the payment belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="competitions.competition",
                    ),
                ),
                (
                    "payee",
                    models.ForeignKey(
                        blank=True,
                        help_text="Organizer receiving the net amount",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="received_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "team",
                    models.ForeignKey(
                        help_text="Team that made the payment",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="competitions.team",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Transaction",
                "verbose_name_plural": "Payment Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["team", "transaction_type"],
                        name="txn_team_type_idx",
                    ),
                    models.Index(
                        fields=["competition", "created_at"],
                        name="txn_competition_created_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(
                            ("transaction_type", "refund"),
                            (
                                "amount_cents",
                                models.F("platform_fee_cents")
                                + models.F("net_to_owner_cents"),
                            ),
                            _connector="OR",
                        ),
                        name="transaction_split_sums_to_amount",
                    ),
                    models.CheckConstraint(
                        check=models.Q(("amount_cents__gte", 0)),
                        name="transaction_amount_non_negative",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("stripe_checkout_session_id__isnull", False)),
                        fields=("stripe_checkout_session_id", "transaction_type"),
                        name="unique_transaction_per_session_type",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("stripe_invoice_id__isnull", False),
                            ("transaction_type", "subscription"),
                        ),
                        fields=("stripe_invoice_id",),
                        name="unique_subscription_transaction_per_invoice",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SubscriptionEvent",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "stripe_subscription_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Stripe Subscription ID (sub_xxx) at the time of the change",
                        max_length=255,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("created", "Created"),
                            ("renewed", "Renewed"),
                            ("payment_failed", "Payment Failed"),
                            ("cancelled", "Cancelled"),
                            ("past_due", "Past Due"),
                            ("grace_period_started", "Grace Period Started"),
                            ("reactivated", "Reactivated"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                (
                    "old_status",
                    models.CharField(choices=SUBSCRIPTION_STATUS_CHOICES, max_length=20),
                ),
                (
                    "new_status",
                    models.CharField(choices=SUBSCRIPTION_STATUS_CHOICES, max_length=20),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Event ID (evt_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "team",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subscription_events",
                        to="competitions.team",
                    ),
                ),
            ],
            options={
                "verbose_name": "Subscription Event",
                "verbose_name_plural": "Subscription Events",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["team", "created_at"],
                        name="sub_event_team_created_idx",
                    ),
                ],
            },
        ),
    ]
