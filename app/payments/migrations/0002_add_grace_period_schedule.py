"""
Add celery-beat schedule for expiring subscription grace periods.

Runs payments.tasks.expire_grace_periods every hour so past-due teams lose
eligibility once their grace window has elapsed.
"""

from django.db import migrations


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for grace period expiry."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    PeriodicTask.objects.get_or_create(
        name="Expire Subscription Grace Periods",
        defaults={
            "task": "payments.tasks.expire_grace_periods",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Revokes eligibility for past-due teams whose grace period "
                "has ended."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name="Expire Subscription Grace Periods",
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
