"""
Celery configuration for the Django application.

Celery runs:
- Stripe webhook processing (payments.tasks.process_webhook_event)
- Periodic jobs scheduled via django-celery-beat:
    - payments.tasks.expire_grace_periods (hourly, created by migration)
    - payments.tasks.retry_failed_webhooks / cleanup_stuck_webhooks
      (schedule in the admin as needed)

Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import process_webhook_event

    process_webhook_event.delay(str(webhook_event.id))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
