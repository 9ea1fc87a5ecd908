"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]
    # DEBUG is off without an env file; the test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False
    # Webhook tasks are asserted on directly; never reach a broker
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.STRIPE_WEBHOOK_SECRET = "whsec_test"
    settings.STRIPE_MONTHLY_DUES_PRICE_ID = "price_dues_test"
    settings.FRONTEND_URL = "https://app.example.com"
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full webhook-to-ledger workflows)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_fees.py, test_state_machines.py, test_models.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_handlers.py",
        "test_ledger.py",
        "test_onboarding_service.py",
        "test_subscription_service.py",
        "test_checkout_service.py",
        "test_optimistic_locking.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_managers.py",
        "test_fees.py",
        "test_onboarding_state_machine.py",
        "test_subscription_state_machine.py",
        "test_checkout.py",
        "test_events.py",
        "test_stripe_adapter.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern == filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern == filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern == filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
