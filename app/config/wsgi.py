"""
WSGI config for the Django application.

Exposes the WSGI callable as a module-level variable named `application`.
Stripe webhooks and the payments API are plain synchronous views, so a WSGI
server (e.g. gunicorn) is the primary deployment target.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
