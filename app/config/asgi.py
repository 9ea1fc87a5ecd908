"""
ASGI config for the Django application.

Provided for ASGI servers (e.g. uvicorn); every view is synchronous and
runs in Django's thread pool.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
