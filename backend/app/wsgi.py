"""
WSGI entry point for the UptimeWatch API.

Exposes the module-level ``application`` callable; settings are routed by
``app.settings`` from DJANGO_ENV.
"""

import os

from django.core.wsgi import get_wsgi_application
from modules.core.settings import setup_settings_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app.settings")

setup_settings_logging(logger_name="app.settings_loader.wsgi")

application = get_wsgi_application()
