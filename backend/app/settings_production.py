"""
Production settings for UptimeWatch.

Refuses to start without a real SECRET_KEY; HTTPS hardening is on unless
``ENFORCE_HTTPS=false`` (TLS terminated elsewhere).
"""

from django.core.exceptions import ImproperlyConfigured
from modules.core.settings import configure_sentry

from app.settings_base import *  # noqa: F403, F401

DEBUG = env.bool("DEBUG", default=False)  # noqa: F405

SECRET_KEY = env("SECRET_KEY", default="")  # noqa: F405
if len(SECRET_KEY) < 50 or SECRET_KEY.startswith("django-insecure"):
    raise ImproperlyConfigured(
        "SECRET_KEY must be set to a random value of at least 50 characters in production."
    )

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["uptimewatch.local"])  # noqa: F405
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])  # noqa: F405

ENFORCE_HTTPS = env.bool("ENFORCE_HTTPS", default=True)  # noqa: F405
SECURE_SSL_REDIRECT = ENFORCE_HTTPS
SESSION_COOKIE_SECURE = ENFORCE_HTTPS
CSRF_COOKIE_SECURE = ENFORCE_HTTPS
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_HSTS_SECONDS = 31536000 if ENFORCE_HTTPS else 0
SECURE_HSTS_INCLUDE_SUBDOMAINS = ENFORCE_HTTPS
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"

_sentry = configure_sentry(env)  # noqa: F405
SENTRY_DSN = _sentry["dsn"]
SENTRY_ENVIRONMENT = _sentry["environment"]
SENTRY_TRACES_SAMPLE_RATE = _sentry["traces_sample_rate"]
