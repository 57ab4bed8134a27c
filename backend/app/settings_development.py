"""
Development settings for UptimeWatch.

Local work without a Celery worker: tasks run inline unless
``CELERY_TASK_ALWAYS_EAGER=false`` is exported alongside a running worker and beat.
"""

from modules.core.settings import configure_sentry

from app.settings_base import *  # noqa: F403, F401

DEBUG = True

SECRET_KEY = env(  # noqa: F405
    "SECRET_KEY", default="django-insecure-uptimewatch-development-only"
)

ALLOWED_HOSTS = ["localhost", "127.0.0.1", ".localhost", "uptimewatch.local"]

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=True)  # noqa: F405
CELERY_TASK_EAGER_PROPAGATES = True

# Schedule and summary decisions are the interesting part while developing.
for _name in ("monitoring.audit", "monitoring.summary", "monitoring.queue"):
    LOGGING["loggers"][_name]["level"] = "DEBUG"  # noqa: F405

_sentry = configure_sentry(env, default_environment="development")  # noqa: F405
SENTRY_DSN = _sentry["dsn"]
SENTRY_ENVIRONMENT = _sentry["environment"]
SENTRY_TRACES_SAMPLE_RATE = _sentry["traces_sample_rate"]
