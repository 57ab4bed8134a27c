"""Settings router for UptimeWatch.

``DJANGO_ENV`` picks development or production; tests point pytest at
``app.settings_test`` directly.
"""

from modules.core.settings import setup_settings_logging

logging_context = setup_settings_logging()
settings_logger = logging_context.logger
environment = logging_context.environment

if environment == "development":
    from app.settings_development import *  # noqa: F403, F401
else:
    from app.settings_production import *  # noqa: F403, F401

settings_logger.info(
    "Settings ready: DEBUG=%s, eager Celery=%s, Sentry=%s",
    DEBUG,  # noqa: F405
    CELERY_TASK_ALWAYS_EAGER,  # noqa: F405
    "on" if SENTRY_DSN else "off",  # noqa: F405
)
