"""
Settings shared by every UptimeWatch environment.

Fragments come from ``modules.core.settings`` builders; the development,
production and test modules import this one and override what differs.
"""

from modules.core.settings import (
    BASE_DIR,
    LOG_DIR,
    build_celery_config,
    build_default_database_config,
    build_logging_config,
    build_monitoring_config,
    build_rest_framework_config,
    get_env,
    get_installed_apps,
    get_middleware,
)

env = get_env()

INSTALLED_APPS = get_installed_apps()
MIDDLEWARE = list(get_middleware())
ROOT_URLCONF = "app.urls"
WSGI_APPLICATION = "app.wsgi.application"
ADMIN_URL = env("ADMIN_URL", default="admin/")

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# -------------------------------------------------------------------
# Database
# -------------------------------------------------------------------
DATABASES = build_default_database_config()
CONN_MAX_AGE = env.int("DB_CONN_MAX_AGE", default=600)
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -------------------------------------------------------------------
# Time
# -------------------------------------------------------------------
# Daily summaries are bucketed by local midnight in this zone.
TIME_ZONE = env("TIME_ZONE", default="UTC")
USE_TZ = True
LANGUAGE_CODE = "en-us"
USE_I18N = True

# -------------------------------------------------------------------
# Static files (admin only)
# -------------------------------------------------------------------
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# -------------------------------------------------------------------
# Celery: broker, queues, routes and the nightly reconciliation entry
# -------------------------------------------------------------------
_celery = build_celery_config(env, timezone=TIME_ZONE)
REDIS_URL = _celery["REDIS_URL"]
CELERY_BROKER_URL = _celery["CELERY_BROKER_URL"]
CELERY_RESULT_BACKEND = _celery["CELERY_RESULT_BACKEND"]
CELERY_RESULT_EXPIRES = _celery["CELERY_RESULT_EXPIRES"]
CELERY_TIMEZONE = _celery["CELERY_TIMEZONE"]
CELERY_ACCEPT_CONTENT = _celery["CELERY_ACCEPT_CONTENT"]
CELERY_TASK_SERIALIZER = _celery["CELERY_TASK_SERIALIZER"]
CELERY_RESULT_SERIALIZER = _celery["CELERY_RESULT_SERIALIZER"]
CELERY_TASK_ALWAYS_EAGER = _celery["CELERY_TASK_ALWAYS_EAGER"]
CELERY_TASK_TRACK_STARTED = _celery["CELERY_TASK_TRACK_STARTED"]
CELERY_TASK_ACKS_LATE = _celery["CELERY_TASK_ACKS_LATE"]
CELERY_TASK_REJECT_ON_WORKER_LOST = _celery["CELERY_TASK_REJECT_ON_WORKER_LOST"]
CELERY_TASK_DEFAULT_QUEUE = _celery["CELERY_TASK_DEFAULT_QUEUE"]
CELERY_TASK_ROUTES = _celery["CELERY_TASK_ROUTES"]
CELERY_WORKER_PREFETCH_MULTIPLIER = _celery["CELERY_WORKER_PREFETCH_MULTIPLIER"]
CELERY_WORKER_CONCURRENCY = _celery["CELERY_WORKER_CONCURRENCY"]
CELERY_BEAT_SCHEDULER = _celery["CELERY_BEAT_SCHEDULER"]
CELERY_BEAT_SCHEDULE = _celery["CELERY_BEAT_SCHEDULE"]

# -------------------------------------------------------------------
# Monitoring pipeline
# -------------------------------------------------------------------
_monitoring = build_monitoring_config(env)
MONITOR_USER_AGENT = _monitoring["MONITOR_USER_AGENT"]
CHECK_TASK_MAX_RETRIES = _monitoring["CHECK_TASK_MAX_RETRIES"]
CHECK_RETRY_BACKOFF_SECONDS = _monitoring["CHECK_RETRY_BACKOFF_SECONDS"]
FAILURE_WINDOW_HOURS = _monitoring["FAILURE_WINDOW_HOURS"]
RECONCILIATION_BATCH_SIZE = _monitoring["RECONCILIATION_BATCH_SIZE"]
RECONCILIATION_BATCH_PAUSE_SECONDS = _monitoring["RECONCILIATION_BATCH_PAUSE_SECONDS"]

REST_FRAMEWORK = build_rest_framework_config()
LOGGING = build_logging_config(LOG_DIR)
