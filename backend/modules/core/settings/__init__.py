"""Shared settings helpers for UptimeWatch.

Centralizes common settings primitives (paths, env loader, base configs) so
`app.settings_base` and the environment overrides can import from a single
module rather than duplicating logic.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

import environ
from celery.schedules import crontab

from modules.core.settings.logger import SettingsLoggingContext, setup_settings_logging
from modules.core.settings.sentry import configure_sentry
from modules.core.settings_registry import get_installed_apps, get_middleware

# ---------------------------------------------------------------------------
# Base directories / env loader
# ---------------------------------------------------------------------------
# Path(__file__) -> backend/modules/core/settings/__init__.py; backend lives three levels up
BASE_DIR = Path(__file__).resolve().parents[3]
LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

_env = environ.Env()
_env_file = BASE_DIR / ".env"
if not _env_file.exists():
    _env_file = BASE_DIR.parent / ".env"
if _env_file.exists():
    environ.Env.read_env(_env_file)

MONITOR_CHECK_QUEUE = "monitor-checks"
NOTIFICATION_QUEUE = "notifications"
RECONCILIATION_QUEUE = "summary-reconciliation"


def get_env() -> environ.Env:
    """Return the singleton environ loader used across settings."""

    return _env


# ---------------------------------------------------------------------------
# Settings fragments
# ---------------------------------------------------------------------------


def build_default_database_config() -> dict[str, Any]:
    env = get_env()
    return {"default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}")}


def build_rest_framework_config() -> dict[str, Any]:
    return {
        "DEFAULT_AUTHENTICATION_CLASSES": (
            "rest_framework.authentication.SessionAuthentication",
        ),
        "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
        "EXCEPTION_HANDLER": "api.exception_handler.custom_exception_handler",
        "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
        "PAGE_SIZE": 50,
        "DEFAULT_THROTTLE_RATES": {
            "anon": "100/hour",
            "user": "1000/hour",
        },
    }


# name -> (level, filename, max size in MB); every file handler keeps 5 backups.
LOG_FILES: dict[str, tuple[str, str, int]] = {
    "file_app": ("INFO", "uptimewatch.log", 5),
    "file_error": ("ERROR", "error.log", 5),
    "file_request": ("INFO", "request.log", 5),
    "file_health": ("INFO", "health.log", 10),
    "file_checks": ("INFO", "checks.log", 20),
    "file_audit": ("INFO", "audit.log", 5),
    "file_performance": ("INFO", "performance.log", 5),
    "file_summary": ("INFO", "summary.log", 5),
    "file_queue": ("INFO", "queue.log", 5),
}

# logger -> (level, handlers); none of them propagate to root.
LOGGER_ROUTES: dict[str, tuple[str, tuple[str, ...]]] = {
    "django": ("INFO", ("console", "file_app", "file_error")),
    "django.request": ("ERROR", ("console", "file_app", "file_error")),
    "celery": ("INFO", ("console", "file_app", "file_error")),
    "api": ("INFO", ("console", "file_app", "file_error")),
    "api.requests": ("INFO", ("file_request",)),
    "api.health": ("INFO", ("file_health",)),
    "monitoring": ("INFO", ("console", "file_checks", "file_error")),
    "monitoring.audit": ("INFO", ("console", "file_audit")),
    "monitoring.performance": ("INFO", ("file_performance",)),
    "monitoring.summary": ("INFO", ("console", "file_summary", "file_error")),
    "monitoring.queue": ("INFO", ("file_queue", "file_error")),
}


def _file_handler(level: str, path: Path, max_mb: int) -> dict[str, Any]:
    return {
        "level": level,
        "class": "logging.handlers.RotatingFileHandler",
        "filename": path,
        "maxBytes": max_mb * 1024 * 1024,
        "backupCount": 5,
        "formatter": "verbose",
        "filters": ["request_id"],
    }


def build_logging_config(log_dir: Path | None = None) -> dict[str, Any]:
    dir_path = log_dir or LOG_DIR

    handlers: dict[str, Any] = {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "filters": ["request_id"],
        },
    }
    for name, (level, filename, max_mb) in LOG_FILES.items():
        handlers[name] = _file_handler(level, dir_path / filename, max_mb)
    # Errors already land in error.log; keep the general file below ERROR.
    handlers["file_app"]["filters"].append("max_warning")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": (
                    "[{levelname}] {asctime} [{request_id}] {name} "
                    "{module}.{funcName}:{lineno} - {message}"
                ),
                "style": "{",
            },
        },
        "filters": {
            "max_warning": {"()": "app.logging_filters.MaxLevelFilter", "level": "WARNING"},
            "request_id": {"()": "app.logging_filters.RequestIDFilter"},
        },
        "handlers": handlers,
        "loggers": {
            name: {"level": level, "handlers": list(targets), "propagate": False}
            for name, (level, targets) in LOGGER_ROUTES.items()
        },
        "root": {"handlers": ["console", "file_app"], "level": "INFO"},
    }


def build_celery_config(
    env: environ.Env | None = None,
    *,
    timezone: str = "UTC",
) -> Mapping[str, Any]:
    env = env or get_env()
    redis_url = env("REDIS_URL", default="redis://127.0.0.1:6379/0")
    result_backend_default = redis_url[:-1] + "1" if redis_url.endswith("/0") else redis_url

    celery_broker_url = env("CELERY_BROKER_URL", default=redis_url)
    celery_result_backend = env("CELERY_RESULT_BACKEND", default=result_backend_default)
    reconciliation_hour = env.int("RECONCILIATION_HOUR", default=2)

    return {
        "REDIS_URL": redis_url,
        "CELERY_BROKER_URL": celery_broker_url,
        "CELERY_RESULT_BACKEND": celery_result_backend,
        "CELERY_TIMEZONE": timezone,
        "CELERY_TASK_TRACK_STARTED": True,
        "CELERY_TASK_ALWAYS_EAGER": env.bool("CELERY_TASK_ALWAYS_EAGER", default=False),
        "CELERY_ACCEPT_CONTENT": ["json"],
        "CELERY_TASK_SERIALIZER": "json",
        "CELERY_RESULT_SERIALIZER": "json",
        "CELERY_RESULT_EXPIRES": timedelta(days=1),
        "CELERY_TASK_ACKS_LATE": True,
        "CELERY_TASK_REJECT_ON_WORKER_LOST": True,
        "CELERY_WORKER_PREFETCH_MULTIPLIER": 1,
        "CELERY_WORKER_CONCURRENCY": env.int("MONITOR_CHECK_CONCURRENCY", default=10),
        "CELERY_TASK_DEFAULT_QUEUE": MONITOR_CHECK_QUEUE,
        "CELERY_TASK_ROUTES": {
            "monitoring.tasks.run_monitor_check": {"queue": MONITOR_CHECK_QUEUE},
            "monitoring.tasks.dispatch_recurring_check": {"queue": MONITOR_CHECK_QUEUE},
            "monitoring.tasks.apply_daily_summary": {"queue": MONITOR_CHECK_QUEUE},
            "monitoring.tasks.notify_monitor_failure": {"queue": NOTIFICATION_QUEUE},
            "monitoring.tasks.reconcile_daily_summaries": {"queue": RECONCILIATION_QUEUE},
        },
        "CELERY_BEAT_SCHEDULER": "django_celery_beat.schedulers:DatabaseScheduler",
        "CELERY_BEAT_SCHEDULE": {
            "monitoring.reconcile_daily_summaries": {
                "task": "monitoring.tasks.reconcile_daily_summaries",
                "schedule": crontab(hour=reconciliation_hour, minute=0),
                "options": {"queue": RECONCILIATION_QUEUE},
            }
        },
    }


def build_monitoring_config(env: environ.Env | None = None) -> Mapping[str, Any]:
    env = env or get_env()
    return {
        "MONITOR_USER_AGENT": env("MONITOR_USER_AGENT", default="UptimeWatch/1.0"),
        "CHECK_TASK_MAX_RETRIES": env.int("CHECK_TASK_MAX_RETRIES", default=3),
        "CHECK_RETRY_BACKOFF_SECONDS": env.int("CHECK_RETRY_BACKOFF_SECONDS", default=2),
        "FAILURE_WINDOW_HOURS": env.int("FAILURE_WINDOW_HOURS", default=24),
        "RECONCILIATION_BATCH_SIZE": env.int("RECONCILIATION_BATCH_SIZE", default=20),
        "RECONCILIATION_BATCH_PAUSE_SECONDS": env.float(
            "RECONCILIATION_BATCH_PAUSE_SECONDS", default=1.0
        ),
    }


__all__ = [
    "BASE_DIR",
    "LOG_DIR",
    "MONITOR_CHECK_QUEUE",
    "NOTIFICATION_QUEUE",
    "RECONCILIATION_QUEUE",
    "get_env",
    "get_middleware",
    "get_installed_apps",
    "build_default_database_config",
    "build_rest_framework_config",
    "build_logging_config",
    "build_celery_config",
    "build_monitoring_config",
    "configure_sentry",
    "setup_settings_logging",
    "SettingsLoggingContext",
]
