"""Celery application for the monitoring pipeline.

Workers are started per queue so each pool keeps its own concurrency bound::

    celery -A app worker -Q monitor-checks,notifications -c 10
    celery -A app worker -Q summary-reconciliation -c 1
    celery -A app beat
"""

import logging
import os

from celery import Celery
from celery.signals import (
    task_failure,
    task_retry,
    worker_process_shutdown,
    worker_ready,
    worker_shutting_down,
)
from modules.core.settings import setup_settings_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "app.settings")

setup_settings_logging(logger_name="app.settings_loader.celery")

queue_logger = logging.getLogger("monitoring.queue")

celery_app = Celery("app")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()


@worker_ready.connect
def _log_worker_ready(sender=None, **kwargs):
    queue_logger.info(
        "Monitor check worker started",
        extra={"hostname": getattr(sender, "hostname", None)},
    )


@worker_shutting_down.connect
def _log_worker_shutdown(sig=None, how=None, exitcode=None, **kwargs):
    # Warm shutdown stops consuming and lets in-flight probes run to their timeout.
    queue_logger.info(
        "Worker shutting down gracefully",
        extra={"signal": sig, "how": how, "exitcode": exitcode},
    )


@worker_process_shutdown.connect
def _close_connections(pid=None, exitcode=None, **kwargs):
    from django.db import connections

    connections.close_all()
    queue_logger.info("Worker process closed connections", extra={"pid": pid})


@task_retry.connect
def _log_task_retry(request=None, reason=None, **kwargs):
    queue_logger.warning(
        "Task scheduled for retry",
        extra={
            "task_id": getattr(request, "id", None),
            "task": getattr(request, "task", None),
            "reason": str(reason),
        },
    )


@task_failure.connect
def _log_task_failure(sender=None, task_id=None, exception=None, **kwargs):
    queue_logger.error(
        "Task failed",
        extra={
            "task_id": task_id,
            "task": getattr(sender, "name", None),
            "error": str(exception),
        },
    )
