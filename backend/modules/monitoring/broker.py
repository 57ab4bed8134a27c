"""Queue client seam used by the scheduler.

``DispatchBroker`` is the small surface the scheduler needs from a job queue.
``CeleryDispatchBroker`` implements it with Celery for one-off dispatches and
django-celery-beat periodic tasks for recurring registrations.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from django.db import transaction
from django.utils import timezone
from django_celery_beat.models import IntervalSchedule, PeriodicTask

from modules.core.settings import MONITOR_CHECK_QUEUE

from .models import Dispatch

queue_logger = logging.getLogger("monitoring.queue")

RECURRING_TASK_NAME = "monitoring.tasks.dispatch_recurring_check"


class DispatchBroker(Protocol):
    def publish(self, dispatch: Dispatch) -> str:
        """Hand ``dispatch`` to the workers and return the queue's task id."""

    def revoke(self, task_ids: Iterable[str]) -> None:
        """Best-effort removal of queued messages that have not started."""

    def register_recurring(self, key: str, every_minutes: int, payload: Mapping[str, Any]) -> None:
        """Create or replace the recurring registration stored under ``key``."""

    def unregister_recurring(self, key: str) -> bool:
        """Remove the registration under ``key``; return whether one existed."""

    def has_recurring(self, key: str) -> bool: ...


class CeleryDispatchBroker:
    """Celery + django-celery-beat implementation of :class:`DispatchBroker`."""

    def publish(self, dispatch: Dispatch) -> str:
        from .tasks import run_monitor_check  # Local import to avoid a cycle with tasks

        created_ms = int(dispatch.created_at.timestamp() * 1000)
        task_id = f"{dispatch.monitor_id}-{created_ms}-{dispatch.pk}"
        run_monitor_check.apply_async(
            args=(dispatch.pk,),
            task_id=task_id,
            queue=MONITOR_CHECK_QUEUE,
        )
        return task_id

    def revoke(self, task_ids: Iterable[str]) -> None:
        from app.celery import celery_app  # Local import; the Celery app imports settings

        ids = [task_id for task_id in task_ids if task_id]
        if not ids:
            return
        try:
            celery_app.control.revoke(ids)
        except Exception as exc:  # noqa: BLE001
            # Cancelled dispatches are skipped by the worker claim anyway.
            queue_logger.warning(
                "Failed to revoke queued tasks",
                extra={"task_ids": ids, "error": str(exc)},
            )

    def register_recurring(self, key: str, every_minutes: int, payload: Mapping[str, Any]) -> None:
        with transaction.atomic():
            schedule, _ = IntervalSchedule.objects.get_or_create(
                every=every_minutes,
                period=IntervalSchedule.MINUTES,
            )
            PeriodicTask.objects.update_or_create(
                name=key,
                defaults={
                    "interval": schedule,
                    "crontab": None,
                    "task": RECURRING_TASK_NAME,
                    "kwargs": json.dumps({"spec": dict(payload)}),
                    "queue": MONITOR_CHECK_QUEUE,
                    "enabled": True,
                    "start_time": timezone.now(),
                },
            )

    def unregister_recurring(self, key: str) -> bool:
        deleted, _ = PeriodicTask.objects.filter(name=key).delete()
        return deleted > 0

    def has_recurring(self, key: str) -> bool:
        return PeriodicTask.objects.filter(name=key, enabled=True).exists()


__all__ = ["CeleryDispatchBroker", "DispatchBroker", "RECURRING_TASK_NAME"]
