"""Celery entry points for the monitoring pipeline."""

from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any

from celery import shared_task
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from modules.core.settings import RECONCILIATION_QUEUE

from . import reconciliation
from .aggregator import daily_aggregator
from .dto import CheckResult, MonitorSpec
from .models import CheckLog, DispatchKind, Monitor
from .notifications import emit_failure_event
from .scheduler import monitor_scheduler
from .worker import CheckWorker

logger = logging.getLogger("monitoring")
audit_logger = logging.getLogger("monitoring.audit")
summary_logger = logging.getLogger("monitoring.summary")


def _queue_summary_update(log: CheckLog) -> None:
    apply_daily_summary.delay(log.pk)


check_worker = CheckWorker(
    summary_updater=_queue_summary_update,
    notifier=emit_failure_event,
)


@shared_task(
    name="monitoring.tasks.run_monitor_check",
    bind=True,
    acks_late=True,
    soft_time_limit=150,
)
def run_monitor_check(self, dispatch_id: int) -> dict[str, Any]:
    """Process one dispatch; raw-log write failures retry with exponential backoff."""

    retries = self.request.retries
    try:
        log = check_worker.process(dispatch_id, resume=retries > 0)
    except DatabaseError as exc:
        max_retries = settings.CHECK_TASK_MAX_RETRIES
        logger.error(
            "Monitor check attempt failed",
            extra={
                "dispatch_id": dispatch_id,
                "task_id": getattr(self.request, "id", None),
                "retry_count": retries,
                "max_retries": max_retries,
                "error": str(exc),
            },
        )
        if retries >= max_retries:
            logger.critical(
                "Monitor check permanently failed after max retries",
                extra={"dispatch_id": dispatch_id, "error": str(exc)},
            )
            check_worker.mark_failed(dispatch_id, str(exc))
            raise
        countdown = settings.CHECK_RETRY_BACKOFF_SECONDS * (2**retries)
        raise self.retry(exc=exc, countdown=countdown, max_retries=max_retries)

    if log is None:
        return {"dispatch_id": dispatch_id, "executed": False}
    return {
        "dispatch_id": dispatch_id,
        "executed": True,
        "log_id": log.pk,
        "status": log.status,
    }


@shared_task(name="monitoring.tasks.dispatch_recurring_check")
def dispatch_recurring_check(spec: dict[str, Any]) -> int | None:
    """Beat entry point: enqueue the recurring dispatch carried by a registration."""

    snapshot = MonitorSpec.from_payload(spec)
    monitor = Monitor.objects.filter(pk=snapshot.id).only("id", "is_active").first()
    if monitor is None or not monitor.is_active:
        audit_logger.warning(
            "Recurring registration found for missing or inactive monitor; removing",
            extra={"monitor_id": str(snapshot.id), "exists": monitor is not None},
        )
        monitor_scheduler.unschedule(snapshot.id)
        return None

    dispatch = monitor_scheduler.enqueue(snapshot, DispatchKind.RECURRING)
    return dispatch.pk


@shared_task(name="monitoring.tasks.apply_daily_summary")
def apply_daily_summary(log_id: int) -> bool:
    """Best-effort incremental summary update for one stored log."""

    log = CheckLog.objects.filter(pk=log_id).first()
    if log is None:
        summary_logger.warning(
            "Check log vanished before summary update",
            extra={"log_id": log_id},
        )
        return False

    summary = daily_aggregator.apply_incremental(
        log.monitor_id,
        log.organization_id,
        CheckResult.from_model(log),
        log.checked_at,
    )
    return summary is not None


@shared_task(name="monitoring.tasks.notify_monitor_failure")
def notify_monitor_failure(event: dict[str, Any]) -> None:
    """Delivery stub: the notification system consumes these records from the logs."""

    logger.error(
        "Monitor failure threshold reached",
        extra={**event, "notified_at": timezone.now().isoformat()},
    )

    audit_logger.critical(
        "Monitor requires attention",
        extra={
            "monitor_id": event.get("monitor_id"),
            "organization_id": event.get("organization_id"),
            "contacts": event.get("contacts"),
            "failures": event.get("failures"),
        },
    )


@shared_task(
    bind=True,
    name="monitoring.tasks.reconcile_daily_summaries",
    queue=RECONCILIATION_QUEUE,
)
def reconcile_daily_summaries(self, date: str | None = None) -> dict[str, Any]:
    """Nightly reconciliation; ``date`` is an ISO date, defaulting to yesterday."""

    day = date_type.fromisoformat(date) if date else None
    report = reconciliation.reconcile_daily_summaries(day)
    summary_logger.info(
        "Reconciliation task finished",
        extra={**report.to_dict(), "task_id": getattr(self.request, "id", None)},
    )
    return report.to_dict()


__all__ = [
    "apply_daily_summary",
    "check_worker",
    "dispatch_recurring_check",
    "notify_monitor_failure",
    "reconcile_daily_summaries",
    "run_monitor_check",
]
