"""Liveness, readiness and metrics endpoints.

Each probe is a small function returning a status string; the views combine
them and answer 503 when any required probe fails. Probes never raise.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from django.conf import settings
from django.db import connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from api.logging_utils import sanitize_log_value

logger = logging.getLogger("api.health")

INSPECT_TIMEOUT_SECONDS = 1.0


def _celery_app():
    from app.celery import celery_app

    return celery_app


def probe_database() -> str:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except Exception as exc:
        logger.error("Database probe failed: %s", sanitize_log_value(str(exc)))
        return "error"
    return "ok"


def probe_broker() -> str:
    try:
        _celery_app().connection().ensure_connection(max_retries=1)
    except Exception as exc:
        logger.error("Broker probe failed: %s", sanitize_log_value(str(exc)))
        return "error"
    return "ok"


def probe_workers() -> tuple[str, bool]:
    try:
        active = _celery_app().control.inspect(timeout=INSPECT_TIMEOUT_SECONDS).active()
    except Exception as exc:
        logger.error("Worker inspection failed: %s", exc)
        return "error", False
    if not active:
        return "no active workers", False
    return f"{len(active)} active", True


def probe_migrations() -> tuple[str, bool]:
    try:
        from django.db.migrations.executor import MigrationExecutor

        executor = MigrationExecutor(connection)
        plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
    except Exception as exc:
        logger.error("Migration inspection failed: %s", exc)
        return "error", False
    if plan:
        return f"{len(plan)} unapplied", False
    return "up to date", True


def _respond(label: str, request, body: dict, healthy: bool) -> Response:
    http_status = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    logger.info(
        "%s: %s",
        label,
        body.get("status"),
        extra={
            "path": request.path,
            "remote_addr": request.META.get("REMOTE_ADDR", "unknown"),
            "status_code": http_status,
            "result": sanitize_log_value(body),
        },
    )
    return Response(body, status=http_status)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Liveness: the database answers and the broker accepts a connection."""

    body = {
        "timestamp": timezone.now().isoformat(),
        "database": probe_database(),
        "redis": probe_broker(),
    }
    healthy = body["database"] == "ok" and body["redis"] == "ok"
    body["status"] = "healthy" if healthy else "unhealthy"
    return _respond("Health check", request, body, healthy)


@api_view(["GET"])
@permission_classes([AllowAny])
def readiness_check(request):
    """Readiness: liveness plus at least one consuming worker and no pending migrations."""

    body = {
        "timestamp": timezone.now().isoformat(),
        "database": probe_database(),
        "redis": probe_broker(),
    }
    body["celery_workers"], workers_ok = probe_workers()
    body["migrations"], migrations_ok = probe_migrations()
    ready = body["database"] == "ok" and body["redis"] == "ok" and workers_ok and migrations_ok
    body["status"] = "ready" if ready else "not_ready"
    return _respond("Readiness check", request, body, ready)


def _monitor_counts() -> dict:
    from modules.monitoring.models import Monitor

    return {
        "total": Monitor.objects.count(),
        "active": Monitor.objects.filter(is_active=True).count(),
    }


def _dispatch_counts() -> dict:
    from modules.monitoring.scheduler import monitor_scheduler

    return monitor_scheduler.queue_stats()


def _recent_activity() -> dict:
    from modules.monitoring.models import CheckLog, CheckStatus

    recent = CheckLog.objects.filter(checked_at__gte=timezone.now() - timedelta(hours=1))
    return {
        "checks_last_hour": recent.count(),
        "failures_last_hour": recent.exclude(status=CheckStatus.SUCCESS).count(),
    }


def _celery_counts() -> dict:
    inspector = _celery_app().control.inspect(timeout=INSPECT_TIMEOUT_SECONDS)
    active = inspector.active() or {}
    scheduled = inspector.scheduled() or {}
    return {
        "workers": len(active),
        "active_tasks": sum(len(tasks) for tasks in active.values()),
        "scheduled_tasks": sum(len(tasks) for tasks in scheduled.values()),
    }


METRIC_SECTIONS: dict[str, Callable[[], dict]] = {
    "monitors": _monitor_counts,
    "dispatches": _dispatch_counts,
    "activity": _recent_activity,
    "celery": _celery_counts,
}


@api_view(["GET"])
@permission_classes([AllowAny])
def metrics(request):
    """Counters for dashboards; a failing section reports its error inline."""

    body = {
        "timestamp": timezone.now().isoformat(),
        "environment": getattr(settings, "SENTRY_ENVIRONMENT", "unknown"),
        "debug": settings.DEBUG,
    }
    for section, collect in METRIC_SECTIONS.items():
        try:
            body[section] = collect()
        except Exception as exc:
            logger.warning("Metrics section %s failed: %s", section, exc)
            body[section] = {"error": str(exc)}
    body["status"] = "ok"
    return _respond("Metrics snapshot", request, body, True)
