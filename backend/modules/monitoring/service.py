"""Monitor lifecycle: CRUD workflows that keep the scheduler in step with the table."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import ValidationError

from .dto import MonitorSpec
from .models import Monitor
from .scheduler import MonitorScheduler, monitor_scheduler

logger = logging.getLogger("monitoring")
audit_logger = logging.getLogger("monitoring.audit")


class MonitorService:
    """Business logic for creating, updating, and deleting monitors."""

    def __init__(self, scheduler: MonitorScheduler | None = None) -> None:
        self._scheduler = scheduler

    @property
    def scheduler(self) -> MonitorScheduler:
        return self._scheduler or monitor_scheduler

    def queryset_for_request(self, request):
        queryset = Monitor.objects.all()
        organization_id = request.query_params.get("organization")
        if organization_id:
            try:
                queryset = queryset.filter(organization_id=UUID(organization_id))
            except ValueError:
                raise ValidationError({"organization": "Must be a valid UUID."}) from None
        return queryset.order_by("name")

    def create_monitor(self, *, request, serializer) -> Monitor:
        with transaction.atomic():
            monitor = serializer.save()
            audit_logger.info(
                "Monitor created",
                extra=self._audit_payload(monitor=monitor, user_id=self._user_id(request)),
            )

        # Dispatch rows must be committed before a worker can claim them.
        if monitor.is_active:
            self._schedule(monitor)
        return monitor

    def update_monitor(self, *, request, serializer) -> Monitor:
        was_active = serializer.instance.is_active
        with transaction.atomic():
            monitor = serializer.save()
            audit_logger.info(
                "Monitor updated",
                extra={
                    **self._audit_payload(monitor=monitor, user_id=self._user_id(request)),
                    "was_active": was_active,
                    "is_active": monitor.is_active,
                },
            )

        if monitor.is_active:
            # Re-registering replaces the previous snapshot so edits apply from now on.
            self._schedule(monitor)
        elif was_active:
            self.scheduler.unschedule(monitor.id)
        return monitor

    def delete_monitor(self, *, request, monitor: Monitor) -> None:
        self.scheduler.unschedule(monitor.id)
        audit_logger.info(
            "Monitor deleted",
            extra=self._audit_payload(monitor=monitor, user_id=self._user_id(request)),
        )
        monitor.delete()

    def _schedule(self, monitor: Monitor) -> None:
        logger.info(
            "Scheduling monitor",
            extra={"monitor_id": str(monitor.id), "url": monitor.url},
        )
        try:
            self.scheduler.schedule(MonitorSpec.from_model(monitor))
        except Exception as exc:  # noqa: BLE001
            if settings.CELERY_TASK_ALWAYS_EAGER:
                logger.warning(
                    "Failed to schedule monitor in eager mode (development)",
                    extra={
                        "monitor_id": str(monitor.id),
                        "error": str(exc),
                        "note": "Expected in development without Celery worker",
                    },
                )
            else:
                logger.error(
                    "Failed to schedule monitor",
                    extra={"monitor_id": str(monitor.id), "error": str(exc)},
                )
                raise

    @staticmethod
    def _user_id(request) -> Any:
        return getattr(getattr(request, "user", None), "id", None)

    @staticmethod
    def _audit_payload(*, monitor: Monitor, user_id: Any) -> dict[str, Any]:
        return {
            "organization_id": str(monitor.organization_id),
            "monitor_id": str(monitor.id),
            "url": monitor.url,
            "user_id": user_id,
        }


monitor_service = MonitorService()

__all__ = ["MonitorService", "monitor_service"]
