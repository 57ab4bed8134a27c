"""Recurring dispatch registration and pending-dispatch bookkeeping per monitor."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from .broker import CeleryDispatchBroker, DispatchBroker
from .dto import MonitorSpec
from .models import Dispatch, DispatchKind, DispatchStatus

audit_logger = logging.getLogger("monitoring.audit")
queue_logger = logging.getLogger("monitoring.queue")


def interval_minutes(check_interval: int) -> int:
    """Minute cadence for a check interval in seconds.

    Whole minutes only: 180 s and 200 s both run every 3 minutes.
    """

    return max(1, int(check_interval) // 60)


def recurring_key(monitor_id: UUID | str) -> str:
    return f"recurring-{monitor_id}"


class MonitorScheduler:
    """Registers, replaces and removes a monitor's recurring dispatch."""

    def __init__(self, broker: DispatchBroker | None = None) -> None:
        self._broker = broker

    @property
    def broker(self) -> DispatchBroker:
        if self._broker is None:
            self._broker = CeleryDispatchBroker()
        return self._broker

    def schedule(self, spec: MonitorSpec) -> Dispatch | None:
        """(Re)register the recurring dispatch and enqueue one immediate check."""

        if not spec.is_active:
            audit_logger.info(
                "Skipping schedule for inactive monitor",
                extra={"monitor_id": str(spec.id)},
            )
            return None

        key = recurring_key(spec.id)
        minutes = interval_minutes(spec.check_interval)
        self.broker.register_recurring(key, minutes, spec.to_payload())

        audit_logger.info(
            "Monitor scheduled",
            extra={
                "monitor_id": str(spec.id),
                "organization_id": str(spec.organization_id),
                "recurring_key": key,
                "check_interval": spec.check_interval,
                "interval_minutes": minutes,
            },
        )

        return self.enqueue(spec, DispatchKind.ADHOC)

    def enqueue(
        self,
        spec: MonitorSpec,
        kind: str = DispatchKind.ADHOC,
        *,
        created_at: datetime | None = None,
    ) -> Dispatch:
        dispatch = Dispatch.objects.create(
            monitor_id=spec.id,
            kind=kind,
            payload=spec.to_payload(),
            created_at=created_at or timezone.now(),
        )
        task_id = self.broker.publish(dispatch)
        # Only touch task_id; an eager worker may already have moved the status on.
        Dispatch.objects.filter(pk=dispatch.pk).update(task_id=task_id)
        dispatch.task_id = task_id

        queue_logger.info(
            "Dispatch enqueued",
            extra={
                "monitor_id": str(spec.id),
                "dispatch_id": dispatch.pk,
                "kind": str(kind),
                "task_id": task_id,
            },
        )
        return dispatch

    def unschedule(self, monitor_id: UUID | str) -> int:
        """Drop the recurring registration and cancel every not-yet-started dispatch.

        Running dispatches are left to finish. Returns the number cancelled.
        """

        key = recurring_key(monitor_id)
        removed = self.broker.unregister_recurring(key)

        with transaction.atomic():
            pending = list(
                Dispatch.objects.select_for_update()
                .filter(monitor_id=monitor_id, status=DispatchStatus.PENDING)
                .only("id", "task_id")
            )
            Dispatch.objects.filter(pk__in=[dispatch.pk for dispatch in pending]).update(
                status=DispatchStatus.CANCELLED,
                finished_at=timezone.now(),
                note="monitor unscheduled",
            )

        self.broker.revoke(dispatch.task_id for dispatch in pending)

        audit_logger.info(
            "Monitor unscheduled",
            extra={
                "monitor_id": str(monitor_id),
                "recurring_key": key,
                "recurring_removed": removed,
                "cancelled_dispatches": len(pending),
            },
        )
        return len(pending)

    def is_registered(self, monitor_id: UUID | str) -> bool:
        return self.broker.has_recurring(recurring_key(monitor_id))

    def pending_count(self, monitor_id: UUID | str) -> int:
        return Dispatch.objects.filter(monitor_id=monitor_id, status=DispatchStatus.PENDING).count()

    def queue_stats(self) -> dict[str, int]:
        """Dispatch counts per status, zero-filled, plus the overall total."""

        stats = {status.value: 0 for status in DispatchStatus}
        for row in Dispatch.objects.order_by().values("status").annotate(count=Count("id")):
            stats[row["status"]] = row["count"]
        stats["total"] = sum(stats.values())
        return stats


monitor_scheduler = MonitorScheduler()

__all__ = [
    "MonitorScheduler",
    "interval_minutes",
    "monitor_scheduler",
    "recurring_key",
]
