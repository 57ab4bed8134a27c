"""Daily summary maintenance: the incremental fast path and the recompute slow path.

Both paths fold results through :meth:`DailySummary.add_check`, so a row rebuilt
from raw logs is identical to one maintained incrementally from the same results.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone

from .dto import CheckResult
from .models import DailySummary
from .store import ResultStore, result_store

summary_logger = logging.getLogger("monitoring.summary")

_LOCK_STRIPES = 64


def summary_date(checked_at: datetime) -> date:
    """Calendar day of ``checked_at`` in the configured local time zone."""

    return timezone.localtime(checked_at).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[local midnight, next local midnight)`` for ``day``."""

    start = timezone.make_aware(datetime.combine(day, time.min))
    end = timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min))
    return start, end


class DailyAggregator:
    def __init__(self, store: ResultStore | None = None) -> None:
        self._store = store or result_store
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, monitor_id: UUID | str, day: date) -> threading.Lock:
        return self._locks[hash((str(monitor_id), day.isoformat())) % _LOCK_STRIPES]

    def apply_incremental(
        self,
        monitor_id: UUID | str,
        organization_id: UUID | str,
        result: CheckResult,
        checked_at: datetime | None = None,
    ) -> DailySummary | None:
        """Fold one result into its day's row. Never raises; failures are logged."""

        checked_at = checked_at or result.checked_at
        day = summary_date(checked_at)

        try:
            with self._lock_for(monitor_id, day):
                try:
                    summary = self._fold(monitor_id, organization_id, day, result)
                except IntegrityError:
                    # Another process created the row first; it exists now.
                    summary = self._fold(monitor_id, organization_id, day, result)
        except Exception as exc:  # noqa: BLE001
            summary_logger.error(
                "Daily summary update failed; reconciliation will correct it",
                extra={
                    "monitor_id": str(monitor_id),
                    "date": day.isoformat(),
                    "status": result.status,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return None

        summary_logger.debug(
            "Daily summary updated",
            extra={
                "monitor_id": str(monitor_id),
                "date": day.isoformat(),
                "total_checks": summary.total_checks,
                "uptime_percentage": summary.uptime_percentage,
            },
        )
        return summary

    def _fold(
        self,
        monitor_id: UUID | str,
        organization_id: UUID | str,
        day: date,
        result: CheckResult,
    ) -> DailySummary:
        with transaction.atomic():
            summary = (
                DailySummary.objects.select_for_update()
                .filter(monitor_id=monitor_id, date=day)
                .first()
            )
            if summary is None:
                summary = DailySummary(
                    monitor_id=monitor_id,
                    organization_id=organization_id,
                    date=day,
                )
            summary.add_check(result.status, result.response_time)
            summary.save()
        return summary

    def recalculate(self, monitor_id: UUID | str, day: date) -> DailySummary | None:
        """Rebuild ``day``'s row strictly from raw logs; delete it when no logs exist."""

        start, end = day_bounds(day)
        try:
            with self._lock_for(monitor_id, day), transaction.atomic():
                existing = (
                    DailySummary.objects.select_for_update()
                    .filter(monitor_id=monitor_id, date=day)
                    .first()
                )
                logs = list(self._store.logs_for_day(monitor_id, start, end))

                if not logs:
                    if existing is not None:
                        existing.delete()
                        summary_logger.info(
                            "Removed daily summary with no backing logs",
                            extra={"monitor_id": str(monitor_id), "date": day.isoformat()},
                        )
                    return None

                summary = existing or DailySummary(monitor_id=monitor_id, date=day)
                summary.organization_id = logs[0].organization_id
                summary.reset()
                for log in logs:
                    summary.add_check(log.status, log.response_time)
                summary.save()
        except Exception:
            summary_logger.error(
                "Daily summary recalculation failed",
                extra={"monitor_id": str(monitor_id), "date": day.isoformat()},
                exc_info=True,
            )
            raise

        summary_logger.info(
            "Daily summary recalculated",
            extra={
                "monitor_id": str(monitor_id),
                "date": day.isoformat(),
                "total_checks": summary.total_checks,
                "uptime_percentage": round(summary.uptime_percentage, 2),
            },
        )
        return summary


daily_aggregator = DailyAggregator()

__all__ = ["DailyAggregator", "daily_aggregator", "day_bounds", "summary_date"]
