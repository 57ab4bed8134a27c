"""Nightly backstop: rebuild daily summaries from raw logs for every active monitor."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from django.conf import settings
from django.utils import timezone

from .aggregator import DailyAggregator, daily_aggregator
from .models import Monitor

summary_logger = logging.getLogger("monitoring.summary")


@dataclass(slots=True, frozen=True)
class ReconciliationReport:
    date: date
    total: int
    processed: int
    errors: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "total": self.total,
            "processed": self.processed,
            "errors": self.errors,
        }


def default_reconciliation_date() -> date:
    """Yesterday in the configured local time zone."""

    return timezone.localdate() - timedelta(days=1)


def reconcile_daily_summaries(
    day: date | None = None,
    *,
    batch_size: int | None = None,
    pause_seconds: float | None = None,
    aggregator: DailyAggregator | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ReconciliationReport:
    """Recalculate ``day`` for all active monitors in paced batches.

    A failing monitor is logged and counted; it never aborts the run.
    """

    day = day or default_reconciliation_date()
    batch_size = batch_size or settings.RECONCILIATION_BATCH_SIZE
    if pause_seconds is None:
        pause_seconds = settings.RECONCILIATION_BATCH_PAUSE_SECONDS
    aggregator = aggregator or daily_aggregator

    monitor_ids = list(
        Monitor.objects.filter(is_active=True)
        .order_by("created_at", "id")
        .values_list("id", flat=True)
    )
    total = len(monitor_ids)

    summary_logger.info(
        "Starting daily summary reconciliation",
        extra={"date": day.isoformat(), "total_monitors": total, "batch_size": batch_size},
    )

    processed = 0
    errors = 0
    for offset in range(0, total, batch_size):
        for monitor_id in monitor_ids[offset : offset + batch_size]:
            try:
                aggregator.recalculate(monitor_id, day)
                processed += 1
            except Exception as exc:  # noqa: BLE001
                errors += 1
                summary_logger.error(
                    "Failed to reconcile monitor",
                    extra={
                        "monitor_id": str(monitor_id),
                        "date": day.isoformat(),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )

        if offset + batch_size < total and pause_seconds > 0:
            sleep(pause_seconds)

    report = ReconciliationReport(date=day, total=total, processed=processed, errors=errors)
    log = summary_logger.warning if errors else summary_logger.info
    log("Daily summary reconciliation completed", extra=report.to_dict())
    return report


__all__ = [
    "ReconciliationReport",
    "default_reconciliation_date",
    "reconcile_daily_summaries",
]
