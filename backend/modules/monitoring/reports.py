"""Read side for dashboards: daily summaries over a range and uptime rollups.

Rollups are computed from DailySummary rows only; raw logs are never rescanned.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any
from uuid import UUID

from django.db.models import QuerySet
from django.utils import timezone

from .models import DailySummary, Monitor

DEFAULT_REPORT_DAYS = 30


def resolve_date_range(start: date | None, end: date | None) -> tuple[date, date]:
    """Fill in the default window (last 30 days, inclusive) and validate ordering."""

    end = end or timezone.localdate()
    start = start or end - timedelta(days=DEFAULT_REPORT_DAYS)
    if start > end:
        raise ValueError("Start date must be before end date")
    return start, end


def daily_summaries(
    monitor_ids: Iterable[UUID | str],
    start: date,
    end: date,
) -> QuerySet[DailySummary]:
    return DailySummary.objects.filter(
        monitor_id__in=list(monitor_ids),
        date__gte=start,
        date__lte=end,
    ).order_by("date")


@dataclass(slots=True, frozen=True)
class UptimeRollup:
    total_checks: int
    successful_checks: int
    failed_checks: int
    timeout_checks: int
    error_checks: int
    total_response_time: int
    min_response_time: int | None
    max_response_time: int | None

    @property
    def uptime_percentage(self) -> float:
        if not self.total_checks:
            return 0.0
        return self.successful_checks / self.total_checks * 100

    @property
    def average_response_time(self) -> float:
        if not self.total_checks:
            return 0.0
        return self.total_response_time / self.total_checks

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_checks": self.total_checks,
            "successful_checks": self.successful_checks,
            "failed_checks": self.failed_checks,
            "timeout_checks": self.timeout_checks,
            "error_checks": self.error_checks,
            "uptime_percentage": round(self.uptime_percentage, 2),
            "average_response_time": round(self.average_response_time, 2),
            "min_response_time": self.min_response_time,
            "max_response_time": self.max_response_time,
        }


def uptime_rollup(summaries: Iterable[DailySummary]) -> UptimeRollup:
    """Sum per-day counters; min/max are taken over the per-day mins/maxes."""

    rows = list(summaries)
    mins = [row.min_response_time for row in rows if row.min_response_time is not None]
    maxes = [row.max_response_time for row in rows if row.max_response_time is not None]
    return UptimeRollup(
        total_checks=sum(row.total_checks for row in rows),
        successful_checks=sum(row.successful_checks for row in rows),
        failed_checks=sum(row.failed_checks for row in rows),
        timeout_checks=sum(row.timeout_checks for row in rows),
        error_checks=sum(row.error_checks for row in rows),
        total_response_time=sum(row.total_response_time for row in rows),
        min_response_time=min(mins) if mins else None,
        max_response_time=max(maxes) if maxes else None,
    )


def summary_to_dict(summary: DailySummary) -> dict[str, Any]:
    return {
        "date": summary.date.isoformat(),
        "total_checks": summary.total_checks,
        "successful_checks": summary.successful_checks,
        "failed_checks": summary.failed_checks,
        "timeout_checks": summary.timeout_checks,
        "error_checks": summary.error_checks,
        "uptime_percentage": round(summary.uptime_percentage, 2),
        "average_response_time": round(summary.average_response_time, 2),
        "min_response_time": summary.min_response_time,
        "max_response_time": summary.max_response_time,
    }


def monitor_report(monitor: Monitor, start: date, end: date) -> dict[str, Any]:
    rows = list(daily_summaries([monitor.id], start, end))
    return {
        "monitor_id": str(monitor.id),
        "date_range": {"start": start.isoformat(), "end": end.isoformat()},
        "daily_summaries": [summary_to_dict(row) for row in rows],
        "overall": uptime_rollup(rows).to_dict(),
    }


def organization_report(organization_id: UUID | str, start: date, end: date) -> dict[str, Any]:
    monitors = list(Monitor.objects.filter(organization_id=organization_id).order_by("-created_at"))

    grouped: dict[str, list[DailySummary]] = defaultdict(list)
    for row in daily_summaries([monitor.id for monitor in monitors], start, end):
        grouped[str(row.monitor_id)].append(row)

    return {
        "organization_id": str(organization_id),
        "date_range": {"start": start.isoformat(), "end": end.isoformat()},
        "monitors": [
            {
                "id": str(monitor.id),
                "name": monitor.name,
                "type": monitor.type,
                "url": monitor.url,
                "http_method": monitor.http_method,
                "is_active": monitor.is_active,
                "check_interval": monitor.check_interval,
                "check_timeout": monitor.check_timeout,
                "fail_threshold": monitor.fail_threshold,
                "daily_summaries": [summary_to_dict(row) for row in grouped[str(monitor.id)]],
                "overall": uptime_rollup(grouped[str(monitor.id)]).to_dict(),
            }
            for monitor in monitors
        ],
    }


__all__ = [
    "DEFAULT_REPORT_DAYS",
    "UptimeRollup",
    "daily_summaries",
    "monitor_report",
    "organization_report",
    "resolve_date_range",
    "summary_to_dict",
    "uptime_rollup",
]
