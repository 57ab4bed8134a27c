from __future__ import annotations

import threading
from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from unittest.mock import patch

import pytest
from django.db import IntegrityError, connection
from modules.monitoring.aggregator import DailyAggregator, day_bounds, summary_date
from modules.monitoring.dto import CheckResult
from modules.monitoring.models import DailySummary

pytestmark = pytest.mark.django_db

DAY = date(2026, 3, 14)
NOON = datetime(2026, 3, 14, 12, 0, tzinfo=dt_timezone.utc)

COUNTERS = (
    "total_checks",
    "successful_checks",
    "failed_checks",
    "timeout_checks",
    "error_checks",
    "total_response_time",
    "min_response_time",
    "max_response_time",
    "uptime_percentage",
    "average_response_time",
)

OUTCOMES = [
    ("success", 120),
    ("success", 80),
    ("failure", 300),
    ("success", 0),
    ("timeout", 10_000),
    ("error", 5),
    ("success", 95),
]


def _snapshot(summary: DailySummary) -> dict:
    return {field: getattr(summary, field) for field in COUNTERS}


def _feed(aggregator, monitor, check_log_factory, outcomes):
    for offset, (status, response_time) in enumerate(outcomes):
        checked_at = NOON + timedelta(minutes=offset)
        check_log_factory(monitor, status, response_time, checked_at=checked_at)
        aggregator.apply_incremental(
            monitor.id,
            monitor.organization_id,
            CheckResult(status, response_time, checked_at=checked_at),
        )


def test_incremental_counters_and_derived_fields(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    aggregator = DailyAggregator()

    _feed(aggregator, monitor, check_log_factory, OUTCOMES)

    summary = DailySummary.objects.get(monitor=monitor, date=DAY)
    assert summary.organization_id == monitor.organization_id
    assert summary.total_checks == 7
    assert summary.successful_checks == 4
    assert summary.failed_checks == 1
    assert summary.timeout_checks == 1
    assert summary.error_checks == 1
    assert summary.uptime_percentage == pytest.approx(100 * 4 / 7)
    assert summary.total_response_time == 10_600
    assert summary.average_response_time == pytest.approx(10_600 / 7)
    assert summary.min_response_time == 0
    assert summary.max_response_time == 10_000


def test_recalculate_matches_incremental_and_is_idempotent(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    aggregator = DailyAggregator()
    _feed(aggregator, monitor, check_log_factory, OUTCOMES)
    incremental = _snapshot(DailySummary.objects.get(monitor=monitor, date=DAY))

    first = aggregator.recalculate(monitor.id, DAY)
    second = aggregator.recalculate(monitor.id, DAY)

    assert _snapshot(first) == incremental
    assert _snapshot(second) == incremental
    assert DailySummary.objects.filter(monitor=monitor, date=DAY).count() == 1


def test_recalculate_corrects_drift(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    for offset, (status, response_time) in enumerate(OUTCOMES[:3]):
        checked_at = NOON + timedelta(minutes=offset)
        check_log_factory(monitor, status, response_time, checked_at=checked_at)
    DailySummary.objects.create(
        monitor=monitor,
        organization_id=monitor.organization_id,
        date=DAY,
        total_checks=99,
        successful_checks=1,
        uptime_percentage=1.0,
    )

    summary = DailyAggregator().recalculate(monitor.id, DAY)

    assert summary.total_checks == 3
    assert summary.successful_checks == 2
    assert summary.failed_checks == 1
    assert summary.uptime_percentage == pytest.approx(200 / 3)
    assert summary.min_response_time == 80
    assert summary.max_response_time == 300


def test_recalculate_without_logs_removes_the_row(monitor_factory):
    monitor = monitor_factory()
    DailySummary.objects.create(
        monitor=monitor, organization_id=monitor.organization_id, date=DAY, total_checks=4
    )

    assert DailyAggregator().recalculate(monitor.id, DAY) is None
    assert not DailySummary.objects.filter(monitor=monitor, date=DAY).exists()


def test_recalculate_ignores_neighbouring_days(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    start, end = day_bounds(DAY)
    check_log_factory(monitor, "failure", checked_at=start - timedelta(seconds=1))
    check_log_factory(monitor, "success", checked_at=start)
    check_log_factory(monitor, "success", checked_at=end - timedelta(seconds=1))
    check_log_factory(monitor, "failure", checked_at=end)

    summary = DailyAggregator().recalculate(monitor.id, DAY)

    assert summary.total_checks == 2
    assert summary.uptime_percentage == 100.0


def test_incremental_failure_is_logged_not_raised(monitor_factory, monitoring_caplog):
    monitor = monitor_factory()
    aggregator = DailyAggregator()

    with patch.object(aggregator, "_fold", side_effect=RuntimeError("db down")):
        result = aggregator.apply_incremental(
            monitor.id, monitor.organization_id, CheckResult("success", 10, checked_at=NOON)
        )

    assert result is None
    assert not DailySummary.objects.exists()
    assert any(
        r.getMessage() == "Daily summary update failed; reconciliation will correct it"
        for r in monitoring_caplog.records
    )


def test_unknown_status_is_rejected():
    summary = DailySummary()
    summary.reset()

    with pytest.raises(ValueError):
        summary.add_check("degraded", 10)


def test_summary_day_follows_configured_time_zone(settings):
    settings.TIME_ZONE = "America/New_York"
    late_evening = datetime(2026, 3, 10, 3, 30, tzinfo=dt_timezone.utc)

    assert summary_date(late_evening) == date(2026, 3, 9)

    start, end = day_bounds(date(2026, 3, 9))
    assert start <= late_evening < end
    assert start.astimezone(dt_timezone.utc).hour == 4


@pytest.mark.django_db(transaction=True)
def test_concurrent_incremental_updates_are_not_lost(monitor_factory):
    monitor = monitor_factory()
    aggregator = DailyAggregator()
    workers = 8
    barrier = threading.Barrier(workers)
    returned = []

    def fold_one(offset):
        try:
            barrier.wait()
            returned.append(
                aggregator.apply_incremental(
                    monitor.id,
                    monitor.organization_id,
                    CheckResult("success", 100 + offset, checked_at=NOON),
                )
            )
        finally:
            connection.close()

    threads = [threading.Thread(target=fold_one, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert None not in returned
    summary = DailySummary.objects.get(monitor=monitor, date=DAY)
    assert summary.total_checks == workers
    assert summary.successful_checks == workers
    assert summary.min_response_time == 100
    assert summary.max_response_time == 100 + workers - 1


def test_row_created_by_a_racing_writer_is_folded_into_once(monitor_factory):
    monitor = monitor_factory()
    aggregator = DailyAggregator()
    fold = DailyAggregator._fold
    calls = []

    def racing_fold(monitor_id, organization_id, day, result):
        calls.append(day)
        if len(calls) == 1:
            # The other writer wins the insert for this (monitor, day).
            DailySummary.objects.create(
                monitor_id=monitor_id,
                organization_id=organization_id,
                date=day,
                total_checks=1,
                successful_checks=1,
                total_response_time=50,
                min_response_time=50,
                max_response_time=50,
            )
            raise IntegrityError("UNIQUE constraint failed: daily_summary_monitor_date")
        return fold(aggregator, monitor_id, organization_id, day, result)

    with patch.object(aggregator, "_fold", side_effect=racing_fold):
        summary = aggregator.apply_incremental(
            monitor.id, monitor.organization_id, CheckResult("failure", 150, checked_at=NOON)
        )

    assert len(calls) == 2
    assert summary.total_checks == 2
    assert summary.failed_checks == 1
    stored = DailySummary.objects.get(monitor=monitor, date=DAY)
    assert stored.total_checks == 2
    assert stored.average_response_time == 100.0
