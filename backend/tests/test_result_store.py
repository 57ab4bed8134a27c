from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.utils import timezone
from modules.monitoring.dto import CheckResult, MonitorSpec
from modules.monitoring.models import CheckLog, Dispatch, DispatchKind
from modules.monitoring.store import ResultStore

pytestmark = pytest.mark.django_db


def test_append_persists_every_result_field(monitor_factory):
    monitor = monitor_factory()
    checked_at = timezone.now() - timedelta(minutes=1)
    result = CheckResult(
        status="failure",
        response_time=321,
        checked_at=checked_at,
        http_status=503,
        http_version="HTTP/1.1",
        response_size=12,
        request_url=monitor.url,
        request_method="GET",
        request_headers={"User-Agent": "UptimeWatch/1.0"},
        response_headers={"retry-after": "30"},
        response_body="maintenance",
        user_agent="UptimeWatch/1.0",
    )

    log = ResultStore().append(result, monitor.id, monitor.organization_id)

    stored = CheckLog.objects.get(pk=log.pk)
    assert stored.monitor_id == monitor.id
    assert stored.organization_id == monitor.organization_id
    assert stored.status == "failure"
    assert stored.http_status == 503
    assert stored.response_headers == {"retry-after": "30"}
    assert stored.checked_at == checked_at


def test_append_clips_bounded_columns_and_drops_nul_characters(monitor_factory):
    monitor = monitor_factory()
    long_url = "https://status.example.com/" + "r" * 3000
    result = CheckResult(
        status="success",
        response_time=40,
        request_url=long_url,
        user_agent="Agent/" + "u" * 3000,
        error_code="E" * 64,
        response_headers={"x-trace": "a\x00b"},
        response_body="up\x00\x00",
        error_message="\x00",
    )

    log = ResultStore().append(result, monitor.id, monitor.organization_id)

    stored = CheckLog.objects.get(pk=log.pk)
    assert stored.request_url == long_url[:2048]
    assert len(stored.user_agent) == 2048
    assert len(stored.error_code) == 32
    assert stored.response_headers == {"x-trace": "ab"}
    assert stored.response_body == "up"
    assert stored.error_message == ""


def test_append_links_the_log_to_its_dispatch(monitor_factory):
    monitor = monitor_factory()
    dispatch = Dispatch.objects.create(
        monitor=monitor,
        kind=DispatchKind.ADHOC,
        payload=MonitorSpec.from_model(monitor).to_payload(),
    )

    log = ResultStore().append(
        CheckResult("success", 10), monitor.id, monitor.organization_id, dispatch_id=dispatch.pk
    )

    assert Dispatch.objects.get(pk=dispatch.pk).log.pk == log.pk


def test_append_propagates_database_errors(monitor_factory, monitoring_caplog):
    monitor = monitor_factory()

    with patch.object(CheckLog.objects, "create", side_effect=DatabaseError("disk full")):
        with pytest.raises(DatabaseError):
            ResultStore().append(CheckResult("success", 10), monitor.id, monitor.organization_id)

    assert any(r.getMessage() == "Failed to save check log" for r in monitoring_caplog.records)


def test_check_logs_are_append_only(monitor_factory, check_log_factory):
    log = check_log_factory(monitor_factory())
    log.status = "error"

    with pytest.raises(ValueError):
        log.save()


def test_count_recent_failures_only_counts_the_trailing_window(
    monitor_factory, check_log_factory
):
    monitor = monitor_factory()
    now = timezone.now()
    check_log_factory(monitor, "failure", checked_at=now - timedelta(hours=25))
    check_log_factory(monitor, "failure", checked_at=now - timedelta(hours=2))
    check_log_factory(monitor, "timeout", checked_at=now - timedelta(hours=1))
    check_log_factory(monitor, "error", checked_at=now - timedelta(minutes=5))
    check_log_factory(monitor, "success", checked_at=now - timedelta(minutes=1))
    check_log_factory(monitor_factory(), "failure", checked_at=now)

    store = ResultStore()

    assert store.count_recent_failures(monitor.id, 24 * 3600, now=now) == 3
    assert store.count_recent_failures(monitor.id, 24 * 3600, ["timeout"], now=now) == 1


def test_logs_for_day_is_half_open(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    start = timezone.now().replace(microsecond=0) - timedelta(days=1)
    end = start + timedelta(days=1)
    check_log_factory(monitor, checked_at=start)
    check_log_factory(monitor, checked_at=end - timedelta(seconds=1))
    check_log_factory(monitor, checked_at=end)

    logs = list(ResultStore().logs_for_day(monitor.id, start, end))

    assert [log.checked_at for log in logs] == [start, end - timedelta(seconds=1)]


def test_recent_logs_newest_first_with_status_filter(monitor_factory, check_log_factory):
    monitor = monitor_factory()
    now = timezone.now()
    older = check_log_factory(monitor, "failure", checked_at=now - timedelta(minutes=10))
    check_log_factory(monitor, "success", checked_at=now - timedelta(minutes=5))
    newer = check_log_factory(monitor, "failure", checked_at=now)

    failures = list(ResultStore().recent_logs(monitor.id, status="failure"))

    assert [log.pk for log in failures] == [newer.pk, older.pk]
