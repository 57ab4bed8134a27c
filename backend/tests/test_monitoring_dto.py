import uuid
from datetime import datetime
from datetime import timezone as dt_timezone

import pytest
from modules.monitoring.dto import CheckResult, MonitorSpec


@pytest.mark.django_db
def test_monitor_spec_snapshot_matches_model(monitor_factory):
    monitor = monitor_factory(
        http_method="post",
        request_headers=[{"key": "X-Probe", "value": "1"}, {"key": "", "value": "dropped"}],
        expected_response_headers=[{"key": "Content-Type", "value": "json"}],
    )

    spec = MonitorSpec.from_model(monitor)

    assert spec.id == monitor.id
    assert spec.http_method == "POST"
    assert spec.request_headers == (("X-Probe", "1"),)
    assert spec.expected_response_headers == (("Content-Type", "json"),)
    assert spec.expected_status_codes == ("200-299",)
    assert spec.contacts == ("ops@example.com",)


@pytest.mark.django_db
def test_monitor_spec_survives_celery_payload(monitor_factory):
    spec = MonitorSpec.from_model(monitor_factory())

    payload = spec.to_payload()

    assert payload["id"] == str(spec.id)
    assert payload["request_headers"] == []
    assert MonitorSpec.from_payload(payload) == spec


def test_monitor_spec_accepts_header_lists_and_defaults():
    spec = MonitorSpec.from_payload(
        {
            "id": str(uuid.uuid4()),
            "organization_id": str(uuid.uuid4()),
            "url": "db.example.com:5432",
            "type": "tcp",
            "request_headers": [["Accept", "text/plain"]],
        }
    )

    assert spec.request_headers == (("Accept", "text/plain"),)
    assert spec.http_method == "GET"
    assert spec.check_interval == 300
    assert spec.check_timeout == 30
    assert spec.fail_threshold == 3


def test_check_result_error_helper():
    result = CheckResult.error(
        "Connection refused", "ECONNREFUSED", response_time=12, request_url="https://x.test"
    )

    assert result.status == "error"
    assert result.is_failure
    assert result.error_code == "ECONNREFUSED"
    assert result.response_time == 12
    assert result.request_url == "https://x.test"


def test_check_result_payload_uses_utc_zulu_timestamps():
    checked_at = datetime(2026, 3, 14, 12, 30, tzinfo=dt_timezone.utc)
    result = CheckResult(status="success", response_time=87, checked_at=checked_at, http_status=204)

    payload = result.to_payload()

    assert payload["checked_at"] == "2026-03-14T12:30:00Z"
    restored = CheckResult.from_payload(payload)
    assert restored.checked_at == checked_at
    assert restored.http_status == 204
    assert not restored.is_failure


@pytest.mark.django_db
def test_check_result_from_stored_log(monitor_factory, check_log_factory):
    log = check_log_factory(monitor_factory(), "timeout", 30000, error_code="TIMEOUT")

    result = CheckResult.from_model(log)

    assert result.status == "timeout"
    assert result.response_time == 30000
    assert result.error_code == "TIMEOUT"
