"""
Pytest configuration for the monitoring pipeline tests.

Provides an in-memory dispatch broker so scheduling can be exercised without
Redis or django-celery-beat workers, plus monitor factories and an API client.
"""

import logging
import uuid
from pathlib import Path

import pytest


def pytest_configure(config):
    """Configure test environment before tests run."""
    from django.conf import settings

    # CONN_MAX_AGE causes connection pool exhaustion in test suites
    if hasattr(settings, "DATABASES"):
        for db_config in settings.DATABASES.values():
            db_config["CONN_MAX_AGE"] = 0
            db_config["CONN_HEALTH_CHECKS"] = False

    # Ensure STATIC_ROOT exists so Django/Whitenoise stop warning during tests.
    static_root = getattr(settings, "STATIC_ROOT", None)
    if static_root:
        Path(static_root).mkdir(parents=True, exist_ok=True)


class InMemoryDispatchBroker:
    """Records publishes and recurring registrations instead of talking to Celery."""

    def __init__(self, *, run=None):
        self.published: list[int] = []
        self.revoked: list[str] = []
        self.recurring: dict[str, dict] = {}
        self._run = run

    def publish(self, dispatch):
        self.published.append(dispatch.pk)
        if self._run is not None:
            self._run(dispatch.pk)
        return f"test-{dispatch.monitor_id}-{dispatch.pk}"

    def revoke(self, task_ids):
        self.revoked.extend(task_id for task_id in task_ids if task_id)

    def register_recurring(self, key, every_minutes, payload):
        self.recurring[key] = {"every_minutes": every_minutes, "payload": dict(payload)}

    def unregister_recurring(self, key):
        return self.recurring.pop(key, None) is not None

    def has_recurring(self, key):
        return key in self.recurring


@pytest.fixture
def fake_broker(monkeypatch):
    """Swap the scheduler singleton's broker for the in-memory one."""
    from modules.monitoring.scheduler import monitor_scheduler

    broker = InMemoryDispatchBroker()
    monkeypatch.setattr(monitor_scheduler, "_broker", broker)
    return broker


@pytest.fixture
def organization_id():
    return uuid.uuid4()


@pytest.fixture
def monitor_factory(db, organization_id):
    """Create monitors directly in the database, bypassing the API layer."""
    from modules.monitoring.models import Monitor

    def _create(**overrides) -> Monitor:
        fields = {
            "organization_id": organization_id,
            "name": f"Monitor {uuid.uuid4().hex[:6]}",
            "type": "https",
            "url": "https://status.example.com/health",
            "expected_status_codes": ["200-299"],
            "check_interval": 300,
            "check_timeout": 30,
            "fail_threshold": 3,
            "contacts": ["ops@example.com"],
        }
        fields.update(overrides)
        return Monitor.objects.create(**fields)

    return _create


@pytest.fixture
def check_log_factory(db):
    """Persist check logs with explicit timestamps."""
    from django.utils import timezone
    from modules.monitoring.models import CheckLog

    def _create(monitor, status="success", response_time=100, checked_at=None, **extra):
        return CheckLog.objects.create(
            monitor=monitor,
            organization_id=monitor.organization_id,
            status=status,
            response_time=response_time,
            checked_at=checked_at or timezone.now(),
            **extra,
        )

    return _create


@pytest.fixture
def api_client(django_user_model):
    from rest_framework.test import APIClient

    user = django_user_model.objects.create_user(
        username="operator", email="operator@example.com", password="not-used-123"
    )
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def admin_client_api(django_user_model):
    from rest_framework.test import APIClient

    user = django_user_model.objects.create_superuser(
        username="root", email="root@example.com", password="not-used-123"
    )
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def monitoring_caplog(caplog):
    # Attach the capture handler directly because these loggers do not propagate to root.
    target_loggers = [
        logging.getLogger("monitoring"),
        logging.getLogger("monitoring.audit"),
        logging.getLogger("monitoring.performance"),
        logging.getLogger("monitoring.summary"),
        logging.getLogger("monitoring.queue"),
    ]

    caplog.handler.setLevel(logging.DEBUG)

    for logger in target_loggers:
        logger.addHandler(caplog.handler)
        logger.setLevel(logging.INFO)

    caplog.clear()
    yield caplog
    caplog.clear()

    for logger in target_loggers:
        logger.removeHandler(caplog.handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Log failing test details to the Django error logger for debugging."""

    outcome = yield
    report = outcome.get_result()

    if not report.failed:
        return

    logger = logging.getLogger("django")
    longrepr = getattr(report, "longreprtext", None)
    detail = longrepr if isinstance(longrepr, str) else str(report.longrepr)
    logger.error(
        "Pytest failure | phase=%s | nodeid=%s\n%s",
        report.when,
        report.nodeid,
        detail,
    )
