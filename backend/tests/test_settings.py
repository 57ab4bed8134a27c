"""
Tests for the split settings architecture.

Validates that the shared fragments resolve into the active settings and that
the monitoring pipeline's queues, beat schedule and loggers are wired up.
"""

import logging

from app.logging_filters import MaxLevelFilter, RequestIDFilter, current_request_id
from django.conf import settings
from django.test import TestCase
from modules.core.settings import (
    MONITOR_CHECK_QUEUE,
    NOTIFICATION_QUEUE,
    RECONCILIATION_QUEUE,
    build_celery_config,
    build_logging_config,
    build_monitoring_config,
)
from modules.core.settings.logger import resolve_environment
from modules.core.settings.sentry import build_traces_sampler, scrub_event
from modules.core.settings_registry import SettingsRegistry


class SettingsArchitectureTest(TestCase):
    """Test the split settings architecture loads correctly."""

    def test_base_settings_accessible(self):
        self.assertIsNotNone(settings.BASE_DIR)
        self.assertIsNotNone(settings.LOG_DIR)
        self.assertIsNotNone(settings.DATABASES)
        self.assertEqual(settings.ROOT_URLCONF, "app.urls")

    def test_installed_apps(self):
        self.assertIn("rest_framework", settings.INSTALLED_APPS)
        self.assertIn("django_celery_beat", settings.INSTALLED_APPS)
        self.assertIn("modules.monitoring", settings.INSTALLED_APPS)

    def test_request_id_middleware_runs_before_request_logging(self):
        middleware = list(settings.MIDDLEWARE)

        self.assertLess(
            middleware.index("app.middleware_logging.RequestIDMiddleware"),
            middleware.index("app.middleware_logging.RequestLoggingMiddleware"),
        )

    def test_rest_framework_defaults(self):
        rest = settings.REST_FRAMEWORK

        self.assertEqual(
            rest["EXCEPTION_HANDLER"], "api.exception_handler.custom_exception_handler"
        )
        self.assertEqual(rest["PAGE_SIZE"], 50)
        self.assertIn(
            "rest_framework.permissions.IsAuthenticated", rest["DEFAULT_PERMISSION_CLASSES"]
        )


class CeleryConfigTest(TestCase):
    def test_tasks_are_routed_to_their_queues(self):
        routes = build_celery_config()["CELERY_TASK_ROUTES"]

        self.assertEqual(
            routes["monitoring.tasks.run_monitor_check"]["queue"], MONITOR_CHECK_QUEUE
        )
        self.assertEqual(
            routes["monitoring.tasks.notify_monitor_failure"]["queue"], NOTIFICATION_QUEUE
        )
        self.assertEqual(
            routes["monitoring.tasks.reconcile_daily_summaries"]["queue"], RECONCILIATION_QUEUE
        )

    def test_reconciliation_runs_nightly_from_beat(self):
        config = build_celery_config()
        entry = config["CELERY_BEAT_SCHEDULE"]["monitoring.reconcile_daily_summaries"]

        self.assertEqual(entry["task"], "monitoring.tasks.reconcile_daily_summaries")
        self.assertEqual(entry["schedule"].hour, {2})
        self.assertEqual(entry["schedule"].minute, {0})
        self.assertEqual(
            config["CELERY_BEAT_SCHEDULER"], "django_celery_beat.schedulers:DatabaseScheduler"
        )

    def test_at_least_once_delivery(self):
        config = build_celery_config()

        self.assertTrue(config["CELERY_TASK_ACKS_LATE"])
        self.assertTrue(config["CELERY_TASK_REJECT_ON_WORKER_LOST"])
        self.assertEqual(config["CELERY_WORKER_PREFETCH_MULTIPLIER"], 1)

    def test_test_settings_run_tasks_eagerly(self):
        self.assertTrue(settings.CELERY_TASK_ALWAYS_EAGER)
        self.assertTrue(settings.CELERY_TASK_EAGER_PROPAGATES)


class MonitoringConfigTest(TestCase):
    def test_defaults(self):
        config = build_monitoring_config()

        self.assertEqual(config["CHECK_TASK_MAX_RETRIES"], 3)
        self.assertEqual(config["CHECK_RETRY_BACKOFF_SECONDS"], 2)
        self.assertEqual(config["FAILURE_WINDOW_HOURS"], 24)
        self.assertEqual(config["RECONCILIATION_BATCH_SIZE"], 20)
        self.assertEqual(config["RECONCILIATION_BATCH_PAUSE_SECONDS"], 1.0)

    def test_test_settings_skip_reconciliation_pauses(self):
        self.assertEqual(settings.RECONCILIATION_BATCH_PAUSE_SECONDS, 0)


class LoggingConfigTest(TestCase):
    def test_monitoring_loggers_have_dedicated_files(self):
        config = build_logging_config()
        loggers = config["loggers"]

        for name in (
            "monitoring",
            "monitoring.audit",
            "monitoring.performance",
            "monitoring.summary",
            "monitoring.queue",
        ):
            self.assertIn(name, loggers)
            self.assertFalse(loggers[name]["propagate"])

        self.assertIn("file_checks", loggers["monitoring"]["handlers"])
        self.assertEqual(config["handlers"]["file_checks"]["filename"].name, "checks.log")

    def test_app_log_is_capped_at_warning(self):
        handler = build_logging_config()["handlers"]["file_app"]

        self.assertIn("max_warning", handler["filters"])
        self.assertIn("request_id", handler["filters"])


class SettingsRegistryTest(TestCase):
    def test_registration_keeps_order_and_skips_duplicates(self):
        registry = SettingsRegistry(apps=["rest_framework", "modules.monitoring"])

        registry.register_apps("modules.monitoring", "django_extensions", "")

        self.assertEqual(
            registry.apps, ["rest_framework", "modules.monitoring", "django_extensions"]
        )

    def test_accessors_return_copies(self):
        registry = SettingsRegistry(middleware=["a.Middleware"])

        registry.middleware.append("b.Middleware")

        self.assertEqual(registry.middleware, ["a.Middleware"])


class EnvironmentRoutingTest(TestCase):
    def test_explicit_environment_wins(self):
        self.assertEqual(
            resolve_environment({"DJANGO_ENV": "Development", "DEBUG": "false"}),
            ("development", "DJANGO_ENV=development"),
        )

    def test_debug_flag_selects_development(self):
        self.assertEqual(resolve_environment({"DEBUG": "yes"}), ("development", "DEBUG flag"))

    def test_unknown_values_fall_back_to_production(self):
        environment, _ = resolve_environment({"DJANGO_ENV": "staging"})

        self.assertEqual(environment, "production")


class SentryHelpersTest(TestCase):
    def test_scrub_event_filters_credentials(self):
        event = {
            "request": {"headers": {"Authorization": "Bearer abc", "Accept": "*/*"}},
            "contexts": {"runtime": {"env": {"REDIS_URL": "redis://:pw@cache", "TZ": "UTC"}}},
        }

        scrubbed = scrub_event(event)

        self.assertEqual(scrubbed["request"]["headers"]["Authorization"], "[Filtered]")
        self.assertEqual(scrubbed["request"]["headers"]["Accept"], "*/*")
        self.assertEqual(scrubbed["contexts"]["runtime"]["env"]["REDIS_URL"], "[Filtered]")
        self.assertEqual(scrubbed["contexts"]["runtime"]["env"]["TZ"], "UTC")

    def test_probe_endpoints_are_never_traced(self):
        sampler = build_traces_sampler(0.25)

        self.assertEqual(sampler({"wsgi_environ": {"PATH_INFO": "/health/ready/"}}), 0.0)
        self.assertEqual(sampler({"wsgi_environ": {"PATH_INFO": "/metrics/"}}), 0.0)
        self.assertEqual(sampler({"wsgi_environ": {"PATH_INFO": "/api/monitors/"}}), 0.25)


class LoggingFiltersTest(TestCase):
    def _record(self, level=logging.INFO, **extra):
        record = logging.LogRecord("monitoring", level, __file__, 1, "message", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_max_level_filter(self):
        capped = MaxLevelFilter("warning")

        self.assertTrue(capped.filter(self._record(logging.WARNING)))
        self.assertFalse(capped.filter(self._record(logging.ERROR)))

    def test_request_id_filter_uses_context_then_default(self):
        id_filter = RequestIDFilter()

        token = current_request_id.set("req-42")
        try:
            record = self._record()
            id_filter.filter(record)
        finally:
            current_request_id.reset(token)
        outside = self._record()
        id_filter.filter(outside)
        explicit = self._record(request_id="from-extra")
        id_filter.filter(explicit)

        self.assertEqual(record.request_id, "req-42")
        self.assertEqual(outside.request_id, "-")
        self.assertEqual(explicit.request_id, "from-extra")
