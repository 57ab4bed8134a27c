"""Optional Sentry wiring for the API, Celery workers and beat."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.redis import RedisIntegration

FILTERED = "[Filtered]"
SCRUBBED_HEADERS = ("Authorization", "Cookie", "X-CSRF-Token")
SCRUBBED_ENV_VARS = (
    "SECRET_KEY",
    "DATABASE_URL",
    "REDIS_URL",
    "CELERY_BROKER_URL",
    "CELERY_RESULT_BACKEND",
)
UNSAMPLED_PATH_PREFIXES = ("/health", "/metrics")


def scrub_event(event: dict[str, Any], hint: Any = None) -> dict[str, Any]:
    """Drop credentials from request headers and the runtime environment."""

    headers = event.get("request", {}).get("headers", {})
    for name in SCRUBBED_HEADERS:
        if name in headers:
            headers[name] = FILTERED

    env_vars = event.get("contexts", {}).get("runtime", {}).get("env", {})
    for name in SCRUBBED_ENV_VARS:
        if name in env_vars:
            env_vars[name] = FILTERED
    return event


def build_traces_sampler(rate: float) -> Callable[[Mapping[str, Any]], float]:
    """Probe endpoints are polled constantly; never trace them."""

    def sampler(sampling_context: Mapping[str, Any]) -> float:
        path = sampling_context.get("wsgi_environ", {}).get("PATH_INFO", "")
        return 0.0 if path.startswith(UNSAMPLED_PATH_PREFIXES) else rate

    return sampler


def configure_sentry(env, *, default_environment: str = "production") -> dict[str, Any]:
    """Initialise Sentry when ``SENTRY_DSN`` is set and return the values for settings."""

    dsn = env("SENTRY_DSN", default="")
    rate = env.float("SENTRY_TRACES_SAMPLE_RATE", default=0.1)
    environment = env("SENTRY_ENVIRONMENT", default="") or default_environment
    config: dict[str, Any] = {"dsn": dsn, "traces_sample_rate": rate, "environment": environment}
    if not dsn:
        return config

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=env("SENTRY_RELEASE", default=None),
        traces_sampler=build_traces_sampler(rate),
        integrations=[
            DjangoIntegration(transaction_style="url"),
            CeleryIntegration(monitor_beat_tasks=True),
            RedisIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        attach_stacktrace=True,
        before_send=scrub_event,
    )
    return config
