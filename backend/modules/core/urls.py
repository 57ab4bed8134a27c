"""URL groups assembled by ``app.urls``."""

from __future__ import annotations

from api.health import health_check, metrics, readiness_check
from django.conf import settings
from django.contrib import admin
from django.urls import include, path


def admin_urlpatterns():
    return [path(settings.ADMIN_URL, admin.site.urls)]


def health_urlpatterns():
    """Unauthenticated probes for load balancers, orchestrators and scrapers."""

    return [
        path("healthz", health_check, name="healthz"),
        path("health/", health_check, name="health_check"),
        path("health/ready/", readiness_check, name="readiness_check"),
        path("metrics/", metrics, name="metrics"),
    ]


def monitoring_urlpatterns(prefix: str = "api/"):
    return [path(prefix, include("modules.monitoring.urls"))]
