"""Monitoring API routes."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from .views import DispatchListView, MonitorViewSet, OrganizationReportView, QueueStatsView

router = DefaultRouter()
router.register("monitors", MonitorViewSet, basename="monitor")

urlpatterns = router.urls + [
    path(
        "organizations/<uuid:organization_id>/reports/",
        OrganizationReportView.as_view(),
        name="organization-report",
    ),
    path("admin/queue/stats/", QueueStatsView.as_view(), name="queue-stats"),
    path("admin/queue/dispatches/", DispatchListView.as_view(), name="queue-dispatches"),
]

__all__ = ["urlpatterns", "router"]
