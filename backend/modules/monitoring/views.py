"""Viewsets and endpoints for monitoring functionality."""

from __future__ import annotations

from datetime import date

from django.utils.dateparse import parse_date
from django_celery_beat.models import PeriodicTask
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import CheckLog, CheckStatus, Dispatch, DispatchStatus
from .reports import monitor_report, organization_report, resolve_date_range
from .scheduler import monitor_scheduler
from .serializers import CheckLogSerializer, DispatchSerializer, MonitorSerializer
from .service import monitor_service


def _date_param(request, name: str) -> date | None:
    raw = request.query_params.get(name)
    if not raw:
        return None
    parsed = parse_date(raw)
    if parsed is None:
        raise ValidationError({name: "Use the YYYY-MM-DD format."})
    return parsed


def _date_range(request) -> tuple[date, date]:
    try:
        return resolve_date_range(
            _date_param(request, "startDate"),
            _date_param(request, "endDate"),
        )
    except ValueError as exc:
        raise ValidationError({"error": str(exc)}) from None


class MonitorViewSet(viewsets.ModelViewSet):
    """CRUD for monitors plus their raw logs and daily summaries."""

    serializer_class = MonitorSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return monitor_service.queryset_for_request(self.request)

    def perform_create(self, serializer):
        monitor_service.create_monitor(request=self.request, serializer=serializer)

    def perform_update(self, serializer):
        monitor_service.update_monitor(request=self.request, serializer=serializer)

    def perform_destroy(self, instance):
        monitor_service.delete_monitor(request=self.request, monitor=instance)

    @action(detail=True, methods=["get"])
    def logs(self, request, pk=None):
        monitor = self.get_object()
        queryset = CheckLog.objects.filter(monitor=monitor).order_by("-checked_at", "-id")

        status_filter = request.query_params.get("status")
        if status_filter:
            if status_filter not in CheckStatus.values:
                raise ValidationError(
                    {"status": f"Must be one of {', '.join(CheckStatus.values)}."}
                )
            queryset = queryset.filter(status=status_filter)

        page = self.paginate_queryset(queryset)
        serializer = CheckLogSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=True, methods=["get"])
    def summaries(self, request, pk=None):
        monitor = self.get_object()
        start, end = _date_range(request)
        return Response(monitor_report(monitor, start, end))


class OrganizationReportView(APIView):
    """Per-monitor daily rows and rollups for one organization."""

    permission_classes = [IsAuthenticated]

    def get(self, request, organization_id):
        start, end = _date_range(request)
        return Response(organization_report(organization_id, start, end))


class QueueStatsView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        stats = monitor_scheduler.queue_stats()
        return Response(
            {
                "dispatches": stats,
                "recurring_registrations": PeriodicTask.objects.filter(
                    name__startswith="recurring-"
                ).count(),
            },
            status=status.HTTP_200_OK,
        )


class DispatchListView(generics.ListAPIView):
    serializer_class = DispatchSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = Dispatch.objects.all().order_by("-created_at", "-id")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            if status_filter not in DispatchStatus.values:
                raise ValidationError(
                    {"status": f"Must be one of {', '.join(DispatchStatus.values)}."}
                )
            queryset = queryset.filter(status=status_filter)
        return queryset


__all__ = [
    "DispatchListView",
    "MonitorViewSet",
    "OrganizationReportView",
    "QueueStatsView",
]
