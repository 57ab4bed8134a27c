"""Append-only persistence for raw check results."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

from django.conf import settings
from django.db.models import QuerySet
from django.utils import timezone

from .dto import CheckResult
from .models import FAILURE_STATUSES, CheckLog

logger = logging.getLogger("monitoring")


def _clean(value: str, field_name: str | None = None) -> str:
    """Drop NUL characters and clip to the column's ``max_length`` when it has one."""

    value = (value or "").replace("\x00", "")
    if field_name is not None:
        max_length = CheckLog._meta.get_field(field_name).max_length
        value = value[:max_length]
    return value


def _clean_headers(headers) -> dict[str, str]:
    return {_clean(str(key)): _clean(str(value)) for key, value in dict(headers).items()}


class ResultStore:
    """Writes each result exactly once and answers windowed failure counts."""

    def append(
        self,
        result: CheckResult,
        monitor_id: UUID | str,
        organization_id: UUID | str,
        *,
        dispatch_id: int | None = None,
    ) -> CheckLog:
        """Persist ``result`` synchronously; database errors propagate to the caller.

        Text that would overflow a bounded column is clipped rather than rejected,
        so an oversized redirect target still produces a stored result.
        """

        try:
            log = CheckLog.objects.create(
                monitor_id=monitor_id,
                organization_id=organization_id,
                dispatch_id=dispatch_id,
                status=result.status,
                response_time=result.response_time,
                tcp_connect_time=result.tcp_connect_time,
                http_status=result.http_status,
                http_version=_clean(result.http_version, "http_version"),
                response_size=result.response_size,
                redirect_count=result.redirect_count,
                error_message=_clean(result.error_message),
                error_code=_clean(result.error_code, "error_code"),
                request_url=_clean(result.request_url, "request_url"),
                request_method=_clean(result.request_method, "request_method"),
                request_headers=_clean_headers(result.request_headers),
                response_headers=_clean_headers(result.response_headers),
                response_body=_clean(result.response_body),
                response_body_truncated=result.response_body_truncated,
                user_agent=_clean(result.user_agent, "user_agent"),
                checked_at=result.checked_at,
            )
        except Exception:
            logger.error(
                "Failed to save check log",
                extra={"monitor_id": str(monitor_id), "status": result.status},
                exc_info=True,
            )
            raise

        if settings.DEBUG:
            logger.info(
                "Check log saved",
                extra={
                    "monitor_id": str(monitor_id),
                    "log_id": log.pk,
                    "status": log.status,
                    "response_time_ms": log.response_time,
                },
            )
        return log

    def count_recent_failures(
        self,
        monitor_id: UUID | str,
        window_seconds: int,
        statuses: Iterable[str] = FAILURE_STATUSES,
        *,
        now: datetime | None = None,
    ) -> int:
        """Count results with ``statuses`` inside the trailing window only."""

        since = (now or timezone.now()) - timedelta(seconds=window_seconds)
        return CheckLog.objects.filter(
            monitor_id=monitor_id,
            status__in=[str(status) for status in statuses],
            checked_at__gte=since,
        ).count()

    def logs_for_day(
        self,
        monitor_id: UUID | str,
        start: datetime,
        end: datetime,
    ) -> QuerySet[CheckLog]:
        """Logs in the half-open interval ``[start, end)``, oldest first."""

        return (
            CheckLog.objects.filter(
                monitor_id=monitor_id,
                checked_at__gte=start,
                checked_at__lt=end,
            )
            .order_by("checked_at", "id")
            .only("status", "response_time", "checked_at", "organization_id")
        )

    def recent_logs(
        self, monitor_id: UUID | str, *, status: str | None = None
    ) -> QuerySet[CheckLog]:
        queryset = CheckLog.objects.filter(monitor_id=monitor_id)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-checked_at", "-id")


result_store = ResultStore()

__all__ = ["ResultStore", "result_store"]
