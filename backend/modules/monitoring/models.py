"""Monitoring models: monitor configuration, raw check logs, daily rollups and dispatches."""

from __future__ import annotations

import uuid

from django.db import models
from django.utils import timezone


class MonitorType(models.TextChoices):
    HTTPS = "https", "HTTPS"
    TCP = "tcp", "TCP"


class CheckStatus(models.TextChoices):
    SUCCESS = "success", "Success"
    FAILURE = "failure", "Failure"
    TIMEOUT = "timeout", "Timeout"
    ERROR = "error", "Error"


FAILURE_STATUSES: tuple[str, ...] = (
    CheckStatus.FAILURE,
    CheckStatus.TIMEOUT,
    CheckStatus.ERROR,
)


class Monitor(models.Model):
    """Monitor definition owned by an organization."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=120)
    type = models.CharField(max_length=8, choices=MonitorType.choices, default=MonitorType.HTTPS)
    url = models.CharField(max_length=2048)
    http_method = models.CharField(max_length=8, default="GET")
    request_headers = models.JSONField(default=list, blank=True)
    follow_redirects = models.BooleanField(default=True)
    expected_status_codes = models.JSONField(default=list, blank=True)
    expected_response_headers = models.JSONField(default=list, blank=True)
    check_interval = models.PositiveIntegerField(default=300)
    check_timeout = models.PositiveIntegerField(default=30)
    fail_threshold = models.PositiveSmallIntegerField(default=3)
    contacts = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "monitoring"
        ordering = ("name",)
        indexes = [
            models.Index(fields=["organization_id", "is_active"], name="monitor_org_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.type} {self.url})"


class CheckLog(models.Model):
    """Immutable raw result of a single probe execution."""

    monitor = models.ForeignKey(Monitor, on_delete=models.CASCADE, related_name="logs")
    organization_id = models.UUIDField(db_index=True)
    status = models.CharField(max_length=8, choices=CheckStatus.choices)
    response_time = models.PositiveIntegerField(default=0)
    tcp_connect_time = models.PositiveIntegerField(null=True, blank=True)
    http_status = models.PositiveSmallIntegerField(null=True, blank=True)
    http_version = models.CharField(max_length=16, blank=True)
    response_size = models.PositiveIntegerField(null=True, blank=True)
    redirect_count = models.PositiveSmallIntegerField(default=0)
    error_message = models.TextField(blank=True)
    error_code = models.CharField(max_length=32, blank=True)
    request_url = models.CharField(max_length=2048, blank=True)
    request_method = models.CharField(max_length=8, blank=True)
    request_headers = models.JSONField(default=dict, blank=True)
    response_headers = models.JSONField(default=dict, blank=True)
    response_body = models.TextField(blank=True)
    response_body_truncated = models.BooleanField(default=False)
    user_agent = models.CharField(max_length=2048, blank=True)
    dispatch = models.OneToOneField(
        "Dispatch",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="log",
    )
    checked_at = models.DateTimeField(default=timezone.now)

    class Meta:
        app_label = "monitoring"
        ordering = ("-checked_at", "-id")
        indexes = [
            models.Index(fields=["monitor", "checked_at"], name="checklog_monitor_time_idx"),
            models.Index(
                fields=["monitor", "status", "checked_at"],
                name="checklog_monitor_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.monitor_id} {self.status} @ {self.checked_at.isoformat()}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Check logs are append-only and cannot be updated.")
        super().save(*args, **kwargs)


class DailySummary(models.Model):
    """Rolling per-day aggregate for one monitor."""

    monitor = models.ForeignKey(Monitor, on_delete=models.CASCADE, related_name="daily_summaries")
    organization_id = models.UUIDField(db_index=True)
    date = models.DateField()
    total_checks = models.PositiveIntegerField(default=0)
    successful_checks = models.PositiveIntegerField(default=0)
    failed_checks = models.PositiveIntegerField(default=0)
    timeout_checks = models.PositiveIntegerField(default=0)
    error_checks = models.PositiveIntegerField(default=0)
    total_response_time = models.BigIntegerField(default=0)
    min_response_time = models.PositiveIntegerField(null=True, blank=True)
    max_response_time = models.PositiveIntegerField(null=True, blank=True)
    uptime_percentage = models.FloatField(default=0.0)
    average_response_time = models.FloatField(default=0.0)
    updated_at = models.DateTimeField(auto_now=True)

    _STATUS_COUNTERS = {
        CheckStatus.SUCCESS.value: "successful_checks",
        CheckStatus.FAILURE.value: "failed_checks",
        CheckStatus.TIMEOUT.value: "timeout_checks",
        CheckStatus.ERROR.value: "error_checks",
    }

    class Meta:
        app_label = "monitoring"
        ordering = ("monitor", "date")
        constraints = [
            models.UniqueConstraint(fields=["monitor", "date"], name="daily_summary_monitor_date"),
        ]

    def __str__(self) -> str:
        return f"{self.monitor_id} {self.date.isoformat()} ({self.uptime_percentage:.2f}%)"

    def reset(self) -> None:
        self.total_checks = 0
        self.successful_checks = 0
        self.failed_checks = 0
        self.timeout_checks = 0
        self.error_checks = 0
        self.total_response_time = 0
        self.min_response_time = None
        self.max_response_time = None
        self.uptime_percentage = 0.0
        self.average_response_time = 0.0

    def add_check(self, status: str, response_time: int | None) -> None:
        """Fold one result into the counters and recompute derived fields."""

        counter = self._STATUS_COUNTERS.get(status)
        if counter is None:
            raise ValueError(f"Unknown check status: {status!r}")
        setattr(self, counter, getattr(self, counter) + 1)
        self.total_checks += 1

        if response_time is not None:
            self.total_response_time += response_time
            if self.min_response_time is None or response_time < self.min_response_time:
                self.min_response_time = response_time
            if self.max_response_time is None or response_time > self.max_response_time:
                self.max_response_time = response_time

        self.refresh_derived()

    def refresh_derived(self) -> None:
        if self.total_checks:
            self.uptime_percentage = self.successful_checks / self.total_checks * 100
            self.average_response_time = self.total_response_time / self.total_checks
        else:
            self.uptime_percentage = 0.0
            self.average_response_time = 0.0


class DispatchKind(models.TextChoices):
    ADHOC = "adhoc", "Ad-hoc"
    RECURRING = "recurring", "Recurring"


class DispatchStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    DISCARDED = "discarded", "Discarded"
    CANCELLED = "cancelled", "Cancelled"
    FAILED = "failed", "Failed"


class Dispatch(models.Model):
    """One queued "run this monitor's check now" instance."""

    id = models.BigAutoField(primary_key=True)
    monitor = models.ForeignKey(Monitor, on_delete=models.CASCADE, related_name="dispatches")
    kind = models.CharField(max_length=16, choices=DispatchKind.choices)
    payload = models.JSONField(default=dict)
    status = models.CharField(
        max_length=16,
        choices=DispatchStatus.choices,
        default=DispatchStatus.PENDING,
        db_index=True,
    )
    task_id = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    note = models.CharField(max_length=255, blank=True)

    class Meta:
        app_label = "monitoring"
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(
                fields=["monitor", "status", "created_at"],
                name="dispatch_monitor_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind} dispatch {self.pk} for {self.monitor_id} [{self.status}]"


__all__ = [
    "CheckLog",
    "CheckStatus",
    "DailySummary",
    "Dispatch",
    "DispatchKind",
    "DispatchStatus",
    "FAILURE_STATUSES",
    "Monitor",
    "MonitorType",
]
