import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Monitor",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("organization_id", models.UUIDField(db_index=True)),
                ("name", models.CharField(max_length=120)),
                (
                    "type",
                    models.CharField(
                        choices=[("https", "HTTPS"), ("tcp", "TCP")],
                        default="https",
                        max_length=8,
                    ),
                ),
                ("url", models.CharField(max_length=2048)),
                ("http_method", models.CharField(default="GET", max_length=8)),
                ("request_headers", models.JSONField(blank=True, default=list)),
                ("follow_redirects", models.BooleanField(default=True)),
                ("expected_status_codes", models.JSONField(blank=True, default=list)),
                ("expected_response_headers", models.JSONField(blank=True, default=list)),
                ("check_interval", models.PositiveIntegerField(default=300)),
                ("check_timeout", models.PositiveIntegerField(default=30)),
                ("fail_threshold", models.PositiveSmallIntegerField(default=3)),
                ("contacts", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("name",),
                "indexes": [
                    models.Index(
                        fields=["organization_id", "is_active"], name="monitor_org_active_idx"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckLog",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("organization_id", models.UUIDField(db_index=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("success", "Success"),
                            ("failure", "Failure"),
                            ("timeout", "Timeout"),
                            ("error", "Error"),
                        ],
                        max_length=8,
                    ),
                ),
                ("response_time", models.PositiveIntegerField(default=0)),
                ("tcp_connect_time", models.PositiveIntegerField(blank=True, null=True)),
                ("http_status", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("http_version", models.CharField(blank=True, max_length=16)),
                ("response_size", models.PositiveIntegerField(blank=True, null=True)),
                ("redirect_count", models.PositiveSmallIntegerField(default=0)),
                ("error_message", models.TextField(blank=True)),
                ("error_code", models.CharField(blank=True, max_length=32)),
                ("request_url", models.CharField(blank=True, max_length=2048)),
                ("request_method", models.CharField(blank=True, max_length=8)),
                ("request_headers", models.JSONField(blank=True, default=dict)),
                ("response_headers", models.JSONField(blank=True, default=dict)),
                ("response_body", models.TextField(blank=True)),
                ("response_body_truncated", models.BooleanField(default=False)),
                ("user_agent", models.CharField(blank=True, max_length=255)),
                ("checked_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "monitor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="logs",
                        to="monitoring.monitor",
                    ),
                ),
            ],
            options={
                "ordering": ("-checked_at", "-id"),
                "indexes": [
                    models.Index(
                        fields=["monitor", "checked_at"], name="checklog_monitor_time_idx"
                    ),
                    models.Index(
                        fields=["monitor", "status", "checked_at"],
                        name="checklog_monitor_status_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DailySummary",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("organization_id", models.UUIDField(db_index=True)),
                ("date", models.DateField()),
                ("total_checks", models.PositiveIntegerField(default=0)),
                ("successful_checks", models.PositiveIntegerField(default=0)),
                ("failed_checks", models.PositiveIntegerField(default=0)),
                ("timeout_checks", models.PositiveIntegerField(default=0)),
                ("error_checks", models.PositiveIntegerField(default=0)),
                ("total_response_time", models.BigIntegerField(default=0)),
                ("min_response_time", models.PositiveIntegerField(blank=True, null=True)),
                ("max_response_time", models.PositiveIntegerField(blank=True, null=True)),
                ("uptime_percentage", models.FloatField(default=0.0)),
                ("average_response_time", models.FloatField(default=0.0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "monitor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="daily_summaries",
                        to="monitoring.monitor",
                    ),
                ),
            ],
            options={
                "ordering": ("monitor", "date"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("monitor", "date"), name="daily_summary_monitor_date"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Dispatch",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("adhoc", "Ad-hoc"), ("recurring", "Recurring")],
                        max_length=16,
                    ),
                ),
                ("payload", models.JSONField(default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("discarded", "Discarded"),
                            ("cancelled", "Cancelled"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("task_id", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("note", models.CharField(blank=True, max_length=255)),
                (
                    "monitor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dispatches",
                        to="monitoring.monitor",
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(
                        fields=["monitor", "status", "created_at"],
                        name="dispatch_monitor_status_idx",
                    )
                ],
            },
        ),
    ]
