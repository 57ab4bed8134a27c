from django.contrib import admin

from .models import CheckLog, DailySummary, Dispatch, Monitor


@admin.register(Monitor)
class MonitorAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "url", "organization_id", "check_interval", "is_active")
    list_filter = ("type", "is_active", "created_at")
    search_fields = ("name", "url", "organization_id")
    readonly_fields = ("id", "created_at", "updated_at")

    fieldsets = (
        ("Target", {"fields": ("id", "organization_id", "name", "type", "url", "is_active")}),
        (
            "Request",
            {
                "fields": (
                    "http_method",
                    "request_headers",
                    "follow_redirects",
                    "expected_status_codes",
                    "expected_response_headers",
                )
            },
        ),
        (
            "Schedule",
            {"fields": ("check_interval", "check_timeout", "fail_threshold", "contacts")},
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(CheckLog)
class CheckLogAdmin(admin.ModelAdmin):
    list_display = ("monitor", "status", "http_status", "response_time", "checked_at")
    list_filter = ("status", "checked_at")
    search_fields = ("monitor__name", "request_url", "error_code")

    # Check logs are append-only.
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(DailySummary)
class DailySummaryAdmin(admin.ModelAdmin):
    list_display = (
        "monitor",
        "date",
        "total_checks",
        "successful_checks",
        "uptime_percentage",
        "average_response_time",
    )
    list_filter = ("date",)
    search_fields = ("monitor__name",)
    readonly_fields = ("updated_at",)


@admin.register(Dispatch)
class DispatchAdmin(admin.ModelAdmin):
    list_display = ("id", "monitor", "kind", "status", "created_at", "finished_at")
    list_filter = ("kind", "status")
    search_fields = ("monitor__name", "task_id")
    readonly_fields = ("task_id", "created_at", "started_at", "finished_at")
