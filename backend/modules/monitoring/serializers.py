"""Monitoring serializers for monitor CRUD and the reporting surface."""

from __future__ import annotations

import re
from ipaddress import ip_address, ip_network
from urllib.parse import urlparse

from rest_framework import serializers

from .models import CheckLog, Dispatch, Monitor, MonitorType

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
STATUS_PATTERN = re.compile(r"^(\d{3})(?:-(\d{3}))?$")
PRIVATE_NETWORKS = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("127.0.0.0/8"),
    ip_network("169.254.0.0/16"),
    ip_network("::1/128"),
    ip_network("fe80::/10"),
    ip_network("fc00::/7"),
)


class HeaderListField(serializers.ListField):
    """Ordered list of ``{"key": ..., "value": ...}`` header pairs."""

    child = serializers.DictField(child=serializers.CharField(allow_blank=True, max_length=2048))

    def to_internal_value(self, data):
        items = super().to_internal_value(data)
        headers = []
        for item in items:
            key = (item.get("key") or "").strip()
            if not key or set(item) - {"key", "value"}:
                raise serializers.ValidationError(
                    "Each header must be an object with a non-empty \"key\" and a \"value\"."
                )
            headers.append({"key": key, "value": item.get("value", "")})
        return headers


class MonitorSerializer(serializers.ModelSerializer):
    request_headers = HeaderListField(required=False)
    expected_response_headers = HeaderListField(required=False)
    expected_status_codes = serializers.ListField(
        child=serializers.CharField(max_length=7), required=False
    )
    contacts = serializers.ListField(
        child=serializers.CharField(max_length=255), required=False
    )
    check_interval = serializers.IntegerField(min_value=180, max_value=3600, required=False)
    check_timeout = serializers.IntegerField(min_value=5, max_value=120, required=False)
    fail_threshold = serializers.IntegerField(min_value=1, max_value=10, required=False)

    class Meta:
        model = Monitor
        fields = [
            "id",
            "organization_id",
            "name",
            "type",
            "url",
            "http_method",
            "request_headers",
            "follow_redirects",
            "expected_status_codes",
            "expected_response_headers",
            "check_interval",
            "check_timeout",
            "fail_threshold",
            "contacts",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ("id", "created_at", "updated_at")

    def validate_http_method(self, value: str) -> str:
        method = value.upper()
        if method not in HTTP_METHODS:
            raise serializers.ValidationError(
                f"HTTP method must be one of {', '.join(HTTP_METHODS)}."
            )
        return method

    def validate_expected_status_codes(self, value: list[str]) -> list[str]:
        for pattern in value:
            match = STATUS_PATTERN.match(pattern.strip())
            if not match:
                raise serializers.ValidationError(
                    f"Invalid status code pattern {pattern!r}; use 200 or 200-299."
                )
            if match.group(2) and int(match.group(1)) > int(match.group(2)):
                raise serializers.ValidationError(
                    f"Invalid status code range {pattern!r}; start must not exceed end."
                )
        return [pattern.strip() for pattern in value]

    def validate(self, attrs):
        interval = attrs.get("check_interval", getattr(self.instance, "check_interval", 300))
        timeout = attrs.get("check_timeout", getattr(self.instance, "check_timeout", 30))
        if timeout >= interval:
            raise serializers.ValidationError(
                {"check_timeout": "Check timeout must be less than check interval."}
            )

        monitor_type = attrs.get("type", getattr(self.instance, "type", MonitorType.HTTPS))
        url = attrs.get("url", getattr(self.instance, "url", ""))
        if "url" in attrs or "type" in attrs:
            self._validate_target(monitor_type, url)
        return attrs

    def _validate_target(self, monitor_type: str, url: str) -> None:
        """
        Validate the target to prevent SSRF attacks by enforcing scheme/hostname rules and
        blocking private IP ranges.
        """

        if "://" not in url and monitor_type == MonitorType.TCP:
            url = f"tcp://{url}"
        parsed = urlparse(url)

        if monitor_type == MonitorType.HTTPS and parsed.scheme not in ("http", "https"):
            raise serializers.ValidationError(
                {"url": "Only HTTP and HTTPS protocols are supported."}
            )

        try:
            hostname = parsed.hostname
            parsed.port  # noqa: B018 - raises ValueError on an invalid port
        except ValueError:
            raise serializers.ValidationError({"url": "Invalid URL format."}) from None

        if not hostname:
            raise serializers.ValidationError({"url": "URL must include a hostname."})

        try:
            addr = ip_address(hostname)
        except ValueError:
            return

        if any(addr in network for network in PRIVATE_NETWORKS):
            raise serializers.ValidationError(
                {"url": "Cannot monitor private IP addresses or internal services."}
            )


class CheckLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = CheckLog
        fields = [
            "id",
            "monitor",
            "status",
            "response_time",
            "tcp_connect_time",
            "http_status",
            "http_version",
            "response_size",
            "redirect_count",
            "error_message",
            "error_code",
            "request_url",
            "request_method",
            "request_headers",
            "response_headers",
            "response_body",
            "response_body_truncated",
            "user_agent",
            "dispatch",
            "checked_at",
        ]
        read_only_fields = fields


class DispatchSerializer(serializers.ModelSerializer):
    class Meta:
        model = Dispatch
        fields = [
            "id",
            "monitor",
            "kind",
            "status",
            "task_id",
            "created_at",
            "started_at",
            "finished_at",
            "note",
        ]
        read_only_fields = fields


__all__ = [
    "CheckLogSerializer",
    "DispatchSerializer",
    "MonitorSerializer",
]
