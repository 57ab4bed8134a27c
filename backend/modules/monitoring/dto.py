"""Value objects passed between the scheduler, Celery payloads and the probe executor."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any
from uuid import UUID

from django.utils import timezone

from .models import CheckLog, Monitor

DateTimeLike = datetime | None
HeaderPairs = tuple[tuple[str, str], ...]


def _format_datetime(value: DateTimeLike) -> str | None:
    """Serialize datetimes to ISO8601 strings compatible with DRF output."""

    if value is None:
        return None

    if timezone.is_naive(value):
        value = timezone.make_aware(value, dt_timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def _parse_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _header_pairs(value: Any) -> HeaderPairs:
    """Accept ``[{"key": ..., "value": ...}]`` or ``[[key, value]]`` and return ordered pairs."""

    pairs: list[tuple[str, str]] = []
    for item in value or ():
        if isinstance(item, Mapping):
            key, header_value = item.get("key"), item.get("value", "")
        else:
            key, header_value = item[0], item[1]
        if key:
            pairs.append((str(key), str(header_value)))
    return tuple(pairs)


def _pairs_to_list(pairs: HeaderPairs) -> list[dict[str, str]]:
    return [{"key": key, "value": value} for key, value in pairs]


@dataclass(slots=True, frozen=True)
class MonitorSpec:
    """Configuration snapshot taken when a check is dispatched."""

    id: UUID
    organization_id: UUID
    name: str
    type: str
    url: str
    http_method: str = "GET"
    request_headers: HeaderPairs = ()
    follow_redirects: bool = True
    expected_status_codes: tuple[str, ...] = ()
    expected_response_headers: HeaderPairs = ()
    check_interval: int = 300
    check_timeout: int = 30
    fail_threshold: int = 3
    contacts: tuple[str, ...] = ()
    is_active: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "organization_id": str(self.organization_id),
            "name": self.name,
            "type": self.type,
            "url": self.url,
            "http_method": self.http_method,
            "request_headers": _pairs_to_list(self.request_headers),
            "follow_redirects": self.follow_redirects,
            "expected_status_codes": list(self.expected_status_codes),
            "expected_response_headers": _pairs_to_list(self.expected_response_headers),
            "check_interval": self.check_interval,
            "check_timeout": self.check_timeout,
            "fail_threshold": self.fail_threshold,
            "contacts": list(self.contacts),
            "is_active": self.is_active,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> MonitorSpec:
        return cls(
            id=UUID(str(payload["id"])),
            organization_id=UUID(str(payload["organization_id"])),
            name=str(payload.get("name", "")),
            type=str(payload.get("type", "https")),
            url=str(payload.get("url", "")),
            http_method=str(payload.get("http_method") or "GET").upper(),
            request_headers=_header_pairs(payload.get("request_headers")),
            follow_redirects=bool(payload.get("follow_redirects", True)),
            expected_status_codes=tuple(
                str(code) for code in payload.get("expected_status_codes") or ()
            ),
            expected_response_headers=_header_pairs(payload.get("expected_response_headers")),
            check_interval=int(payload.get("check_interval", 300)),
            check_timeout=int(payload.get("check_timeout", 30)),
            fail_threshold=int(payload.get("fail_threshold", 3)),
            contacts=tuple(str(contact) for contact in payload.get("contacts") or ()),
            is_active=bool(payload.get("is_active", True)),
        )

    @classmethod
    def from_model(cls, monitor: Monitor) -> MonitorSpec:
        return cls(
            id=monitor.id,
            organization_id=monitor.organization_id,
            name=monitor.name,
            type=monitor.type,
            url=monitor.url,
            http_method=(monitor.http_method or "GET").upper(),
            request_headers=_header_pairs(monitor.request_headers),
            follow_redirects=monitor.follow_redirects,
            expected_status_codes=tuple(str(code) for code in monitor.expected_status_codes or ()),
            expected_response_headers=_header_pairs(monitor.expected_response_headers),
            check_interval=monitor.check_interval,
            check_timeout=monitor.check_timeout,
            fail_threshold=monitor.fail_threshold,
            contacts=tuple(str(contact) for contact in monitor.contacts or ()),
            is_active=monitor.is_active,
        )


@dataclass(slots=True, frozen=True)
class CheckResult:
    """Outcome of one probe execution; written once to the result store."""

    status: str
    response_time: int
    checked_at: datetime = field(default_factory=timezone.now)
    tcp_connect_time: int | None = None
    http_status: int | None = None
    http_version: str = ""
    response_size: int | None = None
    redirect_count: int = 0
    error_message: str = ""
    error_code: str = ""
    request_url: str = ""
    request_method: str = ""
    request_headers: Mapping[str, str] = field(default_factory=dict)
    response_headers: Mapping[str, str] = field(default_factory=dict)
    response_body: str = ""
    response_body_truncated: bool = False
    user_agent: str = ""

    @property
    def is_failure(self) -> bool:
        return self.status != "success"

    @classmethod
    def error(
        cls,
        message: str,
        code: str,
        *,
        response_time: int = 0,
        status: str = "error",
        **extra: Any,
    ) -> CheckResult:
        return cls(
            status=status,
            response_time=response_time,
            error_message=message,
            error_code=code,
            **extra,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "response_time": self.response_time,
            "checked_at": _format_datetime(self.checked_at),
            "tcp_connect_time": self.tcp_connect_time,
            "http_status": self.http_status,
            "http_version": self.http_version,
            "response_size": self.response_size,
            "redirect_count": self.redirect_count,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "request_url": self.request_url,
            "request_method": self.request_method,
            "request_headers": dict(self.request_headers),
            "response_headers": dict(self.response_headers),
            "response_body": self.response_body,
            "response_body_truncated": self.response_body_truncated,
            "user_agent": self.user_agent,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> CheckResult:
        return cls(
            status=str(payload["status"]),
            response_time=int(payload.get("response_time") or 0),
            checked_at=_parse_datetime(payload.get("checked_at")) or timezone.now(),
            tcp_connect_time=payload.get("tcp_connect_time"),
            http_status=payload.get("http_status"),
            http_version=str(payload.get("http_version") or ""),
            response_size=payload.get("response_size"),
            redirect_count=int(payload.get("redirect_count") or 0),
            error_message=str(payload.get("error_message") or ""),
            error_code=str(payload.get("error_code") or ""),
            request_url=str(payload.get("request_url") or ""),
            request_method=str(payload.get("request_method") or ""),
            request_headers=dict(payload.get("request_headers") or {}),
            response_headers=dict(payload.get("response_headers") or {}),
            response_body=str(payload.get("response_body") or ""),
            response_body_truncated=bool(payload.get("response_body_truncated", False)),
            user_agent=str(payload.get("user_agent") or ""),
        )

    @classmethod
    def from_model(cls, log: CheckLog) -> CheckResult:
        return cls(
            status=log.status,
            response_time=log.response_time,
            checked_at=log.checked_at,
            tcp_connect_time=log.tcp_connect_time,
            http_status=log.http_status,
            http_version=log.http_version,
            response_size=log.response_size,
            redirect_count=log.redirect_count,
            error_message=log.error_message,
            error_code=log.error_code,
            request_url=log.request_url,
            request_method=log.request_method,
            request_headers=dict(log.request_headers or {}),
            response_headers=dict(log.response_headers or {}),
            response_body=log.response_body,
            response_body_truncated=log.response_body_truncated,
            user_agent=log.user_agent,
        )


__all__ = [
    "CheckResult",
    "HeaderPairs",
    "MonitorSpec",
]
