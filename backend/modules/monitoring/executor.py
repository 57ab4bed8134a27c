"""Probe executor: maps a monitor configuration snapshot to a single check result.

The executor knows nothing about scheduling or storage. Network-level problems
are classified into ``timeout``/``error`` results instead of being raised; the
only exception that escapes is :class:`UnsupportedMonitorType`.
"""

from __future__ import annotations

import logging
import re
import socket
import time
from collections.abc import Callable, Iterable, Mapping
from urllib.parse import urljoin, urlparse

import requests
from django.conf import settings
from requests.structures import CaseInsensitiveDict

from .dto import CheckResult, HeaderPairs, MonitorSpec

logger = logging.getLogger("monitoring")
performance_logger = logging.getLogger("monitoring.performance")

MAX_RESPONSE_BODY_SIZE = 10_000
DEFAULT_USER_AGENT = "UptimeWatch/1.0"
_CHUNK_SIZE = 8192
_STATUS_PATTERN = re.compile(r"^\s*(\d{1,3})\s*(?:-\s*(\d{1,3})\s*)?$")
_HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}


class UnsupportedMonitorType(ValueError):
    """Raised when a spec carries a monitor type the executor cannot probe."""


class _DeadlineExceeded(Exception):
    """Raised when the wall-clock deadline passes before the response is complete."""


def status_matches(status_code: int, patterns: Iterable[str]) -> bool:
    """Return ``True`` when ``status_code`` satisfies any expected pattern.

    Patterns are an exact code (``"200"``) or an inclusive range (``"200-299"``).
    Anything else never matches. An empty pattern list always passes.
    """

    patterns = list(patterns)
    if not patterns:
        return True

    for pattern in patterns:
        match = _STATUS_PATTERN.match(str(pattern))
        if not match:
            continue
        low = int(match.group(1))
        high = int(match.group(2)) if match.group(2) is not None else low
        if low <= status_code <= high:
            return True
    return False


def headers_match(response_headers: Mapping[str, str], expected: HeaderPairs) -> bool:
    """Every expected header must be present and contain the configured value."""

    if not expected:
        return True

    lookup = CaseInsensitiveDict(response_headers)
    for key, value in expected:
        actual = lookup.get(key)
        if actual is None or value not in actual:
            return False
    return True


def resolve_tcp_target(url: str) -> tuple[str, int]:
    parsed = urlparse(url if "://" in url else f"tcp://{url}")
    if not parsed.hostname:
        raise ValueError(f"Cannot determine host from {url!r}")
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return parsed.hostname, port


class ProbeExecutor:
    """Execute HTTPS and TCP checks with injectable transport seams."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
        connect: Callable[..., socket.socket] = socket.create_connection,
        clock: Callable[[], float] = time.monotonic,
        user_agent: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._connect = connect
        self._clock = clock
        self._user_agent = user_agent

    @property
    def user_agent(self) -> str:
        return self._user_agent or getattr(settings, "MONITOR_USER_AGENT", DEFAULT_USER_AGENT)

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self._clock() - started) * 1000)))

    def check(self, spec: MonitorSpec) -> CheckResult:
        if spec.type == "https":
            result = self.check_https(spec)
        elif spec.type == "tcp":
            result = self.check_tcp(spec)
        else:
            raise UnsupportedMonitorType(f"Unsupported monitor type: {spec.type!r}")

        performance_logger.info(
            "Probe completed",
            extra={
                "monitor_id": str(spec.id),
                "type": spec.type,
                "status": result.status,
                "response_time_ms": result.response_time,
                "error_code": result.error_code or None,
            },
        )
        return result

    # ------------------------------------------------------------------
    # HTTPS
    # ------------------------------------------------------------------
    def check_https(self, spec: MonitorSpec) -> CheckResult:
        headers: CaseInsensitiveDict = CaseInsensitiveDict()
        for key, value in spec.request_headers:
            headers[key] = value
        headers.setdefault("User-Agent", self.user_agent)
        headers.setdefault("Accept", "*/*")
        request_headers = dict(headers.items())

        method = spec.http_method.upper()
        base = {
            "request_url": spec.url,
            "request_method": method,
            "request_headers": request_headers,
            "user_agent": headers["User-Agent"],
        }

        logger.info(
            "Issuing HTTP probe",
            extra={
                "monitor_id": str(spec.id),
                "url": spec.url,
                "method": method,
                "follow_redirects": spec.follow_redirects,
                "timeout": spec.check_timeout,
            },
        )

        started = self._clock()
        deadline = started + spec.check_timeout
        session = self._session_factory()
        try:
            response = session.request(
                method,
                spec.url,
                headers=request_headers,
                timeout=spec.check_timeout,
                allow_redirects=spec.follow_redirects,
                stream=True,
            )
            try:
                # Per-socket timeouts do not bound a server trickling headers.
                self._check_deadline(deadline)
                body, size, truncated = self._read_body(response, deadline)
                self._check_deadline(deadline)
            finally:
                response.close()
        except (requests.Timeout, _DeadlineExceeded):
            return self._failed_https(
                spec, started, base, "timeout", "Request timeout", "TIMEOUT"
            )
        except requests.exceptions.SSLError as exc:
            return self._failed_https(spec, started, base, "error", str(exc), "SSL_ERROR")
        except requests.ConnectionError as exc:
            if self._clock() >= deadline:
                return self._failed_https(
                    spec, started, base, "timeout", "Request timeout", "TIMEOUT"
                )
            return self._failed_https(spec, started, base, "error", str(exc), "CONNECTION_ERROR")
        except requests.TooManyRedirects as exc:
            return self._failed_https(
                spec, started, base, "error", str(exc), "TOO_MANY_REDIRECTS"
            )
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ) as exc:
            return self._failed_https(spec, started, base, "error", str(exc), "INVALID_URL")
        except requests.RequestException as exc:
            return self._failed_https(spec, started, base, "error", str(exc), "REQUEST_ERROR")
        finally:
            session.close()

        response_time = self._elapsed_ms(started)
        response_headers = {key.lower(): value for key, value in response.headers.items()}

        if spec.follow_redirects:
            redirect_count = len(response.history)
            final_url = response.url or spec.url
        else:
            redirect_count = 0
            final_url = spec.url
            location = response.headers.get("Location")
            if 300 <= response.status_code < 400 and location:
                redirect_count = 1
                final_url = urljoin(spec.url, location)

        status_ok = status_matches(response.status_code, spec.expected_status_codes)
        headers_ok = headers_match(response_headers, spec.expected_response_headers)
        status = "success" if status_ok and headers_ok else "failure"

        if status == "failure":
            logger.info(
                "HTTP probe expectations unmet",
                extra={
                    "monitor_id": str(spec.id),
                    "http_status": response.status_code,
                    "status_ok": status_ok,
                    "headers_ok": headers_ok,
                },
            )

        return CheckResult(
            status=status,
            response_time=response_time,
            http_status=response.status_code,
            http_version=self._http_version(response),
            response_size=size,
            redirect_count=redirect_count,
            response_headers=response_headers,
            response_body=body,
            response_body_truncated=truncated,
            **{**base, "request_url": final_url},
        )

    def _check_deadline(self, deadline: float) -> None:
        if self._clock() >= deadline:
            raise _DeadlineExceeded()

    def _read_body(self, response, deadline: float) -> tuple[str, int, bool]:
        sample = bytearray()
        size = 0
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            self._check_deadline(deadline)
            if not chunk:
                continue
            size += len(chunk)
            room = MAX_RESPONSE_BODY_SIZE - len(sample)
            if room > 0:
                sample.extend(chunk[:room])

        encoding = response.encoding or "utf-8"
        try:
            text = bytes(sample).decode(encoding, errors="replace")
        except LookupError:
            text = bytes(sample).decode("utf-8", errors="replace")
        # PostgreSQL text columns reject NUL characters.
        return text.replace("\x00", ""), size, size > MAX_RESPONSE_BODY_SIZE

    @staticmethod
    def _http_version(response) -> str:
        raw_version = getattr(getattr(response, "raw", None), "version", None)
        return _HTTP_VERSIONS.get(raw_version, "unknown")

    def _failed_https(
        self,
        spec: MonitorSpec,
        started: float,
        base: dict,
        status: str,
        message: str,
        code: str,
    ) -> CheckResult:
        response_time = self._elapsed_ms(started)
        log = logger.warning if status == "timeout" else logger.error
        log(
            "HTTP probe failed",
            extra={
                "monitor_id": str(spec.id),
                "url": spec.url,
                "error": message,
                "error_code": code,
                "response_time_ms": response_time,
            },
        )
        return CheckResult.error(message, code, status=status, response_time=response_time, **base)

    # ------------------------------------------------------------------
    # TCP
    # ------------------------------------------------------------------
    def check_tcp(self, spec: MonitorSpec) -> CheckResult:
        base = {"request_url": spec.url, "request_method": "TCP"}
        started = self._clock()

        try:
            host, port = resolve_tcp_target(spec.url)
        except ValueError as exc:
            return CheckResult.error(
                str(exc), "INVALID_URL", response_time=self._elapsed_ms(started), **base
            )

        logger.info(
            "Attempting TCP connection",
            extra={
                "monitor_id": str(spec.id),
                "host": host,
                "port": port,
                "timeout": spec.check_timeout,
            },
        )

        sock = None
        try:
            sock = self._connect((host, port), timeout=spec.check_timeout)
        except TimeoutError:
            response_time = self._elapsed_ms(started)
            logger.warning(
                "TCP connection timeout",
                extra={"monitor_id": str(spec.id), "host": host, "port": port},
            )
            return CheckResult.error(
                "TCP connection timeout",
                "TCP_TIMEOUT",
                status="timeout",
                response_time=response_time,
                **base,
            )
        except OSError as exc:
            response_time = self._elapsed_ms(started)
            logger.error(
                "TCP connection failed",
                extra={
                    "monitor_id": str(spec.id),
                    "host": host,
                    "port": port,
                    "error": str(exc),
                },
            )
            return CheckResult.error(str(exc), "TCP_ERROR", response_time=response_time, **base)
        finally:
            if sock is not None:
                sock.close()

        response_time = self._elapsed_ms(started)
        return CheckResult(
            status="success",
            response_time=response_time,
            tcp_connect_time=response_time,
            **base,
        )


probe_executor = ProbeExecutor()

__all__ = [
    "MAX_RESPONSE_BODY_SIZE",
    "ProbeExecutor",
    "UnsupportedMonitorType",
    "headers_match",
    "probe_executor",
    "resolve_tcp_target",
    "status_matches",
]
