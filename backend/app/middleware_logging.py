"""
Request ID propagation and per-request access logging for the API.

RequestIDMiddleware must sit before RequestLoggingMiddleware so both log lines
carry the same ID.
"""

import logging
import time
import uuid

from api.logging_utils import sanitize_log_value
from django.utils.deprecation import MiddlewareMixin

from app.logging_filters import current_request_id

request_logger = logging.getLogger("api.requests")

REQUEST_ID_HEADER = "X-Request-ID"


def client_ip(request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "unknown")


class RequestIDMiddleware(MiddlewareMixin):
    """Reuse an inbound ``X-Request-ID`` or mint one, and expose it to log records."""

    def process_request(self, request):
        request.id = request.META.get("HTTP_X_REQUEST_ID") or uuid.uuid4().hex
        request._request_id_token = current_request_id.set(request.id)

    def process_response(self, request, response):
        request_id = getattr(request, "id", None)
        if request_id:
            response[REQUEST_ID_HEADER] = request_id
        token = getattr(request, "_request_id_token", None)
        if token is not None:
            current_request_id.reset(token)
        return response


class RequestLoggingMiddleware(MiddlewareMixin):
    """One line per request on ``api.requests``; 4xx and 5xx at WARNING."""

    def process_request(self, request):
        request._started = time.monotonic()

    def process_response(self, request, response):
        started = getattr(request, "_started", None)
        elapsed_ms = round((time.monotonic() - started) * 1000, 2) if started else None
        user = getattr(request, "user", None)

        request_logger.log(
            logging.WARNING if response.status_code >= 400 else logging.INFO,
            "%s %s -> %s",
            request.method,
            sanitize_log_value(request.path),
            response.status_code,
            extra={
                "request_id": getattr(request, "id", None),
                "query_params": sanitize_log_value(dict(request.GET)),
                "organization": request.GET.get("organization"),
                "ip_address": client_ip(request),
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
                "user_id": getattr(user, "id", None),
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "response_size_bytes": (
                    0 if getattr(response, "streaming", False) else len(response.content)
                ),
            },
        )
        return response
