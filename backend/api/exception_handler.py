"""
DRF exception handler for the monitoring API.

Client errors pass through unchanged. Anything else is logged in full and, outside DEBUG,
replaced by a generic body so connection strings, SQL and probe targets never reach clients.
"""

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .logging_utils import sanitize_log_value

logger = logging.getLogger(__name__)

# Exceptions whose DRF response body is safe to return as-is.
SAFE_EXCEPTIONS = (
    exceptions.ValidationError,
    exceptions.ParseError,
    exceptions.Throttled,
    exceptions.AuthenticationFailed,
    exceptions.NotAuthenticated,
    exceptions.PermissionDenied,
    exceptions.MethodNotAllowed,
    exceptions.NotFound,
    PermissionDenied,
    Http404,
)

_DATABASE_KEYWORDS = ("sql", "database", "relation", "table")


def _error_body(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def custom_exception_handler(exc, context):
    """Build the response for ``exc``, log it and sanitize it unless DEBUG is on."""
    response = drf_exception_handler(exc, context)
    if response is None:
        response = Response(
            _error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again later.",
            ),
            status=500,
        )

    log_exception(exc, context, response)

    if not settings.DEBUG:
        response = sanitize_error_response(response, exc)
    return response


def sanitize_error_response(response, exc):
    if not response.data or isinstance(exc, SAFE_EXCEPTIONS):
        return response

    if any(keyword in str(exc).lower() for keyword in _DATABASE_KEYWORDS):
        response.data = _error_body(
            "database_error", "A database error occurred. Please try again later."
        )
    elif response.status_code >= 500:
        response.data = _error_body(
            "internal_server_error", "An unexpected error occurred. Please try again later."
        )
    return response


def log_exception(exc, context, response):
    """5xx at ERROR, throttling at INFO, every other client error at WARNING."""
    request = context.get("request")
    view = context.get("view")

    if response.status_code >= 500:
        level = logging.ERROR
    elif isinstance(exc, exceptions.Throttled):
        level = logging.INFO
    else:
        level = logging.WARNING

    view_name = view.__class__.__name__ if view else "unknown"
    user = getattr(request, "user", None) if request else None
    logger.log(
        level,
        sanitize_log_value(f"{type(exc).__name__} in {view_name}: {exc}"),
        exc_info=settings.DEBUG and level == logging.ERROR,
        extra={
            "exception_type": type(exc).__name__,
            "request_path": sanitize_log_value(request.path if request else None),
            "request_method": request.method if request else None,
            "status_code": response.status_code,
            "user_id": getattr(user, "id", None),
        },
    )
