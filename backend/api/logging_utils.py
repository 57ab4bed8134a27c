"""Redaction of secrets before values are written to log files."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"

# Monitors may carry credentials in their URL or request headers, and broker
# errors echo connection strings.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"(?i)\b(?:postgres(?:ql)?|mysql|redis|rediss|mongodb|amqp)://\S+"),
        "[REDACTED_DSN]",
    ),
    (re.compile(r"Bearer\s+[\w\-.~+/]+=*"), "Bearer [REDACTED_TOKEN]"),
    (re.compile(r"(?i)(https?://)[^/\s:@]+:[^/\s@]+@"), r"\1[REDACTED_CREDENTIALS]@"),
)

SENSITIVE_KEYS = frozenset({"authorization", "cookie", "set-cookie", "x-api-key", "password"})


def redact_text(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_log_value(value: Any) -> Any:
    """Return a copy of ``value`` with secrets masked, walking nested containers.

    Mapping entries whose key names a credential header are replaced wholesale.
    """

    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS
            else sanitize_log_value(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return type(value)(sanitize_log_value(item) for item in value)
    return value
