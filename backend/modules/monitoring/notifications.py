"""Failure-threshold events handed to the (external) notification system."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from django.dispatch import Signal

logger = logging.getLogger("monitoring")

# Sent with ``event=FailureThresholdEvent`` when a monitor crosses its threshold.
failure_threshold_reached = Signal()


@dataclass(slots=True, frozen=True)
class FailureThresholdEvent:
    monitor_id: UUID
    organization_id: UUID
    monitor_name: str
    contacts: Sequence[str]
    status: str
    error_message: str
    error_code: str
    failures: int
    threshold: int
    occurred_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "monitor_id": str(self.monitor_id),
            "organization_id": str(self.organization_id),
            "monitor_name": self.monitor_name,
            "contacts": list(self.contacts),
            "status": self.status,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "failures": self.failures,
            "threshold": self.threshold,
            "occurred_at": self.occurred_at.isoformat(),
        }


def emit_failure_event(event: FailureThresholdEvent) -> None:
    """Publish the event in-process and queue the delivery task."""

    failure_threshold_reached.send(sender=FailureThresholdEvent, event=event)

    from .tasks import notify_monitor_failure  # Local import to avoid a cycle with tasks

    try:
        notify_monitor_failure.delay(event.to_dict())
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Failed to schedule failure notification",
            extra={"monitor_id": str(event.monitor_id), "error": str(exc)},
        )


__all__ = ["FailureThresholdEvent", "emit_failure_event", "failure_threshold_reached"]
