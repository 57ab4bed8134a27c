"""Check worker: claim with backlog collapse, execute, persist, aggregate, notify."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .aggregator import daily_aggregator
from .dto import CheckResult, MonitorSpec
from .executor import ProbeExecutor, probe_executor
from .models import FAILURE_STATUSES, CheckLog, Dispatch, DispatchStatus
from .notifications import FailureThresholdEvent, emit_failure_event
from .store import ResultStore, result_store

logger = logging.getLogger("monitoring")
audit_logger = logging.getLogger("monitoring.audit")
summary_logger = logging.getLogger("monitoring.summary")

SummaryUpdater = Callable[[CheckLog], object]
Notifier = Callable[[FailureThresholdEvent], None]

ABANDONED_GRACE_SECONDS = 60


def is_abandoned(dispatch: Dispatch, *, now: datetime | None = None) -> bool:
    """A running dispatch whose probe should have finished long ago.

    A worker lost mid-check leaves its dispatch ``running``; the redelivered
    message starts over with no retry count, so it cannot rely on ``resume``.
    """

    if dispatch.status != DispatchStatus.RUNNING or dispatch.started_at is None:
        return False
    timeout = int((dispatch.payload or {}).get("check_timeout") or 30)
    cutoff = (now or timezone.now()) - timedelta(seconds=timeout + ABANDONED_GRACE_SECONDS)
    return dispatch.started_at < cutoff


def apply_summary_inline(log: CheckLog) -> None:
    daily_aggregator.apply_incremental(
        log.monitor_id,
        log.organization_id,
        CheckResult.from_model(log),
        log.checked_at,
    )


class CheckWorker:
    """Processes one dispatch end to end.

    Exactly one result is stored per dispatch that survives backlog collapse;
    the summary update and notification are side channels that never fail the check.
    """

    def __init__(
        self,
        *,
        executor: ProbeExecutor | None = None,
        store: ResultStore | None = None,
        summary_updater: SummaryUpdater | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._executor = executor or probe_executor
        self._store = store or result_store
        self._summary_updater = summary_updater or apply_summary_inline
        self._notifier = notifier or emit_failure_event

    # ------------------------------------------------------------------
    # Claim
    # ------------------------------------------------------------------
    def claim(self, dispatch_id: int, *, resume: bool = False) -> Dispatch | None:
        """Lock the dispatch, collapse its monitor's backlog and mark the winner running.

        Returns ``None`` when the dispatch must not execute: it vanished, it is no
        longer pending, or a newer pending dispatch for the same monitor exists.
        ``resume`` lets a retried task continue a dispatch it already claimed. A
        running dispatch abandoned by a lost worker is also picked up again.
        """

        with transaction.atomic():
            dispatch = Dispatch.objects.select_for_update().filter(pk=dispatch_id).first()
            if dispatch is None:
                logger.warning(
                    "Dispatch no longer exists; skipping",
                    extra={"dispatch_id": dispatch_id},
                )
                return None

            if dispatch.status == DispatchStatus.RUNNING:
                if resume:
                    return dispatch
                if is_abandoned(dispatch):
                    logger.warning(
                        "Resuming abandoned dispatch",
                        extra={
                            "dispatch_id": dispatch_id,
                            "monitor_id": str(dispatch.monitor_id),
                            "started_at": dispatch.started_at.isoformat(),
                        },
                    )
                    dispatch.started_at = timezone.now()
                    dispatch.save(update_fields=["started_at"])
                    return dispatch

            if dispatch.status != DispatchStatus.PENDING:
                logger.info(
                    "Dispatch already handled; skipping",
                    extra={
                        "dispatch_id": dispatch_id,
                        "monitor_id": str(dispatch.monitor_id),
                        "status": dispatch.status,
                    },
                )
                return None

            winner = self.collapse_backlog(dispatch.monitor_id)
            if winner is None or winner.pk != dispatch.pk:
                return None

            dispatch.status = DispatchStatus.RUNNING
            dispatch.started_at = timezone.now()
            dispatch.save(update_fields=["status", "started_at"])
            return dispatch

    def collapse_backlog(self, monitor_id) -> Dispatch | None:
        """Keep the newest pending dispatch for ``monitor_id`` and discard the rest.

        Must run inside a transaction. Newest is decided by ``created_at`` and
        then by ``id``. Abandoned running dispatches of the monitor are failed.
        """

        now = timezone.now()
        abandoned = [
            dispatch
            for dispatch in Dispatch.objects.select_for_update().filter(
                monitor_id=monitor_id, status=DispatchStatus.RUNNING
            )
            if is_abandoned(dispatch, now=now)
        ]
        if abandoned:
            Dispatch.objects.filter(pk__in=[dispatch.pk for dispatch in abandoned]).update(
                status=DispatchStatus.FAILED,
                finished_at=now,
                note="abandoned by a lost worker",
            )
            for dispatch in abandoned:
                audit_logger.warning(
                    "Failed abandoned dispatch",
                    extra={
                        "monitor_id": str(monitor_id),
                        "dispatch_id": dispatch.pk,
                        "started_at": dispatch.started_at.isoformat(),
                    },
                )

        pending = list(
            Dispatch.objects.select_for_update()
            .filter(monitor_id=monitor_id, status=DispatchStatus.PENDING)
            .order_by("-created_at", "-id")
        )
        if not pending:
            return None

        winner, stale = pending[0], pending[1:]
        if stale:
            Dispatch.objects.filter(pk__in=[dispatch.pk for dispatch in stale]).update(
                status=DispatchStatus.DISCARDED,
                finished_at=now,
                note=f"superseded by dispatch {winner.pk}",
            )
            for dispatch in stale:
                audit_logger.info(
                    "Discarded stale dispatch",
                    extra={
                        "monitor_id": str(monitor_id),
                        "dispatch_id": dispatch.pk,
                        "created_at": dispatch.created_at.isoformat(),
                        "kept_dispatch_id": winner.pk,
                    },
                )
        return winner

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def process(self, dispatch_id: int, *, resume: bool = False) -> CheckLog | None:
        dispatch = self.claim(dispatch_id, resume=resume)
        if dispatch is None:
            return None

        spec = MonitorSpec.from_payload(dispatch.payload)
        result = self.execute(spec)

        # Blocking: the check is not done until its raw log is durable. The log and
        # the completed status commit together so a retry never stores a second log.
        with transaction.atomic():
            log = self._store.append(
                result, spec.id, spec.organization_id, dispatch_id=dispatch.pk
            )
            self._finish(dispatch, DispatchStatus.COMPLETED)

        self._update_summary(log)

        if result.status in FAILURE_STATUSES:
            try:
                self.evaluate_failure_threshold(spec, result)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failure threshold evaluation failed",
                    extra={"monitor_id": str(spec.id), "error": str(exc)},
                    exc_info=True,
                )

        logger.info(
            "Monitor check processed",
            extra={
                "monitor_id": str(spec.id),
                "dispatch_id": dispatch.pk,
                "status": result.status,
                "response_time_ms": result.response_time,
                "log_id": log.pk,
            },
        )
        return log

    def execute(self, spec: MonitorSpec) -> CheckResult:
        """Run the probe; a crash becomes an ``error`` result rather than an exception."""

        try:
            return self._executor.check(spec)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Probe crashed; recording error result",
                extra={"monitor_id": str(spec.id), "error": str(exc)},
                exc_info=True,
            )
            return CheckResult.error(
                str(exc) or type(exc).__name__,
                "JOB_ERROR",
                request_url=spec.url,
                request_method="TCP" if spec.type == "tcp" else spec.http_method,
            )

    def _update_summary(self, log: CheckLog) -> None:
        try:
            self._summary_updater(log)
        except Exception as exc:  # noqa: BLE001
            summary_logger.warning(
                "Daily summary update failed, will be reconciled later",
                extra={"monitor_id": str(log.monitor_id), "log_id": log.pk, "error": str(exc)},
            )

    def evaluate_failure_threshold(
        self,
        spec: MonitorSpec,
        result: CheckResult,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Emit an event when the trailing-window failure count reaches the threshold.

        Fires on the crossing only (count equal to the threshold), so a run of
        further failures does not repeat the notification.
        """

        window_seconds = int(settings.FAILURE_WINDOW_HOURS) * 3600
        failures = self._store.count_recent_failures(
            spec.id, window_seconds, FAILURE_STATUSES, now=now
        )
        if failures != spec.fail_threshold:
            return False

        event = FailureThresholdEvent(
            monitor_id=spec.id,
            organization_id=spec.organization_id,
            monitor_name=spec.name,
            contacts=tuple(spec.contacts),
            status=result.status,
            error_message=result.error_message,
            error_code=result.error_code,
            failures=failures,
            threshold=spec.fail_threshold,
            occurred_at=now or timezone.now(),
        )
        audit_logger.warning(
            "Failure threshold reached",
            extra={
                "monitor_id": str(spec.id),
                "organization_id": str(spec.organization_id),
                "failures": failures,
                "threshold": spec.fail_threshold,
                "status": result.status,
            },
        )
        self._notifier(event)
        return True

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def mark_failed(self, dispatch_id: int, error: str) -> None:
        Dispatch.objects.filter(pk=dispatch_id).exclude(
            status__in=[DispatchStatus.COMPLETED, DispatchStatus.CANCELLED]
        ).update(
            status=DispatchStatus.FAILED,
            finished_at=timezone.now(),
            note=error[:255],
        )

    @staticmethod
    def _finish(dispatch: Dispatch, status: str) -> None:
        dispatch.status = status
        dispatch.finished_at = timezone.now()
        dispatch.save(update_fields=["status", "finished_at"])


__all__ = ["ABANDONED_GRACE_SECONDS", "CheckWorker", "apply_summary_inline", "is_abandoned"]
