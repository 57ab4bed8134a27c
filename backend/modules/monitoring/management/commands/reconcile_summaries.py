"""Rebuild daily summaries for one day from the raw check logs."""

from __future__ import annotations

import logging

from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from modules.monitoring.reconciliation import reconcile_daily_summaries

logger = logging.getLogger("monitoring.summary")


class Command(BaseCommand):
    help = (
        "Recompute daily summaries of every active monitor from check logs. "
        "Defaults to yesterday in the configured time zone."
    )

    def add_arguments(self, parser) -> None:  # pragma: no cover - CLI plumbing
        parser.add_argument(
            "--date",
            dest="date",
            default=None,
            help="Day to reconcile, formatted YYYY-MM-DD.",
        )
        parser.add_argument(
            "--batch-size",
            dest="batch_size",
            type=int,
            default=None,
            help="Monitors per batch (defaults to RECONCILIATION_BATCH_SIZE).",
        )

    def handle(self, *args, **options):
        day = None
        if options.get("date"):
            day = parse_date(options["date"])
            if day is None:
                raise CommandError("--date must use the YYYY-MM-DD format.")

        batch_size = options.get("batch_size")
        if batch_size is not None and batch_size < 1:
            raise CommandError("--batch-size must be a positive integer.")

        self.stdout.write(self.style.WARNING("Reconciling daily summaries…"))
        report = reconcile_daily_summaries(day, batch_size=batch_size)

        message = (
            f"reconcile_summaries complete for {report.date.isoformat()}: "
            f"{report.processed}/{report.total} monitors processed, {report.errors} errors."
        )
        style = self.style.SUCCESS if report.errors == 0 else self.style.ERROR
        self.stdout.write(style(message))
        logger.info(
            "Reconciliation command finished",
            extra=report.to_dict(),
        )
