"""Monitoring package.

Submodules expose DTOs (``modules.monitoring.dto``), ORM models (``modules.monitoring.models``),
the probe executor (``modules.monitoring.executor``), the dispatch scheduler
(``modules.monitoring.scheduler``), the check worker (``modules.monitoring.worker``), daily
summaries (``modules.monitoring.aggregator``, ``modules.monitoring.reconciliation``) and Celery
entry points (``modules.monitoring.tasks``). Import concretely from those modules so app loading
stays free of model imports.
"""

__all__ = [
    "aggregator",
    "dto",
    "executor",
    "models",
    "reconciliation",
    "scheduler",
    "tasks",
    "worker",
]
