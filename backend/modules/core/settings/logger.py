"""Environment routing for ``app.settings`` and the logger that records the decision."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}
_ENVIRONMENTS = ("development", "production")
_FORMAT = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"


@dataclass(frozen=True, slots=True)
class SettingsLoggingContext:
    logger: logging.Logger
    log_dir: Path
    environment: str
    reason: str


def resolve_environment(environ: Mapping[str, str]) -> tuple[str, str]:
    """Return ``(environment, reason)``; anything unrecognised falls back to production."""

    explicit = environ.get("DJANGO_ENV", "").strip().lower()
    if explicit in _ENVIRONMENTS:
        return explicit, f"DJANGO_ENV={explicit}"
    if environ.get("DEBUG", "").strip().lower() in _TRUTHY:
        return "development", "DEBUG flag"
    return "production", "no DJANGO_ENV set"


def setup_settings_logging(
    *,
    env: Mapping[str, str] | None = None,
    log_dir: Path | None = None,
    logger_name: str = "app.settings_loader",
) -> SettingsLoggingContext:
    """Attach file + console handlers to the loader logger once and resolve the environment.

    Django's LOGGING dict is not applied yet while settings import, so this logger
    is configured by hand.
    """

    log_dir = log_dir or Path(__file__).resolve().parents[3] / "logs"
    log_dir.mkdir(exist_ok=True)

    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        logger.propagate = False
        handlers = (
            RotatingFileHandler(log_dir / "settings.log", maxBytes=5 * 1024 * 1024, backupCount=3),
            logging.StreamHandler(),
        )
        for handler in handlers:
            handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(handler)

    environment, reason = resolve_environment(os.environ if env is None else env)
    logger.info("Loading app.settings_%s (%s)", environment, reason)

    return SettingsLoggingContext(
        logger=logger, log_dir=log_dir, environment=environment, reason=reason
    )
