"""Installed apps and middleware, kept in one ordered registry shared by every settings module."""

from __future__ import annotations

from collections.abc import Iterable

DJANGO_APPS = (
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
)
THIRD_PARTY_APPS = ("rest_framework", "django_celery_beat")
PROJECT_APPS = ("modules.monitoring",)

MIDDLEWARE = (
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "app.middleware_logging.RequestIDMiddleware",
    "app.middleware_logging.RequestLoggingMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
)


class SettingsRegistry:
    """Ordered, de-duplicated app and middleware lists; later registrations append."""

    def __init__(self, apps: Iterable[str] = (), middleware: Iterable[str] = ()) -> None:
        self._apps: list[str] = []
        self._middleware: list[str] = []
        self.register_apps(*apps)
        self.register_middleware(*middleware)

    def register_apps(self, *apps: str) -> None:
        _extend_unique(self._apps, apps)

    def register_middleware(self, *middleware_classes: str) -> None:
        _extend_unique(self._middleware, middleware_classes)

    @property
    def apps(self) -> list[str]:
        return list(self._apps)

    @property
    def middleware(self) -> list[str]:
        return list(self._middleware)


def _extend_unique(target: list[str], items: Iterable[str]) -> None:
    for item in items:
        if item and item not in target:
            target.append(item)


core_settings_registry = SettingsRegistry(
    apps=DJANGO_APPS + THIRD_PARTY_APPS + PROJECT_APPS,
    middleware=MIDDLEWARE,
)


def register_apps(*apps: str) -> None:
    core_settings_registry.register_apps(*apps)


def get_installed_apps() -> list[str]:
    return core_settings_registry.apps


def get_middleware() -> list[str]:
    return core_settings_registry.middleware


__all__ = [
    "SettingsRegistry",
    "core_settings_registry",
    "get_installed_apps",
    "get_middleware",
    "register_apps",
]
