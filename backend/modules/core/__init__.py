"""Project-wide plumbing: settings fragments, the app/middleware registry and URL helpers."""

from .settings_registry import core_settings_registry, get_installed_apps, get_middleware

__all__ = ["core_settings_registry", "get_installed_apps", "get_middleware"]
