"""Django app configuration for versions app."""

from typing import override

from django.apps import AppConfig


class VersionsConfig(AppConfig):
    """Configuration for versions app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.versions'
    verbose_name = 'Versions'

    @override
    def ready(self) -> None:
        """Import signal handlers when app is ready."""
        from server.apps.versions import signals  # noqa: F401
