"""Django app configuration for variants app."""

from typing import override

from django.apps import AppConfig


class VariantsConfig(AppConfig):
    """Configuration for variants app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.variants'
    verbose_name = 'Image variants'

    @override
    def ready(self) -> None:
        """Connect lifecycle receivers when app is ready."""
        from server.apps.variants import receivers  # noqa: F401
