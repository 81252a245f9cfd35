"""Django app configuration for webhooks app."""

from typing import override

from django.apps import AppConfig


class WebhooksConfig(AppConfig):
    """Configuration for webhooks app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.webhooks'
    verbose_name = 'Webhooks'

    @override
    def ready(self) -> None:
        """Connect lifecycle receivers when app is ready."""
        from server.apps.webhooks import receivers  # noqa: F401
