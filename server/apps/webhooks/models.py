"""Database models for webhooks app."""

from typing import Final, final, override

from django.contrib.auth import get_user_model
from django.db import models

from server.apps.webhooks.events import WebhookEvent

User = get_user_model()

_NAME_MAX_LENGTH: Final = 255
_URL_MAX_LENGTH: Final = 2048
_SECRET_MAX_LENGTH: Final = 255
_EVENT_MAX_LENGTH: Final = 32


@final
class WebhookSubscription(models.Model):
    """External endpoint notified about lifecycle events."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='webhook_subscriptions',
        db_index=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)
    url = models.URLField(max_length=_URL_MAX_LENGTH)

    secret = models.CharField(
        max_length=_SECRET_MAX_LENGTH,
        blank=True,
        default='',
        help_text='HMAC-SHA256 signing secret, empty disables signing',
    )

    active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Webhook subscription'  # type: ignore[mutable-override]
        verbose_name_plural = 'Webhook subscriptions'  # type: ignore[mutable-override]
        ordering = ['-created_at']

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.name} -> {self.url}'

    @property
    def event_types(self) -> list[str]:
        """Subscribed event values, sorted."""
        return sorted(item.event for item in self.events.all())


@final
class WebhookEventSubscription(models.Model):
    """One event type a subscription listens to."""

    subscription = models.ForeignKey(
        WebhookSubscription,
        on_delete=models.CASCADE,
        related_name='events',
    )

    event = models.CharField(
        max_length=_EVENT_MAX_LENGTH,
        choices=WebhookEvent.choices,
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Subscribed event'  # type: ignore[mutable-override]
        verbose_name_plural = 'Subscribed events'  # type: ignore[mutable-override]

        constraints = [
            models.UniqueConstraint(
                fields=['subscription', 'event'],
                name='webhooks_subscription_event_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.subscription_id}:{self.event}'


@final
class WebhookDeliveryRecord(models.Model):
    """Append-only outcome of one delivery attempt."""

    subscription = models.ForeignKey(
        WebhookSubscription,
        on_delete=models.CASCADE,
        related_name='deliveries',
    )

    event = models.CharField(
        max_length=_EVENT_MAX_LENGTH,
        choices=WebhookEvent.choices,
    )

    payload = models.JSONField()

    # 0 when no response was received
    status_code = models.PositiveSmallIntegerField(default=0)

    response = models.TextField(
        blank=True,
        default='',
        help_text='Response summary, truncated to 1000 characters',
    )

    success = models.BooleanField(default=False)

    attempt = models.PositiveSmallIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Webhook delivery'  # type: ignore[mutable-override]
        verbose_name_plural = 'Webhook deliveries'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            models.Index(
                fields=['subscription', '-created_at'],
                name='webhooks_delivery_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        outcome = 'ok' if self.success else 'failed'
        return f'{self.event} -> {self.subscription_id} ({outcome})'
