"""Django admin configuration for webhooks app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.webhooks.models import (
    WebhookDeliveryRecord,
    WebhookEventSubscription,
    WebhookSubscription,
)


class WebhookEventSubscriptionInline(
    admin.TabularInline[WebhookEventSubscription, WebhookSubscription],
):
    """Subscribed events edited inline."""

    model = WebhookEventSubscription
    extra = 1


@admin.register(WebhookSubscription)
class WebhookSubscriptionAdmin(admin.ModelAdmin[WebhookSubscription]):
    """Admin interface for WebhookSubscription model."""

    list_display = [
        'name',
        'user',
        'url',
        'active',
        'events_display',
        'created_at',
    ]

    list_filter = [
        'active',
        'created_at',
    ]

    search_fields = [
        'name',
        'url',
        'user__username',
    ]

    readonly_fields = [
        'created_at',
        'updated_at',
    ]

    inlines = [WebhookEventSubscriptionInline]

    def events_display(self, obj: WebhookSubscription) -> str:
        """Display subscribed events as a comma separated list."""
        return ', '.join(obj.event_types)
    events_display.short_description = 'Events'  # type: ignore[attr-defined]

    def get_queryset(
        self,
        request: HttpRequest,
    ) -> QuerySet[WebhookSubscription]:
        """Optimize queryset with select_related and prefetch_related."""
        return super().get_queryset(request).select_related(
            'user',
        ).prefetch_related('events')


@admin.register(WebhookDeliveryRecord)
class WebhookDeliveryRecordAdmin(admin.ModelAdmin[WebhookDeliveryRecord]):
    """Read-only admin interface for the delivery log."""

    list_display = [
        'event',
        'subscription',
        'status_code',
        'success',
        'attempt',
        'created_at',
    ]

    list_filter = [
        'success',
        'event',
        'created_at',
    ]

    readonly_fields = [
        'subscription',
        'event',
        'payload',
        'status_code',
        'response',
        'success',
        'attempt',
        'created_at',
    ]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Delivery records are written by workers only."""
        return False
