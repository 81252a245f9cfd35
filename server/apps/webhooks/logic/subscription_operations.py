"""Business logic for webhook subscriptions."""

import logging
from collections.abc import Iterable

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.db import transaction
from django.db.models import QuerySet

from server.apps.files.exceptions import InvalidRequestError, NotFoundError
from server.apps.webhooks.events import WebhookEvent
from server.apps.webhooks.models import (
    WebhookDeliveryRecord,
    WebhookEventSubscription,
    WebhookSubscription,
)

User = get_user_model()
logger = logging.getLogger(__name__)

_url_validator = URLValidator(schemes=('http', 'https'))


def create_subscription(  # noqa: WPS211
    user: User,
    name: str,
    url: str,
    events: Iterable[str],
    secret: str = '',
    active: bool = True,  # noqa: FBT001, FBT002
) -> WebhookSubscription:
    """Register an endpoint for a set of events.

    Args:
        user: Owner of the subscription.
        name: Display name.
        url: Endpoint receiving POST requests.
        events: Event values to subscribe to.
        secret: Signing secret, empty disables signing.
        active: Whether deliveries are sent.

    Returns:
        Created WebhookSubscription.

    Raises:
        InvalidRequestError: If the URL or an event is invalid, or no
            event is given.
    """
    _validate_url(url)
    event_values = _validate_events(events)
    if not name:
        raise InvalidRequestError('Subscription name is required')

    with transaction.atomic():
        subscription = WebhookSubscription.objects.create(
            user=user,
            name=name,
            url=url,
            secret=secret,
            active=active,
        )
        _replace_events(subscription, event_values)

    logger.info(
        'Webhook subscription %d created for user %s: %s',
        subscription.id,
        user.username,
        ', '.join(event_values),
    )
    return subscription


def get_subscription(user: User, subscription_id: int) -> WebhookSubscription:
    """Get a subscription owned by ``user``.

    Raises:
        NotFoundError: If no such subscription belongs to the user.
    """
    try:
        return WebhookSubscription.objects.prefetch_related('events').get(
            id=subscription_id,
            user=user,
        )
    except WebhookSubscription.DoesNotExist as error:
        raise NotFoundError(
            f'Webhook subscription {subscription_id} not found',
        ) from error


def list_subscriptions(user: User) -> QuerySet[WebhookSubscription]:
    """List subscriptions of a user, newest first."""
    return WebhookSubscription.objects.filter(
        user=user,
    ).prefetch_related('events')


def update_subscription(  # noqa: WPS211
    user: User,
    subscription_id: int,
    *,
    name: str | None = None,
    url: str | None = None,
    events: Iterable[str] | None = None,
    secret: str | None = None,
    active: bool | None = None,
) -> WebhookSubscription:
    """Change fields of a subscription; None leaves a field as is.

    Passing ``events`` replaces the whole event set.

    Raises:
        NotFoundError: If no such subscription belongs to the user.
        InvalidRequestError: If the URL or an event is invalid.
    """
    subscription = get_subscription(user, subscription_id)
    event_values = None if events is None else _validate_events(events)

    if url is not None:
        _validate_url(url)
        subscription.url = url
    if name is not None:
        subscription.name = name
    if secret is not None:
        subscription.secret = secret
    if active is not None:
        subscription.active = active

    with transaction.atomic():
        subscription.save()
        if event_values is not None:
            _replace_events(subscription, event_values)

    logger.info('Webhook subscription %d updated', subscription.id)
    return subscription


def delete_subscription(user: User, subscription_id: int) -> None:
    """Delete a subscription with its event set and delivery log.

    Raises:
        NotFoundError: If no such subscription belongs to the user.
    """
    subscription = get_subscription(user, subscription_id)
    subscription.delete()
    logger.info('Webhook subscription %d deleted', subscription_id)


def list_deliveries(
    user: User,
    subscription_id: int,
    limit: int = 50,
) -> QuerySet[WebhookDeliveryRecord]:
    """Get the most recent delivery records of a subscription.

    Args:
        user: Owner of the subscription.
        subscription_id: Subscription ID.
        limit: Maximum number of records.

    Returns:
        QuerySet of records, newest first.

    Raises:
        NotFoundError: If no such subscription belongs to the user.
    """
    subscription = get_subscription(user, subscription_id)
    return subscription.deliveries.order_by('-created_at', '-id')[:limit]


def _validate_url(url: str) -> None:
    try:
        _url_validator(url)
    except ValidationError as error:
        raise InvalidRequestError(f'Invalid webhook URL: {url!r}') from error


def _validate_events(events: Iterable[str]) -> list[str]:
    event_values = sorted(set(events))
    if not event_values:
        raise InvalidRequestError('At least one event is required')
    unknown = [event for event in event_values if event not in WebhookEvent.values]
    if unknown:
        raise InvalidRequestError(f'Unknown events: {", ".join(unknown)}')
    return event_values


def _replace_events(
    subscription: WebhookSubscription,
    event_values: list[str],
) -> None:
    subscription.events.all().delete()
    WebhookEventSubscription.objects.bulk_create(
        WebhookEventSubscription(subscription=subscription, event=event)
        for event in event_values
    )
