"""Webhook fan-out and the delivery attempt run by workers.

``trigger_event`` only enqueues: one job per matching subscription.
``deliver`` performs a single attempt and records it; retries belong
to the broker.
"""

import datetime as dt
import logging
from collections.abc import Mapping
from typing import Any, Final

import httpx
from django.conf import settings
from django.utils import timezone

from server.apps.files.exceptions import NotFoundError, UpstreamDeliveryError
from server.apps.files.infrastructure.jobs import enqueue_job
from server.apps.webhooks.infrastructure.delivery import (
    DeliveryResult,
    build_http_client,
    post_webhook,
)
from server.apps.webhooks.infrastructure.signing import (
    build_headers,
    serialize_payload,
)
from server.apps.webhooks.models import (
    WebhookDeliveryRecord,
    WebhookSubscription,
)

logger = logging.getLogger(__name__)

DELIVER_WEBHOOK_TASK: Final = 'webhooks.deliver'

_FEATURE: Final = 'webhooks'


def webhooks_enabled() -> bool:
    """Whether webhook delivery is switched on for this deployment."""
    return bool(settings.CONTENT_FEATURES.get(_FEATURE, False))


def format_timestamp() -> str:
    """Current UTC time as ISO 8601 with milliseconds and a ``Z`` suffix."""
    now = timezone.now().astimezone(dt.UTC)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def build_payload(event: str, data: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap event data into the delivered envelope."""
    return {
        'event': event,
        'timestamp': format_timestamp(),
        'data': dict(data),
    }


def trigger_event(
    event: str,
    data: Mapping[str, Any],
    owner_id: int | None = None,
) -> int:
    """Enqueue one delivery job per active subscription to ``event``.

    No matching subscription is a no-op, not an error. Broker
    failures are logged and counted out.

    Args:
        event: Event value, e.g. ``file.created``.
        data: Event data, must be JSON-serializable.
        owner_id: Restrict fan-out to this user's subscriptions.

    Returns:
        Number of delivery jobs the broker accepted.
    """
    if not webhooks_enabled():
        return 0

    subscriptions = WebhookSubscription.objects.filter(
        active=True,
        events__event=event,
    )
    if owner_id is not None:
        subscriptions = subscriptions.filter(user_id=owner_id)
    subscription_ids = list(
        subscriptions.distinct().values_list('id', flat=True),
    )
    if not subscription_ids:
        return 0

    payload = build_payload(event, data)
    enqueued = 0
    for subscription_id in subscription_ids:
        accepted = enqueue_job(
            DELIVER_WEBHOOK_TASK,
            {'subscription_id': subscription_id, 'payload': payload},
        )
        enqueued += int(accepted)

    logger.info(
        'Event %s fanned out to %d of %d subscriptions',
        event,
        enqueued,
        len(subscription_ids),
    )
    return enqueued


def deliver(
    subscription_id: int,
    payload: Mapping[str, Any],
    attempt: int = 1,
    client: httpx.Client | None = None,
) -> DeliveryResult:
    """Perform one delivery attempt and record its outcome.

    Args:
        subscription_id: Target subscription.
        payload: Envelope with ``event``, ``timestamp`` and ``data``.
        attempt: 1-based attempt number, stored on the record.
        client: HTTP client, a fresh one is created when omitted.

    Returns:
        DeliveryResult of a successful attempt.

    Raises:
        NotFoundError: If the subscription is gone or inactive.
        UpstreamDeliveryError: If the endpoint did not answer 2xx.
    """
    try:
        subscription = WebhookSubscription.objects.get(
            id=subscription_id,
            active=True,
        )
    except WebhookSubscription.DoesNotExist as error:
        raise NotFoundError(
            f'Active webhook subscription {subscription_id} not found',
        ) from error

    event = str(payload['event'])
    body = serialize_payload(payload)
    headers = build_headers(event, body, subscription.secret)

    if client is None:
        with build_http_client() as own_client:
            result = post_webhook(own_client, subscription.url, body, headers)
    else:
        result = post_webhook(client, subscription.url, body, headers)

    WebhookDeliveryRecord.objects.create(
        subscription=subscription,
        event=event,
        payload=dict(payload),
        status_code=result.status_code,
        response=result.response,
        success=result.success,
        attempt=attempt,
    )

    if not result.success:
        logger.warning(
            'Webhook %s to subscription %d failed on attempt %d: status %d',
            event,
            subscription_id,
            attempt,
            result.status_code,
        )
        raise UpstreamDeliveryError(
            subscription.url,
            result.status_code or None,
            result.response or f'HTTP {result.status_code}',
        )

    logger.info(
        'Webhook %s delivered to subscription %d (status %d)',
        event,
        subscription_id,
        result.status_code,
    )
    return result
