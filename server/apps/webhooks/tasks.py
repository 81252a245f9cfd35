"""Celery tasks for webhook delivery."""

import logging
from typing import Any

from celery import shared_task
from django.conf import settings

from server.apps.files.exceptions import NotFoundError
from server.apps.files.infrastructure.jobs import LifecycleJobTask
from server.apps.webhooks.logic.trigger import DELIVER_WEBHOOK_TASK, deliver

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    base=LifecycleJobTask,
    name=DELIVER_WEBHOOK_TASK,
    acks_late=True,
    reject_on_worker_lost=True,
    autoretry_for=(Exception,),
    max_retries=settings.CONTENT_JOB_MAX_ATTEMPTS - 1,
    retry_backoff=settings.CONTENT_JOB_BACKOFF_SECONDS,
    retry_jitter=False,
)
def deliver_webhook(
    self: LifecycleJobTask,
    subscription_id: int,
    payload: dict[str, Any],
) -> dict[str, Any] | None:
    """Deliver one event to one subscription.

    A failed attempt raises so the broker retries it; a subscription
    deleted or deactivated meanwhile is skipped.
    """
    try:
        result = deliver(
            subscription_id,
            payload,
            attempt=self.request.retries + 1,
        )
    except NotFoundError as error:
        logger.warning(
            'Skipping webhook %s: %s',
            payload.get('event'),
            error,
        )
        return None
    return {
        'subscription_id': subscription_id,
        'event': payload.get('event'),
        'status_code': result.status_code,
    }
