"""Celery tasks for derived image variants."""

import logging
from typing import Any

from celery import shared_task
from django.conf import settings

from server.apps.files.exceptions import InvalidRequestError, NotFoundError
from server.apps.files.infrastructure.jobs import LifecycleJobTask
from server.apps.variants.logic.variant_operations import (
    GENERATE_VARIANT_TASK,
    generate_variant,
)
from server.apps.variants.presets import VariantOptions

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    base=LifecycleJobTask,
    name=GENERATE_VARIANT_TASK,
    acks_late=True,
    reject_on_worker_lost=True,
    autoretry_for=(Exception,),
    max_retries=settings.CONTENT_JOB_MAX_ATTEMPTS - 1,
    retry_backoff=settings.CONTENT_JOB_BACKOFF_SECONDS,
    retry_jitter=False,
)
def generate_variant_job(
    self: LifecycleJobTask,
    object_id: int,
    variant_key: str,
    options: dict[str, Any],
) -> dict[str, Any] | None:
    """Render one variant in the background.

    An object deleted or replaced by a non-image before the job ran
    is skipped, not retried.
    """
    try:
        asset = generate_variant(
            object_id,
            variant_key,
            VariantOptions.from_dict(options),
        )
    except (NotFoundError, InvalidRequestError) as error:
        logger.warning(
            'Skipping variant %s of object %d: %s',
            variant_key,
            object_id,
            error,
        )
        return None
    return {
        'object_id': object_id,
        'variant_key': variant_key,
        'width': asset.width,
        'height': asset.height,
        'size_bytes': asset.size_bytes,
    }
