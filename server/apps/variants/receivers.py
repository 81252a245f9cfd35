"""Lifecycle receivers keeping derived variants in step with content."""

import logging
from typing import Any

from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.files import lifecycle
from server.apps.files.exceptions import StorageFailureError
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.models import StoredObject
from server.apps.variants.logic.variant_operations import (
    delete_all_variants,
    enqueue_preset_variants,
)

logger = logging.getLogger(__name__)


@receiver(lifecycle.object_created)
def enqueue_variants_on_create(
    sender: type[Any],
    stored_object: StoredObject,
    **kwargs: Any,
) -> None:
    """Queue preset renders for a new image."""
    enqueue_preset_variants(stored_object)


@receiver(lifecycle.object_updated)
def refresh_variants_on_update(
    sender: type[Any],
    stored_object: StoredObject,
    content_changed: bool = True,  # noqa: FBT001, FBT002
    **kwargs: Any,
) -> None:
    """Drop variants of replaced content and queue fresh preset renders."""
    if not content_changed:
        return
    delete_all_variants(stored_object.id)
    enqueue_preset_variants(stored_object)


@receiver(post_delete, sender=StoredObject)
def delete_variants_from_storage(
    sender: type[StoredObject],
    instance: StoredObject,
    **kwargs: object,
) -> None:
    """Remove the variant directory of a deleted object.

    Rows go with the cascade, this handler removes the bytes.
    """
    prefix = f'.variants/{instance.pk}/'
    try:
        get_content_storage().delete_prefix(prefix)
    except StorageFailureError:
        logger.exception('Failed to delete variants (orphaned): %s', prefix)
