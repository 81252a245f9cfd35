"""Signal handlers for versions app."""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.files.exceptions import StorageFailureError
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.versions.models import ObjectVersion

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=ObjectVersion)
def delete_version_from_storage(
    sender: type[ObjectVersion],
    instance: ObjectVersion,
    **kwargs: object,
) -> None:
    """Delete snapshot bytes when an ObjectVersion record is deleted.

    Covers explicit version deletes and the cascade from a deleted
    stored object.

    Args:
        sender: The ObjectVersion model class.
        instance: The ObjectVersion instance being deleted.
        **kwargs: Additional signal arguments.
    """
    try:
        get_content_storage().delete(instance.path)
    except StorageFailureError:
        # DB delete already succeeded, the snapshot is orphaned
        logger.exception(
            'Failed to delete version snapshot (orphaned): %s',
            instance.path,
        )
