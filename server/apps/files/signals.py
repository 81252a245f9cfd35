"""Signal handlers for files app."""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.files.exceptions import StorageFailureError
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.models import ChunkUploadSession, StoredObject

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=StoredObject)
def delete_object_from_storage(
    sender: type[StoredObject],
    instance: StoredObject,
    **kwargs: object,
) -> None:
    """Delete bytes from storage when a StoredObject record is deleted.

    This signal handler ensures that when a record is deleted
    (via admin, ORM, or any other method), the bytes in S3
    storage are also cleaned up.

    Args:
        sender: The StoredObject model class.
        instance: The StoredObject instance being deleted.
        **kwargs: Additional signal arguments.
    """
    if not instance.file:
        return

    storage_name = instance.file.name
    logger.info(
        'Deleting file from storage after DB delete: %s',
        storage_name,
    )

    storage = get_content_storage()
    try:
        if storage.exists(storage_name):
            storage.delete(storage_name)
        else:
            logger.warning(
                'File not found in storage (already deleted?): %s',
                storage_name,
            )
    except StorageFailureError:
        # DB delete already succeeded, the file is orphaned
        logger.exception(
            'Failed to delete file from storage (orphaned): %s',
            storage_name,
        )


@receiver(post_delete, sender=ChunkUploadSession)
def delete_session_scratch(
    sender: type[ChunkUploadSession],
    instance: ChunkUploadSession,
    **kwargs: object,
) -> None:
    """Remove chunk slots when a session row goes away.

    Args:
        sender: The ChunkUploadSession model class.
        instance: The session being deleted.
        **kwargs: Additional signal arguments.
    """
    try:
        get_content_storage().delete_prefix(instance.scratch_prefix)
    except StorageFailureError:
        logger.exception(
            'Failed to delete upload scratch area (orphaned): %s',
            instance.scratch_prefix,
        )
