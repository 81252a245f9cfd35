"""Lifecycle receivers translating content changes into webhook events."""

from typing import Any

from django.dispatch import receiver

from server.apps.files import lifecycle
from server.apps.files.models import StoredObject
from server.apps.versions.models import ObjectVersion
from server.apps.webhooks.events import WebhookEvent
from server.apps.webhooks.logic.trigger import trigger_event


def _object_data(stored_object: StoredObject) -> dict[str, Any]:
    return {
        'id': stored_object.id,
        'path': stored_object.file.name,
        'size': stored_object.size_bytes,
        'mime_type': stored_object.mime_type,
        'checksum': stored_object.checksum_sha256,
    }


@receiver(lifecycle.object_created)
def on_object_created(
    sender: type[Any],
    stored_object: StoredObject,
    **kwargs: Any,
) -> None:
    """Announce a new object."""
    trigger_event(
        WebhookEvent.FILE_CREATED,
        _object_data(stored_object),
        owner_id=stored_object.user_id,
    )


@receiver(lifecycle.object_updated)
def on_object_updated(
    sender: type[Any],
    stored_object: StoredObject,
    content_changed: bool = True,  # noqa: FBT001, FBT002
    **kwargs: Any,
) -> None:
    """Announce new content or a new path of an object."""
    data = _object_data(stored_object)
    data['content_changed'] = content_changed
    trigger_event(
        WebhookEvent.FILE_UPDATED,
        data,
        owner_id=stored_object.user_id,
    )


@receiver(lifecycle.object_deleted)
def on_object_deleted(
    sender: type[Any],
    object_id: int,
    user_id: int,
    path: str,
    mime_type: str,
    **kwargs: Any,
) -> None:
    """Announce a deleted object."""
    trigger_event(
        WebhookEvent.FILE_DELETED,
        {'id': object_id, 'path': path, 'mime_type': mime_type},
        owner_id=user_id,
    )


@receiver(lifecycle.object_accessed)
def on_object_accessed(
    sender: type[Any],
    stored_object: StoredObject,
    **kwargs: Any,
) -> None:
    """Announce a read of an object."""
    trigger_event(
        WebhookEvent.FILE_ACCESSED,
        _object_data(stored_object),
        owner_id=stored_object.user_id,
    )


@receiver(lifecycle.folder_created)
def on_folder_created(
    sender: type[Any],
    user_id: int,
    path: str,
    **kwargs: Any,
) -> None:
    """Announce a new folder."""
    trigger_event(WebhookEvent.FOLDER_CREATED, {'path': path}, owner_id=user_id)


@receiver(lifecycle.folder_updated)
def on_folder_updated(
    sender: type[Any],
    user_id: int,
    path: str,
    old_path: str,
    **kwargs: Any,
) -> None:
    """Announce a moved folder."""
    trigger_event(
        WebhookEvent.FOLDER_UPDATED,
        {'path': path, 'old_path': old_path},
        owner_id=user_id,
    )


@receiver(lifecycle.folder_deleted)
def on_folder_deleted(
    sender: type[Any],
    user_id: int,
    path: str,
    **kwargs: Any,
) -> None:
    """Announce a deleted folder."""
    trigger_event(WebhookEvent.FOLDER_DELETED, {'path': path}, owner_id=user_id)


@receiver(lifecycle.version_created)
def on_version_created(
    sender: type[Any],
    version: ObjectVersion,
    **kwargs: Any,
) -> None:
    """Announce a new version snapshot."""
    trigger_event(
        WebhookEvent.VERSION_CREATED,
        {
            'object_id': version.stored_object_id,
            'version_number': version.version_number,
            'size': version.size_bytes,
            'checksum': version.checksum_sha256,
        },
        owner_id=version.stored_object.user_id,
    )
