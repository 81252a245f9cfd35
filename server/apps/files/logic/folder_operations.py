"""Business logic for folders.

Folders are implicit: a folder exists when any object path starts
with its prefix. Empty folders are materialised with a ``.folder``
marker object.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Final, final

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.db import transaction

from server.apps.files import lifecycle
from server.apps.files.exceptions import ConflictError, NotFoundError
from server.apps.files.infrastructure.metadata import (
    calculate_checksum,
    validate_storage_path,
)
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.logic.file_operations import FOLDER_MARKER
from server.apps.files.models import StoredObject

User = get_user_model()
logger = logging.getLogger(__name__)

_MARKER_MIME_TYPE: Final = 'application/x-directory'


@final
@dataclass(frozen=True, slots=True)
class FolderInfo:
    """Folder found by a listing.

    Timestamps span the objects inside: the oldest upload and the
    latest change.
    """

    name: str
    path: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, str]:
        """Serialize for API responses."""
        return {
            'name': self.name,
            'path': self.path,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }


def folder_exists(user: User, folder_path: str) -> bool:
    """Check if a folder exists (has objects with the given prefix).

    Args:
        user: Owner of objects.
        folder_path: Full folder path, e.g. ``12/photos``.

    Returns:
        True if folder exists, False otherwise.
    """
    prefix = folder_path.rstrip('/') + '/'
    return StoredObject.objects.filter(
        user=user,
        file__startswith=prefix,
    ).exists()


def create_folder(user: User, folder_path: str) -> bool:
    """Create a folder, doing nothing if it already exists.

    Args:
        user: Owner of the folder.
        folder_path: Full folder path, e.g. ``12/photos/2024``.

    Returns:
        True if the folder was created, False if it existed.

    Raises:
        InvalidRequestError: If path validation fails.
    """
    folder_path = folder_path.strip('/')
    validate_storage_path(user.id, folder_path)
    if folder_path == str(user.id) or folder_exists(user, folder_path):
        return False

    marker_path = f'{folder_path}/{FOLDER_MARKER}'
    marker_content = ContentFile(b'')
    storage = get_content_storage()

    logger.debug('Creating folder marker: %s', marker_path)
    storage.overwrite(marker_path, marker_content)
    try:
        with transaction.atomic():
            StoredObject.objects.create(
                user=user,
                file=marker_path,
                size_bytes=0,
                mime_type=_MARKER_MIME_TYPE,
                checksum_sha256=calculate_checksum(marker_content),
            )
    except Exception:
        logger.exception('Failed to record folder marker: %s', marker_path)
        storage.rollback_upload(marker_path)
        raise

    logger.info('Folder created: %s', folder_path)
    lifecycle.notify(
        lifecycle.folder_created,
        sender=StoredObject,
        user_id=user.id,
        path=folder_path,
    )
    return True


def delete_folder(
    user: User,
    folder_path: str,
    force: bool = False,  # noqa: FBT001, FBT002
) -> int:
    """Delete a folder and, when forced, everything inside it.

    Args:
        user: Owner of the folder.
        folder_path: Full folder path.
        force: Delete even if the folder holds objects.

    Returns:
        Number of stored objects deleted, markers included.

    Raises:
        NotFoundError: If the folder does not exist.
        ConflictError: If the folder is not empty and force is off.
    """
    folder_path = folder_path.strip('/')
    validate_storage_path(user.id, folder_path)
    prefix = f'{folder_path}/'

    contents = StoredObject.objects.filter(user=user, file__startswith=prefix)
    if not contents.exists():
        raise NotFoundError(f'Folder not found: {folder_path}')
    if not force and contents.exclude(
        file=f'{prefix}{FOLDER_MARKER}',
    ).exists():
        raise ConflictError(f'Folder is not empty: {folder_path}')

    # Per-object deletes keep post_delete storage cleanup and cascades
    with transaction.atomic():
        _, per_model = contents.delete()
    deleted = per_model.get(StoredObject._meta.label, 0)  # noqa: WPS437

    logger.info('Folder deleted: %s (%d records)', folder_path, deleted)
    lifecycle.notify(
        lifecycle.folder_deleted,
        sender=StoredObject,
        user_id=user.id,
        path=folder_path,
    )
    return deleted


def list_folders(
    user: User,
    folder_path: str,
    recursive: bool = False,  # noqa: FBT001, FBT002
) -> list[FolderInfo]:
    """List folders below a folder.

    A folder that does not exist lists as empty.

    Args:
        user: Owner of the folders.
        folder_path: Full folder path, e.g. ``12`` for the user root.
        recursive: Include folders at every depth, not only children.

    Returns:
        Folders sorted by path.

    Raises:
        InvalidRequestError: If path validation fails.
    """
    folder_path = folder_path.strip('/')
    validate_storage_path(user.id, folder_path)
    prefix = f'{folder_path}/'

    rows = StoredObject.objects.filter(
        user=user,
        file__startswith=prefix,
    ).values_list('file', 'uploaded_at', 'modified_at')

    spans: dict[str, tuple[datetime, datetime]] = {}
    for object_path, uploaded_at, modified_at in rows:
        # Every segment but the last names a folder
        segments = object_path[len(prefix):].split('/')[:-1]
        if not recursive:
            segments = segments[:1]
        for depth in range(1, len(segments) + 1):
            path = prefix + '/'.join(segments[:depth])
            created, updated = spans.get(path, (uploaded_at, modified_at))
            spans[path] = (min(created, uploaded_at), max(updated, modified_at))

    return [
        FolderInfo(
            name=path.rsplit('/', 1)[-1],
            path=path,
            created_at=created,
            updated_at=updated,
        )
        for path, (created, updated) in sorted(spans.items())
    ]
