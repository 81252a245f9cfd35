"""Business logic for stored object operations."""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import BinaryIO, Final, final

from django.contrib.auth import get_user_model
from django.core.files.base import File as DjangoFile
from django.core.paginator import Paginator
from django.db import transaction

from server.apps.files import lifecycle
from server.apps.files.exceptions import ConflictError, NotFoundError
from server.apps.files.infrastructure.metadata import (
    calculate_checksum,
    detect_mime_type,
    extract_filename,
    get_content_size,
    validate_storage_path,
    validate_upload_policy,
)
from server.apps.files.infrastructure.ranges import parse_range_header
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.models import StoredObject
from server.apps.versions.logic.version_operations import (
    create_version,
    snapshot_before_write,
    versioning_enabled,
)

User = get_user_model()
logger = logging.getLogger(__name__)

FOLDER_MARKER: Final = '.folder'
_DEFAULT_PAGE_SIZE: Final = 50
_MAX_PAGE_SIZE: Final = 1000


@final
@dataclass(frozen=True, slots=True)
class ObjectPage:
    """One page of a directory listing."""

    items: list[StoredObject]
    folders: list[str]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        """Number of pages for the listing."""
        return max(1, -(-self.total // self.limit))


@final
@dataclass(frozen=True, slots=True)
class RangedContent:
    """Streamable content of a (possibly partial) object read."""

    stored_object: StoredObject
    start: int
    end: int
    total: int
    chunks: Iterator[bytes] = field(repr=False)
    partial: bool = False

    @property
    def status_code(self) -> int:
        """HTTP status: 206 for an honored range, 200 otherwise."""
        return 206 if self.partial else 200

    @property
    def content_length(self) -> int:
        """Number of bytes the iterator yields."""
        return self.end - self.start + 1 if self.total else 0

    @property
    def content_range(self) -> str | None:
        """``Content-Range`` header value for partial responses."""
        if not self.partial:
            return None
        return f'bytes {self.start}-{self.end}/{self.total}'


def upload_object(  # noqa: WPS211
    user: User,
    storage_path: str,
    file_obj: BinaryIO | DjangoFile,
    content_type: str | None = None,
    metadata: dict[str, object] | None = None,
) -> StoredObject:
    """Upload content to storage and create its database record.

    Transaction safety: Upload to storage first, then create DB record.
    If DB transaction fails, the uploaded bytes are deleted from storage
    (rollback). On a name collision the storage appends a random suffix
    and the returned object carries the adjusted path.

    Args:
        user: Owner of the object.
        storage_path: Full storage path ({user_id}/folder/file.ext).
        file_obj: File-like object to upload.
        content_type: Content type declared by the client.
        metadata: Free-form metadata to keep with the object.

    Returns:
        Created StoredObject instance.

    Raises:
        InvalidRequestError: If path or upload policy validation fails.
        StorageFailureError: If the storage upload fails.
    """
    validate_storage_path(user.id, storage_path)

    filename = extract_filename(storage_path)
    mime_type = detect_mime_type(filename, content_type)
    file_size = get_content_size(file_obj)
    validate_upload_policy(file_size, mime_type)

    logger.info('Calculating metadata for file: %s', storage_path)
    checksum = calculate_checksum(file_obj)

    storage = get_content_storage()

    # Step 1: Upload to storage first
    saved_name = storage.save(storage_path, file_obj)

    # Step 2: Create database record and first version (in transaction)
    try:
        with transaction.atomic():
            stored_object = StoredObject.objects.create(
                user=user,
                file=saved_name,  # Use actual saved name from storage
                size_bytes=file_size,
                mime_type=mime_type,
                checksum_sha256=checksum,
                metadata=metadata or {},
            )
            if versioning_enabled():
                create_version(stored_object.id)
    except Exception:
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            saved_name,
        )
        storage.rollback_upload(saved_name)
        raise

    logger.info(
        'Object created: %s (ID: %d)',
        saved_name,
        stored_object.id,
    )
    lifecycle.notify(
        lifecycle.object_created,
        sender=StoredObject,
        stored_object=stored_object,
    )
    return stored_object


def get_object(object_id: int) -> StoredObject:
    """Get object by ID.

    Args:
        object_id: Stored object ID.

    Returns:
        StoredObject instance.

    Raises:
        NotFoundError: If object not found.
    """
    try:
        return StoredObject.objects.select_related('user').get(id=object_id)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object {object_id} not found') from error


def get_object_by_path(user: User, storage_path: str) -> StoredObject:
    """Get object by its storage path.

    Args:
        user: Owner of the object.
        storage_path: Full storage path.

    Returns:
        StoredObject instance.

    Raises:
        NotFoundError: If object not found.
    """
    try:
        return StoredObject.objects.get(user=user, file=storage_path)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object not found: {storage_path}') from error


def object_exists(user: User, storage_path: str) -> bool:
    """Check if an object exists at the given storage path.

    Args:
        user: Owner of the object.
        storage_path: Full storage path.

    Returns:
        True if object exists, False otherwise.
    """
    return StoredObject.objects.filter(user=user, file=storage_path).exists()


def read_object(user: User, storage_path: str) -> tuple[bytes, StoredObject]:
    """Read the whole content of an object.

    Args:
        user: Owner of the object.
        storage_path: Full storage path.

    Returns:
        Tuple of content bytes and the object record.

    Raises:
        NotFoundError: If object not found.
        StorageFailureError: If the storage read fails.
    """
    stored_object = get_object_by_path(user, storage_path)
    content = get_content_storage().read_bytes(stored_object.file.name)
    _notify_accessed(stored_object)
    return content, stored_object


def open_object_range(
    user: User,
    storage_path: str,
    range_header: str | None = None,
) -> RangedContent:
    """Open an object for streaming, honoring a ``Range`` header.

    Args:
        user: Owner of the object.
        storage_path: Full storage path.
        range_header: Optional header value, e.g. ``bytes=0-99``.

    Returns:
        RangedContent describing the bytes to stream.

    Raises:
        NotFoundError: If object not found.
        InvalidRequestError: If the header is malformed.
        RangeNotSatisfiableError: If the range lies outside the object.
    """
    stored_object = get_object_by_path(user, storage_path)
    total = stored_object.size_bytes
    storage = get_content_storage()

    if range_header:
        byte_range = parse_range_header(range_header, total)
        chunks = storage.open_range(
            stored_object.file.name,
            byte_range.start,
            byte_range.end,
        )
        ranged = RangedContent(
            stored_object=stored_object,
            start=byte_range.start,
            end=byte_range.end,
            total=total,
            chunks=chunks,
            partial=True,
        )
    else:
        ranged = RangedContent(
            stored_object=stored_object,
            start=0,
            end=max(total - 1, 0),
            total=total,
            chunks=iter((storage.read_bytes(stored_object.file.name),)),
        )

    _notify_accessed(stored_object)
    return ranged


def update_object_content(
    object_id: int,
    file_obj: BinaryIO | DjangoFile,
    content_type: str | None = None,
) -> StoredObject:
    """Replace the content of an object in place.

    The prior content is snapshotted as a version first (when it is
    not already the latest version), then the bytes at the object's
    path are overwritten and size, checksum and type are refreshed.
    The object row stays locked from the snapshot until the new
    content is recorded, so concurrent writers each version the
    content they replace.

    Args:
        object_id: ID of object to update.
        file_obj: New content.
        content_type: Content type declared by the client.

    Returns:
        Updated StoredObject instance.

    Raises:
        NotFoundError: If object not found.
        InvalidRequestError: If upload policy validation fails.
    """
    file_size = get_content_size(file_obj)
    checksum = calculate_checksum(file_obj)
    storage = get_content_storage()

    with transaction.atomic():
        stored_object = _lock_object(object_id)
        storage_path = stored_object.file.name

        filename = extract_filename(storage_path)
        mime_type = detect_mime_type(filename, content_type)
        validate_upload_policy(file_size, mime_type)

        logger.info('Updating content: %s (ID: %d)', storage_path, object_id)
        snapshot_before_write(object_id)

        storage.overwrite(storage_path, file_obj)
        stored_object.size_bytes = file_size
        stored_object.mime_type = mime_type
        stored_object.checksum_sha256 = checksum
        stored_object.save(update_fields=[
            'size_bytes',
            'mime_type',
            'checksum_sha256',
            'modified_at',
        ])

    lifecycle.notify(
        lifecycle.object_updated,
        sender=StoredObject,
        stored_object=stored_object,
        content_changed=True,
    )
    return stored_object


def delete_object(object_id: int) -> None:
    """Delete object from database and storage.

    Transaction safety: Delete DB record first. Versions and variants
    go with it through the cascade; storage cleanup of every removed
    record is handled by post_delete signal handlers.

    Args:
        object_id: ID of object to delete.

    Raises:
        NotFoundError: If object doesn't exist.
    """
    stored_object = get_object(object_id)
    storage_name = stored_object.file.name
    user_id = stored_object.user_id
    mime_type = stored_object.mime_type

    logger.info('Deleting object: ID=%d, path=%s', object_id, storage_name)
    with transaction.atomic():
        stored_object.delete()

    lifecycle.notify(
        lifecycle.object_deleted,
        sender=StoredObject,
        object_id=object_id,
        user_id=user_id,
        path=storage_name,
        mime_type=mime_type,
    )


def list_objects(
    user: User,
    folder_path: str = '',
    recursive: bool = False,  # noqa: FBT001, FBT002
    page: int = 1,
    limit: int = _DEFAULT_PAGE_SIZE,
) -> ObjectPage:
    """List objects in a directory, one page at a time.

    Args:
        user: Owner of objects.
        folder_path: Folder path relative to user root (e.g., 'documents').
                    Empty string lists root directory.
        recursive: Include objects in nested folders.
        page: 1-based page number.
        limit: Page size.

    Returns:
        ObjectPage with the requested slice and immediate subfolders.
    """
    prefix = _user_prefix(user, folder_path)
    limit = min(max(limit, 1), _MAX_PAGE_SIZE)
    logger.debug('Listing directory: %s', prefix)

    queryset = StoredObject.objects.filter(
        user=user,
        file__startswith=prefix,
    ).exclude(
        file__endswith=f'/{FOLDER_MARKER}',
    ).order_by('file')
    if not recursive:
        queryset = queryset.filter(
            file__regex=r'^{0}[^/]+$'.format(re.escape(prefix)),
        )

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    return ObjectPage(
        items=list(page_obj.object_list),
        folders=_immediate_subfolders(user, prefix),
        total=paginator.count,
        page=page_obj.number,
        limit=limit,
    )


def move_object(user: User, old_path: str, new_path: str) -> StoredObject:
    """Move/rename an object by updating its storage path.

    This updates both the database record and the bytes in storage.
    Versions and variants are keyed by object ID and stay attached.

    Args:
        user: Owner of the object.
        old_path: Current storage path.
        new_path: New storage path.

    Returns:
        Updated StoredObject instance.

    Raises:
        NotFoundError: If source object not found.
        ConflictError: If an object already exists at the new path.
        InvalidRequestError: If new path validation fails.
    """
    validate_storage_path(user.id, new_path)
    stored_object = get_object_by_path(user, old_path)
    if object_exists(user, new_path):
        raise ConflictError(f'Object already exists: {new_path}')

    _relocate(stored_object, new_path)
    lifecycle.notify(
        lifecycle.object_updated,
        sender=StoredObject,
        stored_object=stored_object,
        content_changed=False,
    )
    return stored_object


def move_folder(user: User, old_prefix: str, new_prefix: str) -> int:
    """Move/rename a folder by updating all object paths with the prefix.

    Args:
        user: Owner of objects.
        old_prefix: Current folder path prefix.
        new_prefix: New folder path prefix.

    Returns:
        Number of objects moved.

    Raises:
        InvalidRequestError: If new prefix validation fails.
        ConflictError: If the new prefix already holds objects.
    """
    validate_storage_path(user.id, new_prefix)
    old_prefix_normalized = old_prefix.rstrip('/') + '/'
    new_prefix_normalized = new_prefix.rstrip('/') + '/'

    if StoredObject.objects.filter(
        user=user,
        file__startswith=new_prefix_normalized,
    ).exists():
        raise ConflictError(f'Folder already exists: {new_prefix}')

    logger.info(
        'Moving folder from %s to %s',
        old_prefix_normalized,
        new_prefix_normalized,
    )

    moved_count = 0
    for stored_object in StoredObject.objects.filter(
        user=user,
        file__startswith=old_prefix_normalized,
    ):
        relative_path = stored_object.file.name[len(old_prefix_normalized):]
        _relocate(stored_object, new_prefix_normalized + relative_path)
        moved_count += 1

    logger.info(
        'Moved %d objects from %s to %s',
        moved_count,
        old_prefix,
        new_prefix,
    )
    if moved_count:
        lifecycle.notify(
            lifecycle.folder_updated,
            sender=StoredObject,
            user_id=user.id,
            path=new_prefix.rstrip('/'),
            old_path=old_prefix.rstrip('/'),
        )
    return moved_count


def _relocate(stored_object: StoredObject, new_path: str) -> None:
    old_path = stored_object.file.name
    storage = get_content_storage()

    storage.move_object(old_path, new_path)
    try:
        with transaction.atomic():
            stored_object.file.name = new_path
            stored_object.save(update_fields=['file', 'modified_at'])
    except Exception:
        logger.exception('Database update failed, moving bytes back')
        storage.move_object(new_path, old_path)
        raise
    logger.info('Object moved: %s -> %s', old_path, new_path)


def _lock_object(object_id: int) -> StoredObject:
    try:
        return StoredObject.objects.select_for_update().get(id=object_id)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object {object_id} not found') from error


def _notify_accessed(stored_object: StoredObject) -> None:
    lifecycle.notify(
        lifecycle.object_accessed,
        sender=StoredObject,
        stored_object=stored_object,
    )


def _user_prefix(user: User, folder_path: str) -> str:
    folder = folder_path.strip('/')
    if folder:
        return f'{user.id}/{folder}/'
    return f'{user.id}/'


def _immediate_subfolders(user: User, prefix: str) -> list[str]:
    paths = StoredObject.objects.filter(
        user=user,
        file__startswith=prefix,
    ).values_list('file', flat=True)

    subfolders = set()
    for object_path in paths:
        remainder = object_path[len(prefix):]
        if '/' in remainder:
            subfolders.add(remainder.split('/', 1)[0])
    return sorted(subfolders)
