"""Business logic for object version history.

Snapshots are taken under a row lock on the stored object, which
serializes concurrent version creation per object. Version numbers
come from ``StoredObject.last_version_number`` so they are never
reused after a deletion.
"""

import logging
from dataclasses import dataclass
from itertools import zip_longest
from typing import Final, final

from django.conf import settings
from django.core.files.base import ContentFile
from django.db import transaction
from django.db.models import QuerySet

from server.apps.files import lifecycle
from server.apps.files.exceptions import FeatureDisabledError, NotFoundError
from server.apps.files.infrastructure.metadata import checksum_bytes
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.models import StoredObject
from server.apps.versions.models import ObjectVersion

logger = logging.getLogger(__name__)

_FEATURE: Final = 'versioning'


@final
@dataclass(frozen=True, slots=True)
class VersionComparison:
    """Byte-level difference between two versions."""

    version_a: int
    version_b: int
    different_bytes: int
    total_bytes: int

    @property
    def difference_percentage(self) -> float:
        """Share of differing positions, in percent."""
        if self.total_bytes == 0:
            return 0.0
        return self.different_bytes / self.total_bytes * 100

    def to_dict(self) -> dict[str, int | float]:
        """Serialize for API responses."""
        return {
            'version_a': self.version_a,
            'version_b': self.version_b,
            'different_bytes': self.different_bytes,
            'total_bytes': self.total_bytes,
            'difference_percentage': self.difference_percentage,
        }


def versioning_enabled() -> bool:
    """Whether versioning is switched on for this deployment."""
    return bool(settings.CONTENT_FEATURES.get(_FEATURE, False))


def version_path(object_id: int, version_number: int) -> str:
    """Storage path of a version snapshot.

    Args:
        object_id: Stored object ID.
        version_number: Version number.

    Returns:
        Storage path, e.g. ``.versions/42/v3``.
    """
    return f'.versions/{object_id}/v{version_number}'


def create_version(object_id: int) -> ObjectVersion:
    """Snapshot the current content of an object.

    Args:
        object_id: Stored object ID.

    Returns:
        Created ObjectVersion.

    Raises:
        FeatureDisabledError: If versioning is off.
        NotFoundError: If the object does not exist.
    """
    _ensure_enabled()
    storage = get_content_storage()

    with transaction.atomic():
        stored_object = _lock_object(object_id)
        content = storage.read_bytes(stored_object.file.name)
        version_number = stored_object.last_version_number + 1
        slot_path = version_path(object_id, version_number)

        storage.overwrite(slot_path, ContentFile(content))
        try:
            version = ObjectVersion.objects.create(
                stored_object=stored_object,
                version_number=version_number,
                path=slot_path,
                size_bytes=len(content),
                checksum_sha256=checksum_bytes(content),
            )
            stored_object.last_version_number = version_number
            stored_object.save(update_fields=['last_version_number'])
        except Exception:
            logger.exception(
                'Failed to record version %d of object %d',
                version_number,
                object_id,
            )
            storage.rollback_upload(slot_path)
            raise

    logger.info('Created version %d of object %d', version_number, object_id)
    lifecycle.notify(
        lifecycle.version_created,
        sender=ObjectVersion,
        version=version,
    )
    return version


def snapshot_before_write(object_id: int) -> ObjectVersion | None:
    """Snapshot current content unless the latest version already holds it.

    Called by content writes right before new bytes replace old ones.
    Does nothing when versioning is off.

    Args:
        object_id: Stored object ID.

    Returns:
        Created ObjectVersion, or None if no snapshot was needed.
    """
    if not versioning_enabled():
        return None

    stored_object = _get_object(object_id)
    latest = stored_object.versions.order_by('-version_number').first()
    if (
        latest is not None
        and latest.checksum_sha256 == stored_object.checksum_sha256
    ):
        logger.debug(
            'Object %d unchanged since v%d, no snapshot',
            object_id,
            latest.version_number,
        )
        return None
    return create_version(object_id)


def get_versions(object_id: int) -> QuerySet[ObjectVersion]:
    """List versions of an object, newest first.

    Args:
        object_id: Stored object ID.

    Returns:
        QuerySet of versions.

    Raises:
        FeatureDisabledError: If versioning is off.
        NotFoundError: If the object does not exist.
    """
    _ensure_enabled()
    stored_object = _get_object(object_id)
    return stored_object.versions.order_by('-version_number')


def get_version(object_id: int, version_number: int) -> ObjectVersion:
    """Get a single version record.

    Args:
        object_id: Stored object ID.
        version_number: Version number.

    Returns:
        ObjectVersion instance.

    Raises:
        FeatureDisabledError: If versioning is off.
        NotFoundError: If the object or version does not exist.
    """
    _ensure_enabled()
    try:
        return ObjectVersion.objects.get(
            stored_object_id=object_id,
            version_number=version_number,
        )
    except ObjectVersion.DoesNotExist as error:
        raise NotFoundError(
            f'Version {version_number} of object {object_id} not found',
        ) from error


def get_version_content(object_id: int, version_number: int) -> bytes:
    """Read the bytes of a version snapshot.

    Args:
        object_id: Stored object ID.
        version_number: Version number.

    Returns:
        Snapshot bytes.
    """
    version = get_version(object_id, version_number)
    return get_content_storage().read_bytes(version.path)


def restore_version(object_id: int, version_number: int) -> StoredObject:
    """Replace live content with a historical version.

    The current state is snapshotted first so it is never lost. The
    snapshot and the overwrite happen under one lock on the object.

    Args:
        object_id: Stored object ID.
        version_number: Version to restore.

    Returns:
        Updated StoredObject.

    Raises:
        FeatureDisabledError: If versioning is off.
        NotFoundError: If the object or version does not exist.
    """
    target = get_version(object_id, version_number)
    storage = get_content_storage()

    with transaction.atomic():
        stored_object = _lock_object(object_id)
        content = storage.read_bytes(target.path)
        snapshot = create_version(object_id)
        stored_object.last_version_number = snapshot.version_number
        storage.overwrite(stored_object.file.name, ContentFile(content))
        stored_object.size_bytes = len(content)
        stored_object.checksum_sha256 = checksum_bytes(content)
        stored_object.save(update_fields=[
            'size_bytes',
            'checksum_sha256',
            'modified_at',
        ])

    logger.info(
        'Restored object %d to version %d',
        object_id,
        version_number,
    )
    lifecycle.notify(
        lifecycle.object_updated,
        sender=StoredObject,
        stored_object=stored_object,
        content_changed=True,
    )
    return stored_object


def compare_versions(
    object_id: int,
    version_a: int,
    version_b: int,
) -> VersionComparison:
    """Count differing byte positions between two versions.

    Matching checksums short-circuit to zero difference without
    reading any bytes.

    Args:
        object_id: Stored object ID.
        version_a: First version number.
        version_b: Second version number.

    Returns:
        VersionComparison result.
    """
    first = get_version(object_id, version_a)
    second = get_version(object_id, version_b)

    if first.checksum_sha256 == second.checksum_sha256:
        return VersionComparison(
            version_a=version_a,
            version_b=version_b,
            different_bytes=0,
            total_bytes=max(first.size_bytes, second.size_bytes),
        )

    storage = get_content_storage()
    content_a = storage.read_bytes(first.path)
    content_b = storage.read_bytes(second.path)

    # Positions past the end of the shorter content count as different
    different = sum(
        1 for byte_a, byte_b in zip_longest(content_a, content_b)
        if byte_a != byte_b
    )
    return VersionComparison(
        version_a=version_a,
        version_b=version_b,
        different_bytes=different,
        total_bytes=max(len(content_a), len(content_b)),
    )


def delete_version(object_id: int, version_number: int) -> None:
    """Delete one version, keeping the numbering of the others.

    Snapshot bytes are removed by the post_delete handler.

    Args:
        object_id: Stored object ID.
        version_number: Version to delete.
    """
    version = get_version(object_id, version_number)
    with transaction.atomic():
        version.delete()
    logger.info('Deleted version %d of object %d', version_number, object_id)


def delete_all_versions(object_id: int) -> int:
    """Delete every version of an object.

    Args:
        object_id: Stored object ID.

    Returns:
        Number of version records deleted.
    """
    _ensure_enabled()
    stored_object = _get_object(object_id)
    with transaction.atomic():
        deleted, _ = stored_object.versions.all().delete()
    logger.info('Deleted %d versions of object %d', deleted, object_id)
    return deleted


def _ensure_enabled() -> None:
    if not versioning_enabled():
        raise FeatureDisabledError(_FEATURE)


def _get_object(object_id: int) -> StoredObject:
    try:
        return StoredObject.objects.get(id=object_id)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object {object_id} not found') from error


def _lock_object(object_id: int) -> StoredObject:
    try:
        return StoredObject.objects.select_for_update().get(id=object_id)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object {object_id} not found') from error
