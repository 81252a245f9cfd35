"""Custom storage backend for S3-compatible content storage."""

import logging
from collections.abc import Iterator
from typing import Any, Final, final, override

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage
from storages.utils import clean_name

from server.apps.files.exceptions import NotFoundError, StorageFailureError

logger = logging.getLogger(__name__)

_STREAM_CHUNK_SIZE: Final = 64 * 1024
_MISSING_KEY_CODES: Final = frozenset(('NoSuchKey', '404', 'NotFound'))


@final
class ContentStorage(S3Storage):
    """S3 storage backend, the only writer of raw content bytes.

    Extends django-storages S3Storage with:
    - Transaction rollback support for failed DB operations
    - In-place overwrites, ranged reads and prefix deletes
    - Backend errors translated to ``StorageFailureError``
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save content, adding a random suffix when the name is taken.

        Args:
            name: Storage path for the content.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            StorageFailureError: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except (BotoCoreError, ClientError, OSError) as error:
            logger.exception('Failed to upload file to storage: %s', name)
            raise StorageFailureError(f'Upload failed: {name}') from error
        else:
            return saved_name

    def overwrite(self, name: str, content: Any) -> str:
        """Write content to exactly ``name``, replacing existing bytes.

        Args:
            name: Storage path to write.
            content: File content (file-like object).

        Returns:
            Storage path written.

        Raises:
            StorageFailureError: If S3 upload fails.
        """
        try:
            logger.info('Overwriting file in storage: %s', name)
            return self._save(name, content)
        except (BotoCoreError, ClientError, OSError) as error:
            logger.exception('Failed to overwrite file in storage: %s', name)
            raise StorageFailureError(f'Overwrite failed: {name}') from error

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage path of file to delete.

        Raises:
            StorageFailureError: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to delete file from storage: %s', name)
            raise StorageFailureError(f'Delete failed: {name}') from error

    def delete_prefix(self, prefix: str) -> int:
        """Delete every object under ``prefix``.

        A prefix with no objects is not an error.

        Args:
            prefix: Storage prefix, e.g. ``.variants/42/``.

        Returns:
            Number of objects deleted.

        Raises:
            StorageFailureError: If S3 delete fails.
        """
        normalized = self._normalize_name(clean_name(prefix))
        try:
            responses = self.bucket.objects.filter(Prefix=normalized).delete()
        except (BotoCoreError, ClientError) as error:
            logger.exception('Failed to delete prefix: %s', prefix)
            raise StorageFailureError(f'Delete failed: {prefix}') from error

        deleted = sum(
            len(response.get('Deleted', [])) for response in responses
        )
        logger.info('Deleted %d objects under prefix: %s', deleted, prefix)
        return deleted

    def read_bytes(self, name: str) -> bytes:
        """Read the whole object into memory.

        Args:
            name: Storage path to read.

        Returns:
            Object bytes.
        """
        return b''.join(self._get_body(name).iter_chunks(_STREAM_CHUNK_SIZE))

    def open_range(self, name: str, start: int, end: int) -> Iterator[bytes]:
        """Stream bytes ``start..end`` (inclusive) of an object.

        The request is issued immediately so missing keys fail here,
        not while the caller is consuming the iterator.

        Args:
            name: Storage path to read.
            start: First byte offset.
            end: Last byte offset (inclusive).

        Returns:
            Iterator over byte chunks of the range.
        """
        body = self._get_body(name, Range=f'bytes={start}-{end}')
        return body.iter_chunks(_STREAM_CHUNK_SIZE)

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded file for DB transaction rollback.

        This method is called when a database transaction fails after
        a file has been successfully uploaded to S3.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the DB rollback has already occurred.

        Args:
            name: Storage path of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except StorageFailureError:
            # The file remains in storage but not in database
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def move_object(self, source: str, destination: str) -> None:
        """Move/rename an object in S3 storage.

        S3 doesn't support native rename, so this performs a server-side
        copy followed by deletion of the source.

        Note: This operation is not atomic. If copy succeeds but delete
        fails, both objects will exist.

        Args:
            source: Source storage path.
            destination: Destination storage path.

        Raises:
            StorageFailureError: If copy or delete fails.
        """
        try:
            logger.info('Moving file: %s -> %s', source, destination)
            copy_source = {
                'Bucket': self.bucket_name,
                'Key': self._normalize_name(clean_name(source)),
            }
            self.bucket.copy(
                copy_source,
                self._normalize_name(clean_name(destination)),
            )
        except (BotoCoreError, ClientError) as error:
            logger.exception('Move failed: %s -> %s', source, destination)
            raise StorageFailureError(
                f'Move failed: {source} -> {destination}',
            ) from error
        self.delete(source)
        logger.info('Moved file: %s -> %s', source, destination)

    def _get_body(self, name: str, **params: str) -> Any:
        key = self._normalize_name(clean_name(name))
        try:
            response = self.bucket.Object(key).get(**params)
        except ClientError as error:
            code = error.response.get('Error', {}).get('Code', '')
            if code in _MISSING_KEY_CODES:
                raise NotFoundError(f'Object not found: {name}') from error
            logger.exception('Failed to read file from storage: %s', name)
            raise StorageFailureError(f'Read failed: {name}') from error
        except BotoCoreError as error:
            logger.exception('Failed to read file from storage: %s', name)
            raise StorageFailureError(f'Read failed: {name}') from error
        return response['Body']


def get_content_storage() -> ContentStorage:
    """Get the configured default storage backend.

    Returns:
        ContentStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]
