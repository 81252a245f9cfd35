"""Chunked uploads: accumulate indexed chunks, then assemble one object.

Sessions are rows of ``ChunkUploadSession``; chunk bytes sit in the
session's scratch area of the content storage until finalize. Every
mutation of a session locks its row, so chunk arrival and finalize
for one session never interleave.
"""

import logging
import secrets
import tempfile
from dataclasses import dataclass
from datetime import timedelta
from typing import Final, final

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile, File as DjangoFile
from django.db import transaction
from django.utils import timezone

from server.apps.files.exceptions import (
    IncompleteUploadError,
    InvalidRequestError,
    UploadSessionNotFoundError,
)
from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    validate_storage_path,
    validate_upload_policy,
)
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.logic.file_operations import upload_object
from server.apps.files.models import ChunkUploadSession, StoredObject

User = get_user_model()
logger = logging.getLogger(__name__)

# Session ID length in bytes (generates 32 hex chars)
_SESSION_ID_BYTES: Final = 16
# Assembled uploads above this size spill from memory to disk
_SPOOL_MAX_MEMORY: Final = 8 * 1024 * 1024

_Status = ChunkUploadSession.Status
_OPEN_STATUSES: Final = (
    _Status.INITIALIZED,
    _Status.RECEIVING,
    _Status.COMPLETE,
)


@final
@dataclass(frozen=True, slots=True)
class ChunkProgress:
    """Progress report returned after init and after every chunk."""

    upload_id: str
    chunks_received: int
    total_chunks: int

    @property
    def progress(self) -> float:
        """Received share of chunks, in percent."""
        return round(self.chunks_received / self.total_chunks * 100, 2)

    @classmethod
    def of(cls, session: ChunkUploadSession) -> 'ChunkProgress':
        """Build progress from a session row."""
        return cls(
            upload_id=session.session_id,
            chunks_received=session.chunks_received,
            total_chunks=session.total_chunks,
        )

    def to_dict(self) -> dict[str, str | int | float]:
        """Serialize for API responses."""
        return {
            'upload_id': self.upload_id,
            'chunks_received': self.chunks_received,
            'total_chunks': self.total_chunks,
            'progress': self.progress,
        }


def get_session_timeout() -> int:
    """Get idle time after which a session is abandoned.

    Returns:
        Timeout in seconds from settings or default of 24 hours.
    """
    return getattr(settings, 'CONTENT_UPLOAD_SESSION_TTL', 24 * 60 * 60)


def init_upload(  # noqa: WPS211
    user: User,
    file_name: str,
    declared_size: int,
    content_type: str | None,
    target_path: str,
    total_chunks: int,
    metadata: dict[str, object] | None = None,
) -> ChunkUploadSession:
    """Open a chunked upload session.

    Args:
        user: Owner of the future object.
        file_name: Name of the assembled object.
        declared_size: Total size announced by the client.
        content_type: Content type announced by the client.
        target_path: Folder under the user root, may be empty.
        total_chunks: Number of chunks the client will send.
        metadata: Free-form metadata for the assembled object.

    Returns:
        Created ChunkUploadSession.

    Raises:
        InvalidRequestError: If size, type, name or chunk count is invalid.
    """
    if total_chunks < 1:
        raise InvalidRequestError('Total chunks must be at least 1')
    if not file_name or '/' in file_name:
        raise InvalidRequestError(f'Invalid file name: {file_name!r}')

    mime_type = detect_mime_type(file_name, content_type)
    validate_upload_policy(declared_size, mime_type)
    folder = target_path.strip('/')
    validate_storage_path(user.id, _object_path(user.id, folder, file_name))

    session = ChunkUploadSession.objects.create(
        session_id=secrets.token_hex(_SESSION_ID_BYTES),
        user=user,
        file_name=file_name,
        declared_size=declared_size,
        content_type=mime_type,
        target_path=folder,
        total_chunks=total_chunks,
        metadata=metadata or {},
    )
    logger.info(
        'Upload session created for user %s: %s (%d chunks)',
        user.username,
        session.session_id[:8],
        total_chunks,
    )
    return session


def upload_chunk(session_id: str, index: int, chunk: bytes) -> ChunkProgress:
    """Store one chunk in its slot.

    Chunks may arrive in any order; resubmitting an index overwrites
    its slot and does not count twice.

    Args:
        session_id: Upload session ID.
        index: Zero-based chunk index.
        chunk: Chunk bytes.

    Returns:
        Progress after this chunk.

    Raises:
        UploadSessionNotFoundError: If the session is unknown or closed.
        InvalidRequestError: If the index is out of range.
    """
    storage = get_content_storage()

    with transaction.atomic():
        session = _lock_open_session(session_id)
        if not 0 <= index < session.total_chunks:
            raise InvalidRequestError(
                f'Chunk index {index} outside 0..{session.total_chunks - 1}',
            )

        storage.overwrite(session.chunk_path(index), ContentFile(chunk))

        received = set(session.received_indices)
        received.add(index)
        session.received_indices = sorted(received)
        if session.chunks_received == session.total_chunks:
            session.status = _Status.COMPLETE
        else:
            session.status = _Status.RECEIVING
        session.save(update_fields=[
            'received_indices',
            'status',
            'last_activity',
        ])

    logger.debug(
        'Chunk %d stored for session %s (%d/%d)',
        index,
        session_id[:8],
        session.chunks_received,
        session.total_chunks,
    )
    return ChunkProgress.of(session)


def finalize_upload(session_id: str) -> StoredObject:
    """Assemble all chunks in index order into a stored object.

    Args:
        session_id: Upload session ID.

    Returns:
        The created StoredObject.

    Raises:
        UploadSessionNotFoundError: If the session is unknown or closed.
        IncompleteUploadError: If chunks are missing.
    """
    storage = get_content_storage()

    with transaction.atomic():
        session = _lock_open_session(session_id)
        if session.chunks_received != session.total_chunks:
            raise IncompleteUploadError(
                received=session.chunks_received,
                expected=session.total_chunks,
            )

        with tempfile.SpooledTemporaryFile(
            max_size=_SPOOL_MAX_MEMORY,
        ) as assembled:
            for index in range(session.total_chunks):
                assembled.write(storage.read_bytes(session.chunk_path(index)))
            assembled.seek(0)

            stored_object = upload_object(
                session.user,
                _object_path(
                    session.user_id,
                    session.target_path,
                    session.file_name,
                ),
                DjangoFile(assembled, name=session.file_name),
                content_type=session.content_type,
                metadata=session.metadata,
            )

        session.delete()

    logger.info(
        'Upload session %s finalized as object %d',
        session_id[:8],
        stored_object.id,
    )
    return stored_object


def abandon_upload(session_id: str) -> None:
    """Discard a session.

    The scratch area is removed by the post_delete handler.

    Args:
        session_id: Upload session ID.

    Raises:
        UploadSessionNotFoundError: If the session is unknown or closed.
    """
    with transaction.atomic():
        session = _lock_open_session(session_id)
        session.delete()
    logger.info('Upload session abandoned: %s', session_id[:8])


def cleanup_stale_sessions(batch_size: int | None = None) -> int:
    """Abandon sessions idle for longer than the session timeout.

    Args:
        batch_size: Maximum number of sessions to remove.

    Returns:
        Number of sessions removed.
    """
    cutoff = timezone.now() - timedelta(seconds=get_session_timeout())
    stale = ChunkUploadSession.objects.filter(
        last_activity__lt=cutoff,
    ).order_by('last_activity').values_list('session_id', flat=True)
    if batch_size is not None:
        stale = stale[:batch_size]

    removed = 0
    for session_id in list(stale):
        try:
            abandon_upload(session_id)
        except UploadSessionNotFoundError:
            # Finalized or abandoned concurrently
            continue
        removed += 1

    if removed:
        logger.info('Cleaned up %d stale upload sessions', removed)
    return removed


def _lock_open_session(session_id: str) -> ChunkUploadSession:
    try:
        return ChunkUploadSession.objects.select_for_update(
            of=('self',),
        ).select_related('user').get(
            session_id=session_id,
            status__in=_OPEN_STATUSES,
        )
    except ChunkUploadSession.DoesNotExist as error:
        raise UploadSessionNotFoundError(session_id) from error


def _object_path(user_id: int, folder: str, file_name: str) -> str:
    if folder:
        return f'{user_id}/{folder}/{file_name}'
    return f'{user_id}/{file_name}'
