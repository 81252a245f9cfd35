"""Database models for files app."""

from typing import Final, final, override

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()

# Constants for field max lengths
_MIME_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_PATH_MAX_LENGTH: Final = 1024
_FILE_NAME_MAX_LENGTH: Final = 255
_SESSION_ID_MAX_LENGTH: Final = 32


@final
class StoredObject(models.Model):
    """Single addressable file in the content namespace.

    Each object belongs to a user and has a path in storage following
    the pattern: {user_id}/folder/subfolder/filename.ext

    The path serves as both the storage key and the hierarchical
    organization structure (no separate Folder model). Versions and
    derived assets reference the object and are removed with it.
    """

    # Owner relationship
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='stored_objects',
        db_index=True,
    )

    # upload_to='' means we control the full path
    file = models.FileField(
        upload_to='',
        max_length=_PATH_MAX_LENGTH,
        help_text='Path in storage: {user_id}/folder/file.ext',
    )

    size_bytes = models.BigIntegerField(
        help_text='Object size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
    )

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        help_text='SHA256 hash for integrity verification',
        db_index=True,
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text='Free-form metadata supplied by the uploader',
    )

    # Highest version number ever assigned, never decremented
    last_version_number = models.PositiveIntegerField(default=0)

    uploaded_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Stored object'  # type: ignore[mutable-override]
        verbose_name_plural = 'Stored objects'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'file'],
                name='files_user_file_idx',
            ),
            models.Index(
                fields=['user', '-uploaded_at'],
                name='files_user_recent_idx',
            ),
        ]

        constraints = [
            # Prevent duplicate paths for the same user
            models.UniqueConstraint(
                fields=['user', 'file'],
                name='files_user_path_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.file.name}'


@final
class ChunkUploadSession(models.Model):
    """Durable state of a chunked upload in progress.

    Chunk bytes live in a private scratch area of the storage
    (``.tmp/<session_id>/chunk-<index>``); this row tracks which
    indices arrived. Rows are removed on finalize or abandonment.
    """

    class Status(models.TextChoices):
        """Lifecycle of an upload session."""

        INITIALIZED = 'initialized', 'Initialized'
        RECEIVING = 'receiving', 'Receiving'
        COMPLETE = 'complete', 'Complete'

    session_id = models.CharField(
        max_length=_SESSION_ID_MAX_LENGTH,
        unique=True,
        db_index=True,
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='upload_sessions',
    )

    file_name = models.CharField(max_length=_FILE_NAME_MAX_LENGTH)
    declared_size = models.BigIntegerField()
    content_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    target_path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        help_text='Folder path under the user root, may be empty',
        blank=True,
    )

    total_chunks = models.PositiveIntegerField()

    # Distinct chunk indices written so far
    received_indices = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.INITIALIZED,
    )

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    last_activity = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Chunk upload session'  # type: ignore[mutable-override]
        verbose_name_plural = 'Chunk upload sessions'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_chunks__gte=1),
                name='upload_total_chunks_positive',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.session_id[:8]}:{self.file_name}'

    @property
    def chunks_received(self) -> int:
        """Number of distinct chunks received."""
        return len(self.received_indices)

    @property
    def scratch_prefix(self) -> str:
        """Storage prefix holding this session's chunk slots."""
        return f'.tmp/{self.session_id}/'

    def chunk_path(self, index: int) -> str:
        """Storage path of the slot for chunk ``index``.

        Args:
            index: Zero-based chunk index.

        Returns:
            Storage path of the chunk slot.
        """
        return f'{self.scratch_prefix}chunk-{index}'
