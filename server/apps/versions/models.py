"""Database models for versions app."""

from typing import Final, final, override

from django.db import models

from server.apps.files.models import StoredObject

_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_PATH_MAX_LENGTH: Final = 1024


@final
class ObjectVersion(models.Model):
    """Immutable snapshot of a stored object's content.

    Bytes live at ``.versions/<object_id>/v<number>``. Numbers start
    at 1 per object and are never reused, even after a version is
    deleted.
    """

    stored_object = models.ForeignKey(
        StoredObject,
        on_delete=models.CASCADE,
        related_name='versions',
    )

    version_number = models.PositiveIntegerField()

    path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        help_text='Path of the snapshot in storage',
    )

    size_bytes = models.BigIntegerField()

    checksum_sha256 = models.CharField(max_length=_CHECKSUM_MAX_LENGTH)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Object version'  # type: ignore[mutable-override]
        verbose_name_plural = 'Object versions'  # type: ignore[mutable-override]
        ordering = ['-version_number']

        constraints = [
            models.UniqueConstraint(
                fields=['stored_object', 'version_number'],
                name='versions_object_number_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.stored_object_id}:v{self.version_number}'
