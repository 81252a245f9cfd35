"""Database models for variants app."""

from typing import Final, final, override

from django.db import models

from server.apps.files.models import StoredObject

_VARIANT_KEY_MAX_LENGTH: Final = 64
_FORMAT_MAX_LENGTH: Final = 8
_PATH_MAX_LENGTH: Final = 1024


@final
class DerivedAsset(models.Model):
    """Cached, transformed copy of an image object.

    Bytes live at ``.variants/<object_id>/<variant_key>.<format>``.
    The key is a preset name or a generated ``custom-`` key and is
    unique per object, so regeneration updates the row in place.
    """

    stored_object = models.ForeignKey(
        StoredObject,
        on_delete=models.CASCADE,
        related_name='variants',
    )

    variant_key = models.CharField(max_length=_VARIANT_KEY_MAX_LENGTH)

    width = models.PositiveIntegerField()
    height = models.PositiveIntegerField()
    format = models.CharField(max_length=_FORMAT_MAX_LENGTH)
    quality = models.PositiveSmallIntegerField(null=True, blank=True)

    # Transformation that produced the bytes
    options = models.JSONField(default=dict, blank=True)

    path = models.CharField(max_length=_PATH_MAX_LENGTH)
    size_bytes = models.BigIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Derived asset'  # type: ignore[mutable-override]
        verbose_name_plural = 'Derived assets'  # type: ignore[mutable-override]
        ordering = ['stored_object', 'variant_key']

        constraints = [
            models.UniqueConstraint(
                fields=['stored_object', 'variant_key'],
                name='variants_object_key_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.stored_object_id}:{self.variant_key}'
