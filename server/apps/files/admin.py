"""Django admin configuration for files app."""

from typing import Final

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.models import ChunkUploadSession, StoredObject

_KIB: Final = 1024


def format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < _KIB:
        return f'{size_bytes} B'
    if size_bytes < _KIB ** 2:
        return f'{size_bytes / _KIB:.1f} KB'
    if size_bytes < _KIB ** 3:
        return f'{size_bytes / _KIB ** 2:.1f} MB'
    return f'{size_bytes / _KIB ** 3:.1f} GB'


@admin.register(StoredObject)
class StoredObjectAdmin(admin.ModelAdmin[StoredObject]):
    """Admin interface for stored content objects.

    Objects are written through the content operations only, so every
    content field is read-only here.
    """

    list_display = [
        'file',
        'user',
        'mime_type',
        'size_display',
        'versions_display',
        'modified_at',
    ]

    list_filter = [
        'mime_type',
        'modified_at',
    ]

    search_fields = [
        'file',
        'checksum_sha256',
        'user__username',
    ]

    date_hierarchy = 'uploaded_at'

    readonly_fields = [
        'file',
        'user',
        'size_bytes',
        'mime_type',
        'checksum_sha256',
        'last_version_number',
        'uploaded_at',
        'modified_at',
    ]

    fieldsets = (
        ('Location', {
            'fields': ('user', 'file'),
        }),
        ('Content', {
            'fields': (
                'mime_type',
                'size_bytes',
                'checksum_sha256',
                'metadata',
            ),
        }),
        ('Versioning', {
            'fields': ('last_version_number',),
        }),
        ('Timestamps', {
            'fields': ('uploaded_at', 'modified_at'),
        }),
    )

    def size_display(self, obj: StoredObject) -> str:
        """Display size in human-readable format."""
        return format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def versions_display(self, obj: StoredObject) -> str:
        """Display the latest version number, dash when unversioned."""
        if not obj.last_version_number:
            return '-'
        return f'v{obj.last_version_number}'
    versions_display.short_description = 'Latest'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Objects are created by uploads only."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[StoredObject]:
        """Join owners for the changelist."""
        return super().get_queryset(request).select_related('user')


@admin.register(ChunkUploadSession)
class ChunkUploadSessionAdmin(admin.ModelAdmin[ChunkUploadSession]):
    """Admin interface for ChunkUploadSession model."""

    list_display = [
        'session_display',
        'user',
        'file_name',
        'progress_display',
        'status',
        'last_activity',
    ]

    list_filter = [
        'status',
        'created_at',
    ]

    search_fields = [
        'session_id',
        'file_name',
        'user__username',
    ]

    readonly_fields = [
        'session_id',
        'received_indices',
        'created_at',
        'last_activity',
    ]

    def session_display(self, obj: ChunkUploadSession) -> str:
        """Display the session ID prefix."""
        return obj.session_id[:8]
    session_display.short_description = 'Session'  # type: ignore[attr-defined]

    def progress_display(self, obj: ChunkUploadSession) -> str:
        """Display received chunks out of the total.

        Args:
            obj: ChunkUploadSession instance.

        Returns:
            Progress string (e.g., '3/10').
        """
        return f'{obj.chunks_received}/{obj.total_chunks}'
    progress_display.short_description = 'Chunks'  # type: ignore[attr-defined]

    def get_queryset(
        self,
        request: HttpRequest,
    ) -> QuerySet[ChunkUploadSession]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('user')
