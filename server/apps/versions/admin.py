"""Django admin configuration for versions app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.admin import format_bytes
from server.apps.versions.models import ObjectVersion


@admin.register(ObjectVersion)
class ObjectVersionAdmin(admin.ModelAdmin[ObjectVersion]):
    """Admin interface for ObjectVersion model.

    Versions are immutable, every field is read-only.
    """

    list_display = [
        'stored_object',
        'version_number',
        'size_display',
        'checksum_sha256',
        'created_at',
    ]

    list_filter = ['created_at']

    search_fields = [
        'stored_object__file',
        'checksum_sha256',
    ]

    readonly_fields = [
        'stored_object',
        'version_number',
        'path',
        'size_bytes',
        'checksum_sha256',
        'created_at',
    ]

    def size_display(self, obj: ObjectVersion) -> str:
        """Display size in human-readable format."""
        return format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Versions are only created by content writes."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[ObjectVersion]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related(
            'stored_object__user',
        )
