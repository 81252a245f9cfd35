"""Django admin configuration for variants app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.admin import format_bytes
from server.apps.variants.models import DerivedAsset


@admin.register(DerivedAsset)
class DerivedAssetAdmin(admin.ModelAdmin[DerivedAsset]):
    """Admin interface for DerivedAsset model."""

    list_display = [
        'stored_object',
        'variant_key',
        'dimensions_display',
        'format',
        'size_display',
        'updated_at',
    ]

    list_filter = [
        'format',
        'updated_at',
    ]

    search_fields = [
        'variant_key',
        'stored_object__file',
    ]

    readonly_fields = [
        'stored_object',
        'variant_key',
        'width',
        'height',
        'format',
        'quality',
        'options',
        'path',
        'size_bytes',
        'created_at',
        'updated_at',
    ]

    def dimensions_display(self, obj: DerivedAsset) -> str:
        """Display width x height."""
        return f'{obj.width}x{obj.height}'
    dimensions_display.short_description = 'Dimensions'  # type: ignore[attr-defined]

    def size_display(self, obj: DerivedAsset) -> str:
        """Display size in human-readable format."""
        return format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[DerivedAsset]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('stored_object')
