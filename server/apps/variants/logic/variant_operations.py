"""Business logic for derived image variants.

Variants are produced on two paths that share one upsert keyed by
``(stored_object, variant_key)``: background jobs enqueued after an
image upload, and synchronous cache fills when a preset is requested
before its job ran.
"""

import logging
import secrets
from typing import Final

from django.conf import settings
from django.core.files.base import ContentFile
from django.db import transaction
from django.db.models import QuerySet

from server.apps.files.exceptions import (
    FeatureDisabledError,
    InvalidRequestError,
    NotFoundError,
)
from server.apps.files.infrastructure.jobs import enqueue_job
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.models import StoredObject
from server.apps.variants.infrastructure.image_processing import (
    render_variant,
)
from server.apps.variants.models import DerivedAsset
from server.apps.variants.presets import PRESETS, VariantOptions, get_preset

logger = logging.getLogger(__name__)

GENERATE_VARIANT_TASK: Final = 'variants.generate_variant'

_FEATURE: Final = 'image_processing'
_CUSTOM_KEY_BYTES: Final = 4  # 8 hex chars
_PROCESSABLE_TYPES: Final = frozenset((
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/tiff',
    'image/avif',
))


def image_processing_enabled() -> bool:
    """Whether the variant pipeline is switched on for this deployment."""
    return bool(settings.CONTENT_FEATURES.get(_FEATURE, False))


def is_processable(stored_object: StoredObject) -> bool:
    """Whether variants can be rendered from the object's content type."""
    return stored_object.mime_type in _PROCESSABLE_TYPES


def variant_path(object_id: int, variant_key: str, output_format: str) -> str:
    """Storage path of a variant.

    Args:
        object_id: Stored object ID.
        variant_key: Preset name or custom key.
        output_format: Output format extension.

    Returns:
        Storage path, e.g. ``.variants/42/thumbnail.webp``.
    """
    return f'.variants/{object_id}/{variant_key}.{output_format}'


def generate_variant(
    object_id: int,
    variant_key: str,
    options: VariantOptions,
) -> DerivedAsset:
    """Render a variant and upsert its record.

    Running this twice with the same key leaves one row, updated
    in place, so duplicate job deliveries are harmless.

    Args:
        object_id: Stored object ID.
        variant_key: Preset name or custom key.
        options: Transformation to apply.

    Returns:
        The created or updated DerivedAsset.

    Raises:
        NotFoundError: If the object does not exist.
        InvalidRequestError: If options are invalid or the source is
            not a processable image.
    """
    options.validate()
    stored_object = _get_image(object_id)
    storage = get_content_storage()

    source = storage.read_bytes(stored_object.file.name)
    rendered = render_variant(source, options)
    path = variant_path(object_id, variant_key, rendered.format)
    storage.overwrite(path, ContentFile(rendered.content))

    with transaction.atomic():
        asset, created = DerivedAsset.objects.update_or_create(
            stored_object=stored_object,
            variant_key=variant_key,
            defaults={
                'width': rendered.width,
                'height': rendered.height,
                'format': rendered.format,
                'quality': options.quality,
                'options': options.to_dict(),
                'path': path,
                'size_bytes': rendered.size_bytes,
            },
        )

    logger.info(
        '%s variant %s of object %d (%dx%d %s, %d bytes)',
        'Created' if created else 'Regenerated',
        variant_key,
        object_id,
        rendered.width,
        rendered.height,
        rendered.format,
        rendered.size_bytes,
    )
    return asset


def request_preset(
    object_id: int,
    preset_name: str,
) -> tuple[bytes, DerivedAsset]:
    """Get a preset variant, generating it on first request.

    A row whose bytes went missing from storage is regenerated.

    Args:
        object_id: Stored object ID.
        preset_name: One of ``PRESETS``.

    Returns:
        Tuple of encoded bytes and the DerivedAsset record.

    Raises:
        FeatureDisabledError: If image processing is off.
        InvalidRequestError: If the preset is unknown or the object
            is not an image.
        NotFoundError: If the object does not exist.
    """
    _ensure_enabled()
    options = get_preset(preset_name)
    _get_image(object_id)
    storage = get_content_storage()

    asset = DerivedAsset.objects.filter(
        stored_object_id=object_id,
        variant_key=preset_name,
    ).first()
    if asset is not None:
        try:
            return storage.read_bytes(asset.path), asset
        except NotFoundError:
            logger.warning(
                'Variant %s of object %d has a record but no bytes, '
                'regenerating',
                preset_name,
                object_id,
            )

    asset = generate_variant(object_id, preset_name, options)
    return storage.read_bytes(asset.path), asset


def request_custom(
    object_id: int,
    options: VariantOptions,
) -> tuple[bytes, DerivedAsset]:
    """Generate a one-off variant under a fresh key.

    Custom variants are never deduplicated: each call creates a row.

    Args:
        object_id: Stored object ID.
        options: Transformation to apply.

    Returns:
        Tuple of encoded bytes and the new DerivedAsset record.

    Raises:
        FeatureDisabledError: If image processing is off.
        InvalidRequestError: If neither width nor height is given.
        NotFoundError: If the object does not exist.
    """
    _ensure_enabled()
    if options.width is None and options.height is None:
        raise InvalidRequestError('At least one of width or height is required')
    options.validate()

    variant_key = f'custom-{secrets.token_hex(_CUSTOM_KEY_BYTES)}'
    asset = generate_variant(object_id, variant_key, options)
    return get_content_storage().read_bytes(asset.path), asset


def list_variants(object_id: int) -> QuerySet[DerivedAsset]:
    """List variants of an object.

    Args:
        object_id: Stored object ID.

    Returns:
        QuerySet of DerivedAsset records.

    Raises:
        FeatureDisabledError: If image processing is off.
        NotFoundError: If the object does not exist.
    """
    _ensure_enabled()
    if not StoredObject.objects.filter(id=object_id).exists():
        raise NotFoundError(f'Object {object_id} not found')
    return DerivedAsset.objects.filter(stored_object_id=object_id)


def delete_all_variants(object_id: int) -> int:
    """Remove every variant of an object, rows and bytes.

    A missing variant directory is not an error.

    Args:
        object_id: Stored object ID.

    Returns:
        Number of variant records deleted.
    """
    with transaction.atomic():
        deleted, _ = DerivedAsset.objects.filter(
            stored_object_id=object_id,
        ).delete()
    get_content_storage().delete_prefix(f'.variants/{object_id}/')
    logger.info('Deleted %d variants of object %d', deleted, object_id)
    return deleted


def enqueue_preset_variants(stored_object: StoredObject) -> int:
    """Enqueue one background job per preset for an image object.

    Never raises: broker failures are logged and counted out.

    Args:
        stored_object: Freshly written object.

    Returns:
        Number of jobs the broker accepted.
    """
    if not image_processing_enabled() or not is_processable(stored_object):
        return 0

    enqueued = 0
    for preset_name, options in PRESETS.items():
        accepted = enqueue_job(
            GENERATE_VARIANT_TASK,
            {
                'object_id': stored_object.id,
                'variant_key': preset_name,
                'options': options.to_dict(),
            },
        )
        enqueued += int(accepted)

    logger.info(
        'Enqueued %d preset variants for object %d',
        enqueued,
        stored_object.id,
    )
    return enqueued


def _ensure_enabled() -> None:
    if not image_processing_enabled():
        raise FeatureDisabledError(_FEATURE)


def _get_image(object_id: int) -> StoredObject:
    try:
        stored_object = StoredObject.objects.get(id=object_id)
    except StoredObject.DoesNotExist as error:
        raise NotFoundError(f'Object {object_id} not found') from error
    if not is_processable(stored_object):
        raise InvalidRequestError(f'Object {object_id} is not an image')
    return stored_object
