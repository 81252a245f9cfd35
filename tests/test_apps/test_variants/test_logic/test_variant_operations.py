"""Tests for derived variant operations."""

import pytest

from server.apps.files.exceptions import (
    FeatureDisabledError,
    InvalidRequestError,
    NotFoundError,
)
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.logic.file_operations import delete_object
from server.apps.variants.logic.variant_operations import (
    GENERATE_VARIANT_TASK,
    delete_all_variants,
    enqueue_preset_variants,
    generate_variant,
    list_variants,
    request_custom,
    request_preset,
    variant_path,
)
from server.apps.variants.models import DerivedAsset
from server.apps.variants.presets import PRESETS, VariantOptions


def _variant_keys(object_id):
    return list(
        get_content_storage().bucket.objects.filter(
            Prefix=f'.variants/{object_id}/',
        ),
    )


@pytest.mark.django_db
def test_generate_variant_is_idempotent(image_object):
    """Test the same key twice leaves one row updated in place."""
    first = generate_variant(image_object.id, 'small', PRESETS['small'])
    second = generate_variant(image_object.id, 'small', PRESETS['small'])

    assert first.pk == second.pk
    assert DerivedAsset.objects.filter(stored_object=image_object).count() == 1
    assert (second.width, second.height) == (320, 240)
    assert second.path == variant_path(image_object.id, 'small', 'webp')


@pytest.mark.django_db
def test_request_preset_generates_on_first_request(image_object):
    """Test a missing preset is generated synchronously and cached."""
    content, asset = request_preset(image_object.id, 'thumbnail')

    assert content
    assert asset.variant_key == 'thumbnail'
    assert asset.format == 'webp'
    assert asset.quality == 80
    assert asset.size_bytes == len(content)

    cached_content, cached_asset = request_preset(image_object.id, 'thumbnail')

    assert cached_asset.pk == asset.pk
    assert cached_content == content


@pytest.mark.django_db
def test_request_preset_regenerates_missing_bytes(image_object):
    """Test a row without bytes on storage is regenerated."""
    _, asset = request_preset(image_object.id, 'medium')
    get_content_storage().delete(asset.path)

    content, regenerated = request_preset(image_object.id, 'medium')

    assert regenerated.pk == asset.pk
    assert get_content_storage().read_bytes(regenerated.path) == content


@pytest.mark.django_db
def test_request_preset_unknown(image_object):
    """Test unknown presets are invalid requests."""
    with pytest.raises(InvalidRequestError):
        request_preset(image_object.id, 'poster')


@pytest.mark.django_db
def test_request_preset_not_an_image(text_object):
    """Test variants of non-image objects are refused."""
    with pytest.raises(InvalidRequestError, match='not an image'):
        request_preset(text_object.id, 'small')


@pytest.mark.django_db
def test_request_preset_missing_object(user, mock_s3):
    """Test variants of missing objects raise NotFoundError."""
    with pytest.raises(NotFoundError):
        request_preset(99999, 'small')


@pytest.mark.django_db
def test_request_custom_always_creates_new_row(image_object):
    """Test custom variants are never deduplicated."""
    options = VariantOptions(width=64, height=64, crop=True, format='png')

    _, first = request_custom(image_object.id, options)
    _, second = request_custom(image_object.id, options)

    assert first.pk != second.pk
    assert first.variant_key.startswith('custom-')
    assert first.variant_key != second.variant_key
    assert (first.width, first.height) == (64, 64)
    assert first.options == options.to_dict()


@pytest.mark.django_db
def test_request_custom_requires_dimension(image_object):
    """Test a custom variant without width or height is refused."""
    with pytest.raises(InvalidRequestError, match='width or height'):
        request_custom(image_object.id, VariantOptions(grayscale=True))

    assert not DerivedAsset.objects.exists()


@pytest.mark.django_db
def test_list_variants(image_object):
    """Test variants of an object are listed."""
    request_preset(image_object.id, 'small')
    request_preset(image_object.id, 'thumbnail')

    keys = [asset.variant_key for asset in list_variants(image_object.id)]

    assert keys == ['small', 'thumbnail']


@pytest.mark.django_db
def test_delete_all_variants(image_object):
    """Test rows and bytes of every variant are removed."""
    request_preset(image_object.id, 'small')
    request_custom(image_object.id, VariantOptions(width=10))

    deleted = delete_all_variants(image_object.id)

    assert deleted == 2
    assert not DerivedAsset.objects.exists()
    assert _variant_keys(image_object.id) == []


@pytest.mark.django_db
def test_delete_all_variants_without_any(image_object):
    """Test purging an object without variants is not an error."""
    assert delete_all_variants(image_object.id) == 0


@pytest.mark.django_db
def test_object_delete_removes_variants(image_object):
    """Test deleting the object cascades to variant rows and bytes."""
    request_preset(image_object.id, 'small')
    object_id = image_object.id

    delete_object(object_id)

    assert not DerivedAsset.objects.exists()
    assert _variant_keys(object_id) == []


@pytest.mark.django_db
def test_enqueue_preset_variants(image_object, sent_jobs):
    """Test one job per preset is enqueued for an image."""
    enqueued = enqueue_preset_variants(image_object)

    assert enqueued == len(PRESETS)
    assert sent_jobs.names() == [GENERATE_VARIANT_TASK] * len(PRESETS)
    name, kwargs = sent_jobs.sent[0]
    assert kwargs == {
        'object_id': image_object.id,
        'variant_key': 'thumbnail',
        'options': {
            'format': 'webp',
            'width': 150,
            'height': 150,
            'quality': 80,
        },
    }


@pytest.mark.django_db
def test_enqueue_preset_variants_skips_non_images(text_object, sent_jobs):
    """Test nothing is enqueued for non-image objects."""
    assert enqueue_preset_variants(text_object) == 0
    assert sent_jobs.sent == []


@pytest.mark.django_db
def test_variants_when_disabled(image_object, image_processing_off, sent_jobs):
    """Test the pipeline reports the disabled feature and enqueues nothing."""
    with pytest.raises(FeatureDisabledError):
        request_preset(image_object.id, 'small')
    with pytest.raises(FeatureDisabledError):
        request_custom(image_object.id, VariantOptions(width=10))

    assert enqueue_preset_variants(image_object) == 0
    assert sent_jobs.sent == []
