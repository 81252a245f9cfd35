"""Tests for the variant lifecycle receivers."""

import io

import pytest
from django.core.files.base import ContentFile
from PIL import Image

from server.apps.files.logic.file_operations import (
    update_object_content,
    upload_object,
)
from server.apps.variants.logic.variant_operations import (
    GENERATE_VARIANT_TASK,
    request_preset,
)
from server.apps.variants.models import DerivedAsset
from server.apps.variants.presets import PRESETS


def _variant_jobs(sent_jobs):
    return [
        kwargs['variant_key']
        for name, kwargs in sent_jobs.sent
        if name == GENERATE_VARIANT_TASK
    ]


@pytest.mark.django_db
def test_image_upload_enqueues_presets(
    user,
    mock_s3,
    png_bytes,
    sent_jobs,
    django_capture_on_commit_callbacks,
):
    """Test an image upload queues one render per preset after commit."""
    with django_capture_on_commit_callbacks(execute=True):
        upload_object(
            user,
            f'{user.id}/photo.png',
            ContentFile(png_bytes, name='photo.png'),
        )

    assert sorted(_variant_jobs(sent_jobs)) == sorted(PRESETS)


@pytest.mark.django_db
def test_text_upload_enqueues_nothing(
    user,
    mock_s3,
    sample_file_content,
    sent_jobs,
    django_capture_on_commit_callbacks,
):
    """Test non-image uploads queue no renders."""
    with django_capture_on_commit_callbacks(execute=True):
        upload_object(user, f'{user.id}/test.txt', sample_file_content)

    assert _variant_jobs(sent_jobs) == []


@pytest.mark.django_db
def test_content_update_replaces_variants(
    image_object,
    sent_jobs,
    django_capture_on_commit_callbacks,
):
    """Test new content drops stale variants and queues fresh renders."""
    request_preset(image_object.id, 'small')
    buffer = io.BytesIO()
    Image.new('RGB', (200, 200), color=(0, 90, 0)).save(buffer, 'PNG')

    with django_capture_on_commit_callbacks(execute=True):
        update_object_content(
            image_object.id,
            ContentFile(buffer.getvalue()),
        )

    assert not DerivedAsset.objects.filter(stored_object=image_object).exists()
    assert sorted(_variant_jobs(sent_jobs)) == sorted(PRESETS)
