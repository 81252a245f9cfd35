"""Shared fixtures for variants app tests."""

import pytest
from django.core.files.base import ContentFile

from server.apps.files.logic.file_operations import upload_object


@pytest.fixture
def image_object(user, mock_s3, png_bytes):
    """Uploaded 400x300 PNG.

    Returns:
        StoredObject instance.
    """
    return upload_object(
        user,
        f'{user.id}/photos/photo.png',
        ContentFile(png_bytes, name='photo.png'),
    )


@pytest.fixture
def text_object(user, mock_s3):
    """Uploaded text file.

    Returns:
        StoredObject instance.
    """
    return upload_object(
        user,
        f'{user.id}/notes.txt',
        ContentFile(b'not an image', name='notes.txt'),
    )
