"""Tests for the S3 content storage backend."""

import pytest
from django.core.files.base import ContentFile

from server.apps.files.exceptions import NotFoundError
from server.apps.files.infrastructure.storage import get_content_storage


def _keys(mock_s3):
    return sorted(obj.key for obj in mock_s3.Bucket('content-store').objects.all())


def test_save_adds_suffix_on_collision(mock_s3):
    """Test a taken name never gets silently overwritten."""
    storage = get_content_storage()

    first = storage.save('1/photo.jpg', ContentFile(b'first'))
    second = storage.save('1/photo.jpg', ContentFile(b'second'))

    assert first == '1/photo.jpg'
    assert second != first
    assert second.startswith('1/photo_')
    assert second.endswith('.jpg')
    assert storage.read_bytes(first) == b'first'
    assert storage.read_bytes(second) == b'second'


def test_overwrite_replaces_bytes_at_exact_name(mock_s3):
    """Test overwrite keeps the name and replaces the content."""
    storage = get_content_storage()
    storage.save('1/notes.txt', ContentFile(b'old'))

    written = storage.overwrite('1/notes.txt', ContentFile(b'new'))

    assert written == '1/notes.txt'
    assert storage.read_bytes('1/notes.txt') == b'new'
    assert _keys(mock_s3) == ['1/notes.txt']


def test_read_missing_object(mock_s3):
    """Test reading an absent key raises NotFoundError."""
    with pytest.raises(NotFoundError):
        get_content_storage().read_bytes('1/missing.txt')


def test_open_range_returns_exact_slice(mock_s3):
    """Test ranged reads return end - start + 1 bytes."""
    storage = get_content_storage()
    storage.overwrite('1/digits.txt', ContentFile(b'0123456789'))

    chunks = storage.open_range('1/digits.txt', 2, 5)

    assert b''.join(chunks) == b'2345'


def test_delete_prefix(mock_s3):
    """Test every key under a prefix is removed and others survive."""
    storage = get_content_storage()
    storage.overwrite('.variants/7/small.webp', ContentFile(b'a'))
    storage.overwrite('.variants/7/large.webp', ContentFile(b'b'))
    storage.overwrite('.variants/70/small.webp', ContentFile(b'c'))

    deleted = storage.delete_prefix('.variants/7/')

    assert deleted == 2
    assert _keys(mock_s3) == ['.variants/70/small.webp']


def test_delete_prefix_missing_is_not_an_error(mock_s3):
    """Test deleting an empty prefix reports zero."""
    assert get_content_storage().delete_prefix('.variants/404/') == 0


def test_move_object(mock_s3):
    """Test move copies to the destination and removes the source."""
    storage = get_content_storage()
    storage.overwrite('1/a.txt', ContentFile(b'payload'))

    storage.move_object('1/a.txt', '1/docs/a.txt')

    assert _keys(mock_s3) == ['1/docs/a.txt']
    assert storage.read_bytes('1/docs/a.txt') == b'payload'


def test_rollback_upload_is_best_effort(mock_s3):
    """Test rollback of a missing key does not raise."""
    get_content_storage().rollback_upload('1/never-written.txt')
