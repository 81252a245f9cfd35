"""Tests for metadata utilities."""

import pytest
from django.core.files.base import ContentFile

from server.apps.files.exceptions import ErrorKind, InvalidRequestError
from server.apps.files.infrastructure.metadata import (
    calculate_checksum,
    checksum_bytes,
    detect_mime_type,
    extract_filename,
    get_content_size,
    validate_storage_path,
    validate_upload_policy,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.jpg') == 'image/jpeg'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'


def test_detect_mime_type_declared_wins():
    """Test declared content type overrides the extension guess."""
    declared = 'Image/PNG; charset=binary'

    assert detect_mime_type('photo.jpg', declared) == 'image/png'


def test_calculate_checksum():
    """Test SHA256 checksum calculation."""
    file_obj = ContentFile(b'test content')

    checksum = calculate_checksum(file_obj)

    # Should be 64 character hex string
    assert len(checksum) == 64
    assert all(char in '0123456789abcdef' for char in checksum)

    # Same content should produce same checksum
    assert checksum_bytes(b'test content') == checksum
    # Pointer is rewound for the next reader
    assert file_obj.tell() == 0


def test_get_content_size():
    """Test size of a file-like object."""
    assert get_content_size(ContentFile(b'12345')) == 5


def test_extract_filename():
    """Test filename extraction from path."""
    assert extract_filename('1/documents/test.pdf') == 'test.pdf'
    assert extract_filename('test.txt') == 'test.txt'


def test_validate_storage_path_valid(user):
    """Test storage path validation with valid path."""
    # Should not raise
    validate_storage_path(user.id, f'{user.id}/documents/test.pdf')


def test_validate_storage_path_wrong_user(user):
    """Test storage path validation with wrong user ID."""
    wrong_id = user.id + 100

    with pytest.raises(InvalidRequestError, match='does not match owner'):
        validate_storage_path(user.id, f'{wrong_id}/documents/test.pdf')


def test_validate_storage_path_no_user_id(user):
    """Test storage path validation without user ID."""
    with pytest.raises(InvalidRequestError, match='must start with user ID'):
        validate_storage_path(user.id, 'documents/test.pdf')


def test_validate_storage_path_empty(user):
    """Test storage path validation with empty path."""
    with pytest.raises(InvalidRequestError, match='cannot be empty'):
        validate_storage_path(user.id, '')


@pytest.mark.parametrize('suffix', ['../escape.txt', 'docs/../../x.txt'])
def test_validate_storage_path_parent_segments(user, suffix):
    """Test paths climbing out of the user root are rejected."""
    with pytest.raises(InvalidRequestError, match='must be relative'):
        validate_storage_path(user.id, f'{user.id}/{suffix}')


def test_validate_upload_policy_accepts_allowed_upload():
    """Test an allowed type within the size limit passes."""
    validate_upload_policy(1024, 'image/png')


def test_validate_upload_policy_too_large(settings):
    """Test uploads above the limit are rejected."""
    settings.CONTENT_MAX_UPLOAD_SIZE = 100

    with pytest.raises(InvalidRequestError, match='exceeds limit') as exc_info:
        validate_upload_policy(101, 'image/png')

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST


def test_validate_upload_policy_empty():
    """Test empty uploads are rejected."""
    with pytest.raises(InvalidRequestError, match='must be positive'):
        validate_upload_policy(0, 'text/plain')


def test_validate_upload_policy_disallowed_type():
    """Test types outside the allowed set are rejected."""
    with pytest.raises(InvalidRequestError, match='not allowed'):
        validate_upload_policy(10, 'application/x-msdownload')
