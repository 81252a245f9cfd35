"""Metadata extraction and upload policy checks."""

import hashlib
import mimetypes
from pathlib import PurePosixPath
from typing import Any, BinaryIO, Final

from django.conf import settings

from server.apps.files.exceptions import InvalidRequestError

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'


def detect_mime_type(filename: str, declared: str | None = None) -> str:
    """Detect MIME type of an upload.

    A type declared by the client wins, otherwise it is guessed
    from the filename extension.

    Args:
        filename: Filename with extension.
        declared: Content type supplied by the client, if any.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    if declared:
        return declared.split(';', 1)[0].strip().lower()
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def calculate_checksum(file_obj: BinaryIO | Any) -> str:
    """Calculate SHA256 checksum of file.

    Reads file in chunks to handle large files efficiently.
    Resets file pointer to beginning after calculation.

    Args:
        file_obj: File-like object to checksum.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    sha256_hash = hashlib.sha256()

    file_obj.seek(0)
    for chunk in iter(lambda: file_obj.read(_CHUNK_SIZE), b''):
        sha256_hash.update(chunk)
    file_obj.seek(0)

    return sha256_hash.hexdigest()


def checksum_bytes(content: bytes) -> str:
    """Calculate SHA256 checksum of in-memory content.

    Args:
        content: Raw bytes.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    return hashlib.sha256(content).hexdigest()


def get_content_size(file_obj: BinaryIO | Any) -> int:
    """Get size of a file-like object.

    Args:
        file_obj: File-like object.

    Returns:
        Size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_obj.seek(0)
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size


def extract_filename(storage_path: str) -> str:
    """Extract filename from storage path.

    Args:
        storage_path: Full path (e.g., '123/docs/file.pdf').

    Returns:
        Filename (e.g., 'file.pdf').
    """
    return PurePosixPath(storage_path).name


def validate_storage_path(user_id: int, storage_path: str) -> None:
    """Validate storage path follows user isolation rules.

    Ensures the storage path starts with the user's ID to maintain
    multi-user isolation and never climbs out of it.

    Args:
        user_id: Owner's user ID.
        storage_path: Proposed storage path.

    Raises:
        InvalidRequestError: If path doesn't start with user_id or is invalid.
    """
    if not storage_path:
        raise InvalidRequestError('Storage path cannot be empty')

    path_parts = PurePosixPath(storage_path).parts
    if not path_parts:
        raise InvalidRequestError(
            'Storage path must have at least one component',
        )
    if '..' in path_parts or storage_path.startswith('/'):
        raise InvalidRequestError(
            f'Storage path must be relative: {storage_path}',
        )

    first_component = path_parts[0]
    try:
        path_user_id = int(first_component)
    except ValueError as error:
        raise InvalidRequestError(
            'Storage path must start with user ID',
        ) from error

    if path_user_id != user_id:
        raise InvalidRequestError(
            f'Storage path user ID ({path_user_id}) does not match '
            f'owner ({user_id})',
        )


def validate_upload_policy(size_bytes: int, mime_type: str) -> None:
    """Check an upload against the deployment's size and type policy.

    Args:
        size_bytes: Declared or measured size in bytes.
        mime_type: Content type of the upload.

    Raises:
        InvalidRequestError: If the upload is empty, too large
            or of a disallowed type.
    """
    max_size = settings.CONTENT_MAX_UPLOAD_SIZE
    if size_bytes <= 0:
        raise InvalidRequestError('Upload size must be positive')
    if size_bytes > max_size:
        raise InvalidRequestError(
            f'Upload of {size_bytes} bytes exceeds limit of {max_size} bytes',
        )
    if mime_type not in settings.CONTENT_ALLOWED_MIME_TYPES:
        raise InvalidRequestError(f'Content type not allowed: {mime_type}')
