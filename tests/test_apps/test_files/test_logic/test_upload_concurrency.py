"""Tests for concurrent chunk arrival, finalize and content updates.

Row locks are a no-op on sqlite, so these run against PostgreSQL only.
"""

from functools import partial

import pytest
from django.core.files.base import ContentFile
from django.db import connection

from server.apps.files.exceptions import UploadSessionNotFoundError
from server.apps.files.infrastructure.storage import get_content_storage
from server.apps.files.logic.chunked_upload import (
    ChunkProgress,
    finalize_upload,
    init_upload,
    upload_chunk,
)
from server.apps.files.logic.file_operations import (
    update_object_content,
    upload_object,
)
from server.apps.files.models import ChunkUploadSession, StoredObject
from server.apps.versions.logic.version_operations import (
    get_version_content,
    get_versions,
)

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(
        connection.vendor != 'postgresql',
        reason='needs PostgreSQL row locks',
    ),
    pytest.mark.django_db(transaction=True),
]


def _init(user, total_chunks):
    return init_upload(
        user,
        file_name='clip.txt',
        declared_size=total_chunks,
        content_type='text/plain',
        target_path='',
        total_chunks=total_chunks,
    )


def test_parallel_chunks_all_counted(user, mock_s3, run_concurrently):
    """Test chunks arriving together are each counted exactly once."""
    session = _init(user, total_chunks=6)

    outcomes = run_concurrently(*[
        partial(upload_chunk, session.session_id, index, bytes([index]))
        for index in range(6)
    ])

    assert all(isinstance(outcome, ChunkProgress) for outcome in outcomes)
    session.refresh_from_db()
    assert session.received_indices == list(range(6))
    assert session.status == ChunkUploadSession.Status.COMPLETE


def test_parallel_resubmits_counted_once(user, mock_s3, run_concurrently):
    """Test one index sent many times at once counts as one chunk."""
    session = _init(user, total_chunks=2)

    run_concurrently(*[
        partial(upload_chunk, session.session_id, 0, b'x')
        for _ in range(4)
    ])

    session.refresh_from_db()
    assert session.chunks_received == 1
    assert session.status == ChunkUploadSession.Status.RECEIVING


def test_finalize_serialized_with_late_chunk(user, mock_s3, run_concurrently):
    """Test a chunk racing finalize lands before it or finds no session."""
    session = _init(user, total_chunks=2)
    upload_chunk(session.session_id, 0, b'ab')
    upload_chunk(session.session_id, 1, b'cd')

    finalized, late_chunk = run_concurrently(
        partial(finalize_upload, session.session_id),
        partial(upload_chunk, session.session_id, 1, b'cd'),
    )

    assert isinstance(finalized, StoredObject)
    assert isinstance(late_chunk, ChunkProgress | UploadSessionNotFoundError)
    assert get_content_storage().read_bytes(finalized.file.name) == b'abcd'
    assert not ChunkUploadSession.objects.exists()
    assert StoredObject.objects.filter(user=user).count() == 1


def test_parallel_updates_version_replaced_content(
    user,
    mock_s3,
    run_concurrently,
):
    """Test every replaced content ends up as a version."""
    stored_object = upload_object(
        user,
        f'{user.id}/notes.txt',
        ContentFile(b'first', name='notes.txt'),
    )

    outcomes = run_concurrently(
        partial(
            update_object_content,
            stored_object.id,
            ContentFile(b'second', name='notes.txt'),
        ),
        partial(
            update_object_content,
            stored_object.id,
            ContentFile(b'third', name='notes.txt'),
        ),
    )

    assert all(isinstance(outcome, StoredObject) for outcome in outcomes)
    live = get_content_storage().read_bytes(stored_object.file.name)
    assert live in {b'second', b'third'}
    replaced = ({b'second', b'third'} - {live}).pop()
    versioned = {
        get_version_content(stored_object.id, version.version_number)
        for version in get_versions(stored_object.id)
    }
    assert versioned == {b'first', replaced}
