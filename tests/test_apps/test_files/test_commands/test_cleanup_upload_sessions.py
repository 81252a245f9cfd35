"""Tests for cleanup_upload_sessions management command."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from server.apps.files.logic.chunked_upload import init_upload
from server.apps.files.models import ChunkUploadSession


@pytest.mark.django_db
class TestCleanupUploadSessionsCommand:
    """Tests for cleanup_upload_sessions management command."""

    def _create_session(self, user, age):
        session = init_upload(
            user,
            file_name='video.mp4',
            declared_size=1024,
            content_type='video/mp4',
            target_path='',
            total_chunks=2,
        )
        ChunkUploadSession.objects.filter(pk=session.pk).update(
            last_activity=timezone.now() - age,
        )
        return session

    def test_cleanup_deletes_stale_sessions(self, user, mock_s3):
        """Test sessions idle longer than the timeout are removed."""
        stale = self._create_session(user, timedelta(days=2))

        out = StringIO()
        call_command('cleanup_upload_sessions', stdout=out)

        assert not ChunkUploadSession.objects.filter(pk=stale.pk).exists()
        assert 'Removed 1 upload sessions' in out.getvalue()

    def test_cleanup_preserves_active_sessions(self, user, mock_s3):
        """Test recently active sessions survive."""
        active = self._create_session(user, timedelta(hours=1))

        out = StringIO()
        call_command('cleanup_upload_sessions', stdout=out)

        assert ChunkUploadSession.objects.filter(pk=active.pk).exists()
        assert 'Removed 0 upload sessions' in out.getvalue()

    def test_dry_run_deletes_nothing(self, user, mock_s3):
        """Test dry run only reports what it would delete."""
        stale = self._create_session(user, timedelta(days=2))

        out = StringIO()
        call_command('cleanup_upload_sessions', '--dry-run', stdout=out)

        output = out.getvalue()
        assert ChunkUploadSession.objects.filter(pk=stale.pk).exists()
        assert f'Would delete: {stale.session_id[:8]} video.mp4' in output
        assert 'Would remove 1 upload sessions' in output

    def test_batch_size_limits_removal(self, user, mock_s3):
        """Test no more than batch size sessions are removed per run."""
        for _ in range(3):
            self._create_session(user, timedelta(days=2))

        out = StringIO()
        call_command('cleanup_upload_sessions', '--batch-size', '2', stdout=out)

        assert ChunkUploadSession.objects.count() == 1
        assert 'Removed 2 upload sessions' in out.getvalue()
