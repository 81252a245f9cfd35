"""Management command to abandon stale chunked upload sessions."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.core.management.base import BaseCommand
from django.utils import timezone

from server.apps.files.logic.chunked_upload import (
    cleanup_stale_sessions,
    get_session_timeout,
)
from server.apps.files.models import ChunkUploadSession

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete upload sessions idle longer than the session timeout."""

    help = 'Clean up abandoned chunked upload sessions and their chunks'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max sessions to process (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        timeout = get_session_timeout()
        cutoff = timezone.now() - timedelta(seconds=timeout)
        self.stdout.write(
            f'Looking for upload sessions idle since before {cutoff} '
            f'(timeout {timeout}s)',
        )

        if dry_run:
            stale = ChunkUploadSession.objects.filter(
                last_activity__lt=cutoff,
            ).select_related('user').order_by('last_activity')[:batch_size]
            count = 0
            for session in stale:
                self.stdout.write(
                    f'Would delete: {session.session_id[:8]} '
                    f'{session.file_name} '
                    f'(user: {session.user.username}, '
                    f'chunks: {session.chunks_received}/'
                    f'{session.total_chunks})',
                )
                count += 1
            self.stdout.write(
                self.style.SUCCESS(f'Would remove {count} upload sessions'),
            )
            return

        removed = cleanup_stale_sessions(batch_size=batch_size)
        logger.info('Stale upload session cleanup removed %d', removed)
        self.stdout.write(
            self.style.SUCCESS(f'Removed {removed} upload sessions'),
        )
