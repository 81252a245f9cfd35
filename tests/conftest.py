"""Shared fixtures for all tests."""

import io
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.db import connection
from moto import mock_aws
from PIL import Image

from server.apps.files.infrastructure import jobs

User = get_user_model()


@dataclass
class RecordingBroker:
    """Stands in for the Celery app, keeping every sent job."""

    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def send_task(self, name: str, kwargs: dict[str, Any]) -> None:
        """Record a job instead of publishing it."""
        self.sent.append((name, kwargs))

    def names(self) -> list[str]:
        """Task names in send order."""
        return [name for name, _ in self.sent]


@pytest.fixture(autouse=True)
def sent_jobs(monkeypatch):
    """Route every enqueued job into an in-memory recorder.

    Returns:
        RecordingBroker with the jobs sent during the test.
    """
    broker = RecordingBroker()
    monkeypatch.setattr(jobs, '_get_celery_app', lambda: broker)
    return broker


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with content-store bucket.

    Yields:
        boto3 S3 resource with content-store bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='content-store')

        yield conn


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def png_bytes():
    """Encoded 400x300 RGB PNG.

    Returns:
        PNG bytes.
    """
    buffer = io.BytesIO()
    Image.new('RGB', (400, 300), color=(200, 40, 40)).save(buffer, 'PNG')
    return buffer.getvalue()


@pytest.fixture
def versioning_off(settings):
    """Switch versioning off for one test."""
    settings.CONTENT_FEATURES = {
        **settings.CONTENT_FEATURES,
        'versioning': False,
    }


@pytest.fixture
def image_processing_off(settings):
    """Switch the variant pipeline off for one test."""
    settings.CONTENT_FEATURES = {
        **settings.CONTENT_FEATURES,
        'image_processing': False,
    }


@pytest.fixture
def webhooks_off(settings):
    """Switch webhook delivery off for one test."""
    settings.CONTENT_FEATURES = {
        **settings.CONTENT_FEATURES,
        'webhooks': False,
    }


@pytest.fixture
def run_concurrently():
    """Run callables on parallel threads released at the same moment.

    Every thread closes its own database connection when done.

    Returns:
        Function returning, in call order, each call's result or the
        exception it raised.
    """
    def runner(*calls):  # noqa: WPS430
        barrier = threading.Barrier(len(calls))

        def run(call):  # noqa: WPS430
            barrier.wait(timeout=10)
            try:
                return call()
            except Exception as error:  # noqa: BLE001
                return error
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=len(calls)) as pool:
            return list(pool.map(run, calls))

    return runner
