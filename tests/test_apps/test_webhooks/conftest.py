"""Shared fixtures for webhooks app tests."""

import httpx
import pytest

from server.apps.webhooks.events import WebhookEvent
from server.apps.webhooks.logic.subscription_operations import (
    create_subscription,
)


@pytest.fixture
def subscription(user):
    """Active signed subscription to file events.

    Returns:
        WebhookSubscription instance.
    """
    return create_subscription(
        user,
        name='CDN purge',
        url='https://hooks.example.com/content',
        events=[WebhookEvent.FILE_CREATED, WebhookEvent.FILE_DELETED],
        secret='s3cr3t',
    )


@pytest.fixture
def endpoint():
    """Recording webhook endpoint answering with a configurable status.

    Returns:
        Endpoint with ``requests``, ``status_code`` and ``client()``.
    """
    return RecordingEndpoint()


class RecordingEndpoint:
    """In-process HTTP endpoint backed by ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body = 'ok'

    def handle(self, request: httpx.Request) -> httpx.Response:
        """Record the request and answer with the configured status."""
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)

    def client(self) -> httpx.Client:
        """HTTP client routed to this endpoint."""
        return httpx.Client(transport=httpx.MockTransport(self.handle))
