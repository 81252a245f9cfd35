"""Tests for webhook fan-out and delivery attempts."""

import json
import re

import pytest

from server.apps.files.exceptions import NotFoundError, UpstreamDeliveryError
from server.apps.webhooks.events import WebhookEvent
from server.apps.webhooks.infrastructure.signing import (
    HEADER_EVENT,
    HEADER_SIGNATURE,
    verify_signature,
)
from server.apps.webhooks.logic.subscription_operations import (
    create_subscription,
)
from server.apps.webhooks.logic.trigger import (
    DELIVER_WEBHOOK_TASK,
    build_payload,
    deliver,
    format_timestamp,
    trigger_event,
)
from server.apps.webhooks.models import WebhookDeliveryRecord

_PAYLOAD = {
    'event': 'file.created',
    'timestamp': '2024-01-01T00:00:00.000Z',
    'data': {'id': 1, 'path': '1/a.txt'},
}


def test_format_timestamp():
    """Test timestamps are UTC with milliseconds and a Z suffix."""
    assert re.fullmatch(
        r'\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z',
        format_timestamp(),
    )


def test_build_payload_envelope():
    """Test the envelope order is event, timestamp, data."""
    payload = build_payload('folder.created', {'path': '1/albums'})

    assert list(payload) == ['event', 'timestamp', 'data']
    assert payload['data'] == {'path': '1/albums'}


@pytest.mark.django_db
def test_trigger_event_enqueues_one_job_per_subscription(
    user,
    subscription,
    sent_jobs,
):
    """Test each matching subscription gets one delivery job."""
    second = create_subscription(
        user,
        name='Search index',
        url='https://search.example.com/hook',
        events=[WebhookEvent.FILE_CREATED],
    )

    enqueued = trigger_event(WebhookEvent.FILE_CREATED, {'id': 7})

    assert enqueued == 2
    assert sent_jobs.names() == [DELIVER_WEBHOOK_TASK] * 2
    targets = sorted(kwargs['subscription_id'] for _, kwargs in sent_jobs.sent)
    assert targets == sorted([subscription.id, second.id])
    payload = sent_jobs.sent[0][1]['payload']
    assert payload['event'] == 'file.created'
    assert payload['data'] == {'id': 7}


@pytest.mark.django_db
def test_trigger_event_without_subscribers_is_noop(subscription, sent_jobs):
    """Test an event nobody listens to enqueues nothing."""
    assert trigger_event(WebhookEvent.FOLDER_CREATED, {'path': 'x'}) == 0
    assert sent_jobs.sent == []


@pytest.mark.django_db
def test_trigger_event_skips_inactive(subscription, sent_jobs):
    """Test inactive subscriptions are not fanned out to."""
    subscription.active = False
    subscription.save()

    assert trigger_event(WebhookEvent.FILE_CREATED, {}) == 0


@pytest.mark.django_db
def test_trigger_event_scoped_to_owner(subscription, other_user, sent_jobs):
    """Test owner scoping excludes other users' subscriptions."""
    assert trigger_event(
        WebhookEvent.FILE_CREATED,
        {},
        owner_id=other_user.id,
    ) == 0
    assert trigger_event(
        WebhookEvent.FILE_CREATED,
        {},
        owner_id=subscription.user_id,
    ) == 1


@pytest.mark.django_db
def test_trigger_event_when_disabled(subscription, sent_jobs, webhooks_off):
    """Test nothing is enqueued when webhooks are off."""
    assert trigger_event(WebhookEvent.FILE_CREATED, {}) == 0
    assert sent_jobs.sent == []


@pytest.mark.django_db
def test_deliver_signs_exact_body(subscription, endpoint):
    """Test the transmitted body is the signed body."""
    result = deliver(subscription.id, _PAYLOAD, client=endpoint.client())

    request = endpoint.requests[0]
    assert result.success is True
    assert request.method == 'POST'
    assert str(request.url) == subscription.url
    assert request.headers[HEADER_EVENT] == 'file.created'
    assert verify_signature(
        's3cr3t',
        request.content,
        request.headers[HEADER_SIGNATURE],
    )
    assert json.loads(request.content) == _PAYLOAD


@pytest.mark.django_db
def test_deliver_records_success(subscription, endpoint):
    """Test a successful attempt is recorded."""
    deliver(subscription.id, _PAYLOAD, attempt=1, client=endpoint.client())

    record = WebhookDeliveryRecord.objects.get()
    assert record.success is True
    assert record.status_code == 200
    assert record.response == 'ok'
    assert record.event == 'file.created'
    assert record.payload == _PAYLOAD
    assert record.attempt == 1


@pytest.mark.django_db
def test_deliver_records_failure_and_raises(subscription, endpoint):
    """Test a failed attempt is recorded and re-raised for retry."""
    endpoint.status_code = 503
    endpoint.body = 'unavailable'

    with pytest.raises(UpstreamDeliveryError) as exc_info:
        deliver(subscription.id, _PAYLOAD, attempt=2, client=endpoint.client())

    assert exc_info.value.status_code == 503
    record = WebhookDeliveryRecord.objects.get()
    assert record.success is False
    assert record.status_code == 503
    assert record.response == 'unavailable'
    assert record.attempt == 2


@pytest.mark.django_db
def test_deliver_without_secret_is_unsigned(user, endpoint):
    """Test subscriptions without a secret get no signature header."""
    unsigned = create_subscription(
        user,
        name='Plain',
        url='https://plain.example.com/hook',
        events=[WebhookEvent.FILE_CREATED],
    )

    deliver(unsigned.id, _PAYLOAD, client=endpoint.client())

    assert HEADER_SIGNATURE not in endpoint.requests[0].headers


@pytest.mark.django_db
def test_deliver_to_inactive_subscription(subscription, endpoint):
    """Test deactivated subscriptions are not delivered to."""
    subscription.active = False
    subscription.save()

    with pytest.raises(NotFoundError):
        deliver(subscription.id, _PAYLOAD, client=endpoint.client())

    assert endpoint.requests == []
    assert not WebhookDeliveryRecord.objects.exists()
