"""Webhook payload serialization and HMAC-SHA256 signing.

The signature is the lowercase hex HMAC-SHA256 of the exact request
body, keyed with the subscription secret, sent in
``X-Webhook-Signature``. Receivers recompute it over the raw body.
"""

import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any, Final

HEADER_EVENT: Final = 'X-Webhook-Event'
HEADER_SIGNATURE: Final = 'X-Webhook-Signature'
USER_AGENT: Final = 'CDN-Webhook-Delivery'

_CONTENT_TYPE: Final = 'application/json'


def serialize_payload(payload: Mapping[str, Any]) -> bytes:
    """Encode a payload as compact UTF-8 JSON.

    Key order is preserved, so the body matches what was signed.

    Args:
        payload: Envelope with ``event``, ``timestamp`` and ``data``.

    Returns:
        Request body bytes.
    """
    return json.dumps(
        payload,
        separators=(',', ':'),
        ensure_ascii=False,
    ).encode('utf-8')


def compute_signature(secret: str, body: bytes) -> str:
    """Compute the hex HMAC-SHA256 signature of a body.

    Args:
        secret: Subscription signing secret.
        body: Exact request body bytes.

    Returns:
        Lowercase hex digest.
    """
    return hmac.new(
        key=secret.encode('utf-8'),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str) -> bool:
    """Check a received signature in constant time."""
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected, signature.strip().lower())


def build_headers(event: str, body: bytes, secret: str = '') -> dict[str, str]:
    """Build delivery request headers.

    Args:
        event: Event value, e.g. ``file.created``.
        body: Exact request body bytes.
        secret: Signing secret, no signature header when empty.

    Returns:
        Header mapping for the POST request.
    """
    headers = {
        'Content-Type': _CONTENT_TYPE,
        'User-Agent': USER_AGENT,
        HEADER_EVENT: event,
    }
    if secret:
        headers[HEADER_SIGNATURE] = compute_signature(secret, body)
    return headers
