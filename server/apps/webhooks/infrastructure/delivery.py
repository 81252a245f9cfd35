"""One HTTP POST of a webhook body and its recorded outcome."""

import logging
from dataclasses import dataclass
from typing import Final, final

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

_SUCCESS_RANGE: Final = range(200, 300)


@final
@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of a single delivery attempt.

    Attributes:
        success: Endpoint answered with a 2xx status.
        status_code: HTTP status, 0 when no response was received.
        response: Response body or error text, truncated.
    """

    success: bool
    status_code: int
    response: str


def build_http_client() -> httpx.Client:
    """Create the client used for deliveries.

    Redirects are not followed: a 3xx answer counts as a failure.
    """
    return httpx.Client(
        timeout=settings.CONTENT_WEBHOOK_TIMEOUT,
        follow_redirects=False,
    )


def post_webhook(
    client: httpx.Client,
    url: str,
    body: bytes,
    headers: dict[str, str],
) -> DeliveryResult:
    """POST a body to an endpoint, never raising on HTTP failures.

    Args:
        client: HTTP client.
        url: Endpoint URL.
        body: Exact request body bytes.
        headers: Request headers, including the signature.

    Returns:
        DeliveryResult of this attempt.
    """
    limit = settings.CONTENT_WEBHOOK_RESPONSE_LIMIT
    try:
        response = client.post(url, content=body, headers=headers)
    except httpx.HTTPError as error:
        logger.warning('Webhook POST to %s failed: %s', url, error)
        return DeliveryResult(
            success=False,
            status_code=0,
            response=str(error)[:limit],
        )

    return DeliveryResult(
        success=response.status_code in _SUCCESS_RANGE,
        status_code=response.status_code,
        response=response.text[:limit],
    )
