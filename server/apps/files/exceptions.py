"""Error kinds raised by the content lifecycle operations.

Every synchronous operation fails with exactly one of these exceptions.
Each one carries its ``kind`` and the HTTP status the routing layer
answers with, so callers branch on the kind instead of on messages.
"""

import enum
from http import HTTPStatus
from typing import Any, ClassVar, final, override


@final
class ErrorKind(enum.StrEnum):
    """Stable identifiers of failure categories."""

    NOT_FOUND = 'not_found'
    INVALID_REQUEST = 'invalid_request'
    INCOMPLETE_UPLOAD = 'incomplete_upload'
    FEATURE_DISABLED = 'feature_disabled'
    CONFLICT = 'conflict'
    UPSTREAM_DELIVERY_FAILURE = 'upstream_delivery_failure'
    STORAGE_FAILURE = 'storage_failure'


class ContentError(Exception):
    """Base class for all content lifecycle errors."""

    kind: ClassVar[ErrorKind]
    http_status: ClassVar[HTTPStatus]


class NotFoundError(ContentError):
    """Object, version, variant, session or subscription is absent."""

    kind = ErrorKind.NOT_FOUND
    http_status = HTTPStatus.NOT_FOUND


@final
class UploadSessionNotFoundError(NotFoundError):
    """Chunk session is unknown, finalized or abandoned."""

    def __init__(self, session_id: str) -> None:
        """Initialize UploadSessionNotFoundError.

        Args:
            session_id: Identifier the caller asked for.
        """
        self.session_id = session_id
        super().__init__(f'Upload session not found: {session_id}')

    @override
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.session_id,))


class InvalidRequestError(ContentError):
    """Bad parameters, disallowed content type or oversize payload."""

    kind = ErrorKind.INVALID_REQUEST
    http_status = HTTPStatus.BAD_REQUEST


@final
class RangeNotSatisfiableError(InvalidRequestError):
    """Requested byte range lies outside the object."""

    http_status = HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE

    def __init__(self, range_header: str, total_size: int) -> None:
        """Initialize RangeNotSatisfiableError.

        Args:
            range_header: Range header value as received.
            total_size: Size of the object in bytes.
        """
        self.range_header = range_header
        self.total_size = total_size
        super().__init__(
            f'Range {range_header!r} not satisfiable '
            f'for object of {total_size} bytes',
        )

    @override
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.range_header, self.total_size))


@final
class IncompleteUploadError(ContentError):
    """Finalize was requested before every chunk arrived."""

    kind = ErrorKind.INCOMPLETE_UPLOAD
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, received: int, expected: int) -> None:
        """Initialize IncompleteUploadError.

        Args:
            received: Number of distinct chunks received.
            expected: Number of chunks declared at init.
        """
        self.received = received
        self.expected = expected
        super().__init__(
            f'Upload incomplete: received {received} of {expected} chunks',
        )

    @override
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.received, self.expected))

    @property
    def shortfall(self) -> int:
        """Number of chunks still missing."""
        return self.expected - self.received


@final
class FeatureDisabledError(ContentError):
    """Subsystem is switched off for this deployment."""

    kind = ErrorKind.FEATURE_DISABLED
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(self, feature: str) -> None:
        """Initialize FeatureDisabledError.

        Args:
            feature: Name of the disabled feature flag.
        """
        self.feature = feature
        super().__init__(f'Feature is disabled: {feature}')

    @override
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.feature,))


@final
class ConflictError(ContentError):
    """Target already exists where uniqueness is required."""

    kind = ErrorKind.CONFLICT
    http_status = HTTPStatus.CONFLICT


@final
class UpstreamDeliveryError(ContentError):
    """Webhook endpoint did not accept the delivery."""

    kind = ErrorKind.UPSTREAM_DELIVERY_FAILURE
    http_status = HTTPStatus.BAD_GATEWAY

    def __init__(self, url: str, status_code: int | None, reason: str) -> None:
        """Initialize UpstreamDeliveryError.

        Args:
            url: Endpoint the delivery was sent to.
            status_code: HTTP status returned, None when no response.
            reason: Short failure description.
        """
        self.url = url
        self.status_code = status_code
        self.reason = reason
        super().__init__(f'Webhook delivery to {url} failed: {reason}')

    @override
    def __reduce__(self) -> tuple[Any, ...]:
        # Rebuilt from its fields when a job result is stored
        return (type(self), (self.url, self.status_code, self.reason))


@final
class StorageFailureError(ContentError):
    """Underlying object storage I/O failed."""

    kind = ErrorKind.STORAGE_FAILURE
    http_status = HTTPStatus.INTERNAL_SERVER_ERROR
