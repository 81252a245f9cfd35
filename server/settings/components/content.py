"""Content lifecycle settings: feature flags, upload policy, job retries."""

from typing import Final

from server.settings.components import config

# Subsystems that can be switched off per deployment
CONTENT_FEATURES: Final = {
    'versioning': config('ENABLE_VERSIONING', cast=bool, default=True),
    'image_processing': config(
        'ENABLE_IMAGE_PROCESSING',
        cast=bool,
        default=True,
    ),
    'webhooks': config('ENABLE_WEBHOOKS', cast=bool, default=True),
}

# Upload policy
CONTENT_MAX_UPLOAD_SIZE = config(
    'CONTENT_MAX_UPLOAD_SIZE',
    cast=int,
    default=100 * 1024 * 1024,
)

CONTENT_ALLOWED_MIME_TYPES: Final = frozenset((
    # Images
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
    'image/avif',
    'image/tiff',
    # Videos
    'video/mp4',
    'video/webm',
    'video/ogg',
    'video/quicktime',
    # Audio
    'audio/mpeg',
    'audio/ogg',
    'audio/wav',
    'audio/webm',
    # Documents
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'application/zip',
    'application/json',
    # Text
    'text/plain',
    'text/csv',
    'text/html',
    'text/css',
    'text/javascript',
    'text/markdown',
))

# Chunked upload sessions idle longer than this are abandoned (seconds)
CONTENT_UPLOAD_SESSION_TTL = config(
    'CONTENT_UPLOAD_SESSION_TTL',
    cast=int,
    default=24 * 60 * 60,
)

# Background jobs (image variants, webhook deliveries)
CONTENT_JOB_MAX_ATTEMPTS = config(
    'CONTENT_JOB_MAX_ATTEMPTS',
    cast=int,
    default=5,
)
CONTENT_JOB_BACKOFF_SECONDS = config(
    'CONTENT_JOB_BACKOFF_SECONDS',
    cast=int,
    default=2,
)

# Webhook delivery
CONTENT_WEBHOOK_TIMEOUT = config(
    'CONTENT_WEBHOOK_TIMEOUT',
    cast=float,
    default=10,
)
CONTENT_WEBHOOK_RESPONSE_LIMIT: Final = 1000
