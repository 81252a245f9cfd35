"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Content storage backend (S3/MinIO/R2)
- Metadata extraction and upload policy (MIME type, checksum, size)
- Byte range parsing
- Job broker helpers

Keep infrastructure concerns separate from business logic.
"""
