"""Business logic layer for files app.

This package contains all business logic for stored objects:
- Upload, read, ranged streaming, update, delete, move
- Directory listing and folder management
- Chunked uploads

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
