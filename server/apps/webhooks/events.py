"""Webhook event taxonomy."""

from typing import final

from django.db import models


@final
class WebhookEvent(models.TextChoices):
    """Lifecycle events a subscription can listen to."""

    FILE_CREATED = 'file.created', 'File created'
    FILE_UPDATED = 'file.updated', 'File updated'
    FILE_DELETED = 'file.deleted', 'File deleted'
    FILE_ACCESSED = 'file.accessed', 'File accessed'
    FOLDER_CREATED = 'folder.created', 'Folder created'
    FOLDER_UPDATED = 'folder.updated', 'Folder updated'
    FOLDER_DELETED = 'folder.deleted', 'Folder deleted'
    VERSION_CREATED = 'version.created', 'Version created'
