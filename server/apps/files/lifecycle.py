"""Content lifecycle signals.

Mutations announce themselves here; the versions, variants and webhooks
apps connect receivers in their ``AppConfig.ready``. Signals are sent
only after the surrounding transaction commits and receiver errors are
logged, so a failing receiver never undoes or fails the mutation.

Signal arguments:
- object_created / object_accessed: ``stored_object``
- object_updated: ``stored_object``, ``content_changed``
- object_deleted: ``object_id``, ``user_id``, ``path``, ``mime_type``
- folder_created / folder_deleted: ``user_id``, ``path``
- folder_updated: ``user_id``, ``path``, ``old_path``
- version_created: ``version``
"""

import logging
from typing import Any

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

object_created = Signal()
object_updated = Signal()
object_deleted = Signal()
object_accessed = Signal()

folder_created = Signal()
folder_updated = Signal()
folder_deleted = Signal()

version_created = Signal()


def notify(signal: Signal, sender: type[Any], **kwargs: Any) -> None:
    """Send ``signal`` once the current transaction commits.

    Outside of a transaction the signal is sent immediately.

    Args:
        signal: One of the lifecycle signals above.
        sender: Model class announcing the change.
        kwargs: Signal arguments.
    """
    def _send() -> None:  # noqa: WPS430
        responses = signal.send_robust(sender=sender, **kwargs)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    'Lifecycle receiver %s failed: %s',
                    getattr(receiver, '__qualname__', receiver),
                    response,
                    exc_info=response,
                )

    transaction.on_commit(_send)
