"""Job broker helpers shared by the background pipelines.

Jobs are sent by task name so the enqueueing side never imports worker
code. Workers declare their tasks with ``LifecycleJobTask`` as base.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, override

from celery import Celery, Task

logger = logging.getLogger(__name__)


def _get_celery_app() -> Celery:
    """Import the Celery app lazily to avoid import cycles."""
    from server.celery import app  # noqa: WPS433

    return app


def enqueue_job(
    task_name: str,
    kwargs: Mapping[str, Any],
    *,
    send_task: Callable[..., object] | None = None,
) -> bool:
    """Hand a job to the broker without failing the caller.

    Args:
        task_name: Registered Celery task name.
        kwargs: JSON-serializable job payload.
        send_task: Optional sender, defaults to the app's ``send_task``.

    Returns:
        True if the broker accepted the job, False otherwise.
    """
    sender = send_task or _get_celery_app().send_task
    try:
        sender(task_name, kwargs=dict(kwargs))
    except Exception:
        logger.exception('Failed to enqueue job %s: %s', task_name, kwargs)
        return False
    logger.debug('Enqueued job %s: %s', task_name, kwargs)
    return True


class LifecycleJobTask(Task):  # type: ignore[misc]
    """Base task that logs retries and permanently dropped jobs.

    After the last attempt fails the job is dropped: there is no
    dead-letter queue, the error log line is the only trace.
    """

    abstract = True

    @override
    def on_retry(
        self,
        exc: Exception,
        task_id: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        einfo: Any,
    ) -> None:
        """Log a failed attempt that will be retried."""
        logger.warning(
            'Job %s[%s] attempt %d failed, retrying: %s',
            self.name,
            task_id,
            self.request.retries + 1,
            exc,
        )

    @override
    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        einfo: Any,
    ) -> None:
        """Log a job that exhausted its attempts."""
        logger.error(
            'Job %s[%s] dropped after %d attempts: %s (payload: %s)',
            self.name,
            task_id,
            self.request.retries + 1,
            exc,
            kwargs,
        )
