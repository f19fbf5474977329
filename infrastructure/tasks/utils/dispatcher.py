"""Small dispatching helpers to decouple Celery from callers."""
from __future__ import annotations

from ..config.celery import celery_app


REVERIFY_TASK_NAME = "payments.reverify_promotion"


class TaskDispatcher:
    """Internal facade used by the API layer to schedule tasks."""

    def enqueue_promotion_reverify(self, reference: str, *, countdown: int = 0) -> str:
        """Schedule an operator re-check of a payment reference; returns the task id."""
        result = celery_app.send_task(
            REVERIFY_TASK_NAME,
            kwargs={"reference": reference},
            countdown=countdown,
        )
        return str(result.id)
