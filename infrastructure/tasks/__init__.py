"""Background reconciliation tasks.

The API layer only sees TaskDispatcher; workers load the task modules
listed in the Celery configuration.
"""
from .config.celery import celery_app
from .utils.dispatcher import TaskDispatcher

__all__ = ["celery_app", "TaskDispatcher"]
