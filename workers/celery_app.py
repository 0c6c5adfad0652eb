"""Celery app factory."""

from celery import Celery

celery_app = Celery("hirestream")
celery_app.config_from_object("workers.celery_config")
celery_app.autodiscover_tasks(["workers.tasks"], related_name=None)

# Task modules register on import
import workers.tasks.emails  # noqa: E402, F401
import workers.tasks.notifications  # noqa: E402, F401
