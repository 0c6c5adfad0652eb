"""Celery task modules; the app module imports and registers them in order."""

import workers.celery_app  # noqa: F401
