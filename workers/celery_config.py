"""Celery configuration for notification and email delivery."""

from kombu import Exchange, Queue
from os import environ

# Broker configuration (Redis)
REDIS_HOST = environ.get("REDIS_HOST", "localhost")
REDIS_PORT = int(environ.get("REDIS_PORT", 6379))
REDIS_DB = int(environ.get("REDIS_DB", 0))

broker_url = environ.get(
    "CELERY_BROKER_URL", f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
)
result_backend = environ.get(
    "CELERY_RESULT_BACKEND", f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB + 1}"
)

# Serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"
timezone = "UTC"
enable_utc = True

# Task execution settings
task_track_started = True
task_acks_late = True  # a worker crash re-delivers instead of dropping
task_time_limit = 5 * 60
task_soft_time_limit = 4 * 60

# Worker settings
worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

# Queue configuration with routing
default_exchange = Exchange("hirestream", type="direct")
task_default_queue = "default"
task_queues = (
    Queue("default", exchange=default_exchange, routing_key="default"),
    Queue("notifications", exchange=default_exchange, routing_key="notifications"),
    Queue("emails", exchange=default_exchange, routing_key="emails"),
)

task_routes = {
    "workers.tasks.notifications.*": {"queue": "notifications"},
    "workers.tasks.emails.*": {"queue": "emails"},
}

# Periodic sweep for rows whose publish failed
beat_schedule = {
    "redeliver-pending-notifications": {
        "task": "workers.tasks.notifications.redeliver_pending",
        "schedule": 300.0,
    },
}

result_expires = 3600
