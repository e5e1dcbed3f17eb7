"""
Celery Configuration for campaign dispatch
"""
from celery import Celery

from dentalhub.core.config import settings

# Create Celery app
celery_app = Celery(
    "dentalhub",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["dentalhub.tasks.campaign_tasks"]
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # One campaign at a time per worker process; dispatch is long running
    worker_prefetch_multiplier=1,

    # Task routing
    task_routes={
        "dentalhub.tasks.campaign_tasks.dispatch_campaign_task": {"queue": "campaigns"},
        "dentalhub.tasks.campaign_tasks.activate_due_campaigns_task": {"queue": "default"},
    },

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completes
    task_reject_on_worker_lost=True,  # Requeue if worker dies
    task_time_limit=1800,
    task_soft_time_limit=1500,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    broker_connection_retry_on_startup=True,

    # Launch scheduled campaigns once their start date passes
    beat_schedule={
        "activate-due-campaigns": {
            "task": "dentalhub.tasks.campaign_tasks.activate_due_campaigns_task",
            "schedule": 60.0,
        },
    },
)

# Define task queues
celery_app.conf.task_queues = {
    "campaigns": {
        "exchange": "campaigns",
        "routing_key": "campaigns",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}
