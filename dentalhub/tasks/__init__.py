"""
Celery Tasks for campaign dispatch
"""
from .celery_app import celery_app
from .campaign_tasks import dispatch_campaign_task, activate_due_campaigns_task

__all__ = ["celery_app", "dispatch_campaign_task", "activate_due_campaigns_task"]
