"""
Campaign Processing Tasks
Runs campaign dispatch and scheduled launches off the request path
"""
import asyncio
from typing import Dict, Any, List
from celery import shared_task
from celery.utils.log import get_task_logger

from dentalhub.core.exceptions import RateLimitError

logger = get_task_logger(__name__)


def run_async(coro):
    """Helper to run async code in Celery tasks"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _with_connections(operation):
    """Open the database for one task run; connections are bound to the task's loop"""
    from dentalhub.db import close_database, initialize_database
    from dentalhub.services.cache import close_redis

    await initialize_database()
    try:
        return await operation()
    finally:
        await close_database()
        await close_redis()


@shared_task(
    bind=True,
    name="dentalhub.tasks.campaign_tasks.dispatch_campaign_task",
    max_retries=5,
    default_retry_delay=30,
    acks_late=True,
    queue="campaigns"
)
def dispatch_campaign_task(self, campaign_id: str) -> Dict[str, Any]:
    """
    Contact a campaign's audience

    Voice dispatch that hits the practice's call limit is retried once the
    limit resets; patients already called are skipped on the retry.
    """
    logger.info(f"Dispatching campaign {campaign_id} (task_id: {self.request.id})")

    async def _dispatch():
        from dentalhub.services.campaign_service import get_campaign_service
        return await get_campaign_service().dispatch_campaign(campaign_id)

    try:
        summary = run_async(_with_connections(_dispatch))
    except RateLimitError as e:
        countdown = e.details.get("retry_after_seconds", 60)
        logger.warning(f"Call limit reached for campaign {campaign_id}, retrying in {countdown}s")
        raise self.retry(exc=e, countdown=countdown)

    logger.info(
        f"Campaign {campaign_id}: {summary['sent']} sent, {summary['failed']} failed, "
        f"{summary['skipped']} skipped"
    )
    return {**summary, "task_id": self.request.id}


@shared_task(
    name="dentalhub.tasks.campaign_tasks.activate_due_campaigns_task",
    queue="default"
)
def activate_due_campaigns_task() -> List[str]:
    """
    Launch scheduled campaigns whose start date has passed
    """
    async def _activate():
        from dentalhub.services.campaign_service import get_campaign_service
        return await get_campaign_service().activate_due_campaigns()

    launched = run_async(_with_connections(_activate))
    if launched:
        logger.info(f"Launched {len(launched)} scheduled campaigns")
    return launched
