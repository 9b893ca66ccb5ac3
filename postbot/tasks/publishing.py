"""Task: run one publishing tick over all running AI services."""

import asyncio
import logging
from postbot.db.session import get_db_session
from postbot.pipeline.scheduler import PublishScheduler
from postbot.tasks.celery_app import celery

logger = logging.getLogger(__name__)

@celery.task(name="postbot.tasks.publishing.run_publish_scheduler")
def run_publish_scheduler() -> dict:
    """
    Periodic publishing tick.

    Not retried: a missed tick is covered by the next one.

    Returns:
        {"processed": n, "results": [...]}
    """
    logger.info("Starting publish scheduler tick")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        result = loop.run_until_complete(_run_tick())
    finally:
        loop.close()

    logger.info(f"Publish scheduler tick processed {result['processed']} services")
    return result

async def _run_tick() -> dict:
    db = get_db_session()
    try:
        return await PublishScheduler().run_tick(db)
    finally:
        db.close()
