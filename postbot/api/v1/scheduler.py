"""HTTP trigger for the publishing tick."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from postbot.api.deps import get_database, get_publish_scheduler, verify_cron_secret
from postbot.pipeline.scheduler import PublishScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/run", dependencies=[Depends(verify_cron_secret)])
async def run_scheduler(
    db: Session = Depends(get_database),
    scheduler: PublishScheduler = Depends(get_publish_scheduler),
):
    """Run one publishing tick over all running AI services."""
    logger.info("Publish tick triggered over HTTP")
    return await scheduler.run_tick(db)
