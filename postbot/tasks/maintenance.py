"""Task: delete old published/failed posts and forwarding history."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from postbot.core.config import get_settings
from postbot.db import crud
from postbot.db.models import utcnow
from postbot.db.session import get_db_session
from postbot.tasks.celery_app import celery

logger = logging.getLogger(__name__)

def cleanup(db: Session, retention_days: int, now: Optional[datetime] = None) -> dict:
    """
    Delete terminal AI posts and history rows older than the retention window.
    Scheduled posts are never deleted.

    Args:
        db: Database session
        retention_days: Age in days after which rows are deleted
        now: Reference time (defaults to current UTC time)

    Returns:
        Dict with deleted row counts and the cutoff used
    """
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    posts_deleted, history_deleted = crud.delete_terminal_posts_before(db, cutoff)
    logger.info(f"Retention cleanup before {cutoff.isoformat()}: {posts_deleted} AI posts, {history_deleted} history rows")
    return {
        "cutoff": cutoff.isoformat(),
        "ai_posts_deleted": posts_deleted,
        "history_deleted": history_deleted,
    }

@celery.task(bind=True, max_retries=3, name="postbot.tasks.maintenance.cleanup_old_posts")
def cleanup_old_posts(self) -> dict:
    """Daily retention cleanup."""
    settings = get_settings()
    db = get_db_session()
    try:
        return cleanup(db, settings.HISTORY_RETENTION_DAYS)
    except Exception as e:
        logger.error(f"Retention cleanup failed: {e}")
        db.rollback()
        raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))
    finally:
        db.close()
