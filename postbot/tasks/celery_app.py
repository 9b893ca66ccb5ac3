"""Celery app and configuration."""

import logging
from datetime import datetime, timezone
from celery import Celery
from sqlalchemy import text
from postbot.core.config import get_settings
from postbot.tasks.schedules import create_beat_schedule

logger = logging.getLogger(__name__)

def create_celery_app() -> Celery:
    """
    Factory function to create and configure Celery app instance.

    Returns:
        Configured Celery application instance
    """
    settings = get_settings()

    app = Celery("postbot")

    app.conf.update(
        broker_url=settings.REDIS_URL,
        result_backend=settings.REDIS_URL,

        # Serialization
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",

        # Timezone settings
        timezone=settings.TIMEZONE,
        enable_utc=True,

        include=[
            "postbot.tasks.publishing",
            "postbot.tasks.maintenance",
            "postbot.tasks.celery_app",
        ],

        task_routes={
            'postbot.tasks.publishing.*': {'queue': 'publishing'},
            'postbot.tasks.maintenance.*': {'queue': 'maintenance'},
        },

        # One tick at a time per worker process
        worker_prefetch_multiplier=1,
        task_acks_late=True,
        worker_max_tasks_per_child=1000,

        result_expires=3600,

        task_reject_on_worker_lost=True,
        task_ignore_result=False,
    )

    app.conf.beat_schedule = create_beat_schedule(settings)

    logger.info(f"Celery app configured with broker: {settings.REDIS_URL.split('@')[-1]}")
    return app

celery = create_celery_app()

@celery.task(name="ping")
def ping() -> dict:
    """
    Health check task for monitoring Celery worker status.

    Returns:
        Dict with status information
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "worker": "celery",
        "message": "pong"
    }

@celery.task(name="health_check")
def health_check() -> dict:
    """
    Check Redis and database connectivity from the worker.

    Returns:
        Dict with detailed health status
    """
    import redis
    from postbot.db.session import get_db_session

    settings = get_settings()
    health_status = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "celery": "ok",
        "redis": "unknown",
        "database": "unknown",
        "overall": "ok"
    }

    try:
        r = redis.from_url(settings.REDIS_URL)
        r.ping()
        health_status["redis"] = "ok"
    except Exception as e:
        health_status["redis"] = f"error: {str(e)}"
        health_status["overall"] = "degraded"

    try:
        db = get_db_session()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        health_status["database"] = "ok"
    except Exception as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["overall"] = "degraded"

    return health_status
