"""Celery beat schedule definitions."""

import logging
from typing import Optional
import pytz
from celery.schedules import ParseException, crontab
from postbot.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

def create_beat_schedule(settings: Optional[Settings] = None) -> dict:
    """
    Create Celery beat schedule from environment configuration.

    Returns:
        Dictionary containing beat schedule configuration
    """
    settings = settings or get_settings()

    publish_cron = settings.get_publish_cron()  # Default: * * * * *
    cleanup_cron = settings.get_cleanup_cron()  # Default: 30 3 * * *

    if not validate_timezone(settings.TIMEZONE):
        logger.warning(f"Unknown timezone {settings.TIMEZONE}; publishing windows will fail to evaluate")

    logger.info(f"Publish cron: {publish_cron}")
    logger.info(f"Cleanup cron: {cleanup_cron}")

    schedule = {
        'run-publish-scheduler': {
            'task': 'postbot.tasks.publishing.run_publish_scheduler',
            'schedule': parse_cron_expression(publish_cron, default_minute='*'),
            'options': {
                'queue': 'publishing',
                'routing_key': 'publishing'
            }
        },

        'cleanup-old-posts': {
            'task': 'postbot.tasks.maintenance.cleanup_old_posts',
            'schedule': parse_cron_expression(cleanup_cron, default_minute='30', default_hour='3'),
            'options': {
                'queue': 'maintenance',
                'routing_key': 'maintenance'
            }
        },

        'health-check': {
            'task': 'health_check',
            'schedule': crontab(minute='*/10'),
            'options': {
                'queue': 'default',
                'routing_key': 'default'
            }
        }
    }

    logger.info(f"Created beat schedule with {len(schedule)} tasks")
    return schedule

def parse_cron_expression(cron_expr: str, default_minute: str = '*', default_hour: str = '*') -> crontab:
    """
    Parse a five-field cron expression into a crontab.

    Args:
        cron_expr: "minute hour day_of_month month day_of_week"
        default_minute: Minute field of the fallback schedule
        default_hour: Hour field of the fallback schedule

    Returns:
        crontab; the fallback schedule when the expression is invalid
    """
    parts = (cron_expr or "").strip().split()
    if len(parts) != 5:
        logger.error(f"Invalid cron expression '{cron_expr}', expected 5 parts, got {len(parts)}")
        return crontab(minute=default_minute, hour=default_hour)

    minute, hour, day_of_month, month, day_of_week = parts
    try:
        schedule = crontab(
            minute=minute,
            hour=hour,
            day_of_week=day_of_week,
            day_of_month=day_of_month,
            month_of_year=month
        )
    except (ValueError, ParseException) as e:
        logger.error(f"Failed to parse cron expression '{cron_expr}': {e}")
        return crontab(minute=default_minute, hour=default_hour)

    logger.debug(f"Parsed cron '{cron_expr}' -> {schedule}")
    return schedule

def validate_timezone(timezone_str: str) -> bool:
    """
    Validate that a timezone string is valid.

    Args:
        timezone_str: Timezone string to validate

    Returns:
        True if timezone is valid, False otherwise
    """
    try:
        pytz.timezone(timezone_str)
        return True
    except pytz.UnknownTimeZoneError:
        return False
