"""Periodic publisher for AI services: gates, FIFO delivery, backlog refill."""

import logging
from datetime import datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional
import pytz
from sqlalchemy.orm import Session
from postbot.core.config import Settings, get_settings
from postbot.db import crud
from postbot.db.models import GeneratedPost, GenerationService, PublishingSettings, as_utc, utcnow
from postbot.delivery.telegram_client import OutboundPayload, TelegramBotClient
from postbot.generation.errors import GenerationError
from postbot.pipeline.failures import FailureHandler
from postbot.pipeline.queue import QueueMaintainer

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_ERROR = "error"
STATUS_SKIPPED = "skipped"


def in_publishing_window(settings: PublishingSettings, local_now: datetime) -> bool:
    """
    Check the daily publishing window, inclusive, at minute precision.

    A window with only one bound set, or none, is always open. Windows that wrap
    past midnight (time_from > time_to) are not supported and never match.
    """
    if settings.time_from is None or settings.time_to is None:
        return True
    current = time(local_now.hour, local_now.minute)
    start = time(settings.time_from.hour, settings.time_from.minute)
    end = time(settings.time_to.hour, settings.time_to.minute)
    if start > end:
        logger.warning(f"Publishing window {start}-{end} wraps midnight; not supported, treating as closed")
        return False
    return start <= current <= end


class PublishScheduler:
    """Runs one publishing tick over every running AI service, sequentially."""

    def __init__(
        self,
        queue: Optional[QueueMaintainer] = None,
        failure_handler: Optional[FailureHandler] = None,
        delivery_factory: Optional[Callable[[str], Any]] = None,
        settings: Optional[Settings] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self.queue = queue or QueueMaintainer(settings=self.settings, now=now)
        self.failure_handler = failure_handler or FailureHandler(now=now)
        self.delivery_factory = delivery_factory or (lambda token: TelegramBotClient(token, self.settings))
        self.now = now
        self.tz = pytz.timezone(self.settings.TIMEZONE)

    async def run_tick(self, db: Session) -> Dict[str, Any]:
        """
        Process all running AI services once.

        Args:
            db: Database session

        Returns:
            {"processed": n, "results": [...]} with one entry per service
        """
        services = crud.get_running_generation_services(db)
        logger.info(f"Publish tick: {len(services)} running AI services")

        results: List[Dict[str, Any]] = []
        for service in services:
            results.append(await self._process_service_safely(db, service))

        published = sum(1 for r in results if r["status"] == STATUS_SUCCESS)
        logger.info(f"Publish tick finished: {published}/{len(results)} published")
        return {"processed": len(results), "results": results}

    async def _process_service_safely(self, db: Session, service: GenerationService) -> Dict[str, Any]:
        service_id = service.id
        try:
            return await self.process_service(db, service)
        except Exception as e:
            logger.exception(f"Unhandled error while processing service {service_id}: {e}")
            db.rollback()
            try:
                self.failure_handler.on_failure(db, service, str(e))
            except Exception as handler_error:
                logger.error(f"Failure handler error for service {service_id}: {handler_error}")
                db.rollback()
            return {"serviceId": str(service_id), "status": STATUS_ERROR, "error": str(e)}

    async def process_service(self, db: Session, service: GenerationService) -> Dict[str, Any]:
        """Run configuration, window and cadence gates, then publish the oldest scheduled post."""
        result: Dict[str, Any] = {"serviceId": str(service.id)}
        settings = service.settings
        bot = service.bot

        if settings is None:
            return {**result, "status": STATUS_SKIPPED, "error": "No publishing settings"}
        if bot is None or not bot.is_active:
            return {**result, "status": STATUS_SKIPPED, "error": "Bot missing or inactive"}

        top_up_error: Optional[GenerationError] = None
        try:
            await self.queue.top_up(db, service)
        except GenerationError as e:
            logger.warning(f"Top-up failed for service {service.id}: {e}")
            top_up_error = e

        now = self.now()
        local_now = now.astimezone(self.tz)
        if not in_publishing_window(settings, local_now):
            logger.info(f"Service {service.id} outside of publishing window")
            return {**result, "status": STATUS_SKIPPED, "error": "Outside publishing window"}

        post = crud.get_oldest_scheduled_post(db, service.id)
        if post is None:
            if top_up_error is not None:
                return {**result, "status": top_up_error.status, "error": str(top_up_error)}
            return {**result, "status": STATUS_SKIPPED, "error": "No scheduled posts"}
        result["postId"] = str(post.id)

        if not self._cadence_reached(service, settings, post, now):
            return {**result, "status": STATUS_SKIPPED, "error": "Interval not reached"}

        delivery = await self.publish(db, service, post, bot.bot_token, now)
        if not delivery.ok:
            error_text = delivery.describe()
            self.failure_handler.on_failure(db, service, error_text, post=post)
            return {**result, "status": STATUS_FAILED, "error": error_text}

        try:
            await self.queue.top_up(db, service)
        except GenerationError as e:
            logger.warning(f"Post-publish top-up failed for service {service.id}: {e}")
        return {**result, "status": STATUS_SUCCESS}

    def _cadence_reached(self, service: GenerationService, settings: PublishingSettings, post: GeneratedPost, now: datetime) -> bool:
        last_published_at = as_utc(service.last_published_at)
        if last_published_at is None:
            grace = timedelta(minutes=self.settings.FIRST_POST_GRACE_MINUTES)
            age = now - as_utc(post.created_at)
            if age < grace:
                logger.info(f"Service {service.id} first post not ready yet ({age} < {grace})")
                return False
            return True
        interval = timedelta(minutes=settings.post_interval_minutes or 60)
        elapsed = now - last_published_at
        if elapsed < interval:
            logger.info(f"Service {service.id} interval not reached yet ({elapsed} < {interval})")
            return False
        return True

    async def publish(self, db: Session, service: GenerationService, post: GeneratedPost, bot_token: str, now: datetime):
        """Deliver one post and mark it published on success."""
        if post.image_url:
            payload = OutboundPayload.photo(post.image_url, caption=post.content)
        else:
            payload = OutboundPayload.text_message(post.content)

        client = self.delivery_factory(bot_token)
        logger.info(f"Publishing post {post.id} of service {service.id} to {service.target_channel}")
        delivery = await client.deliver(service.target_channel, payload)
        if delivery.ok:
            crud.mark_post_published(db, post, service, delivery.message_id, now)
        return delivery
