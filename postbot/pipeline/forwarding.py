"""Mirrors inbound channel posts into forwarding services' target channels."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session
from postbot.core.config import Settings, get_settings
from postbot.db import crud
from postbot.db.models import (
    ForwardingService, TelegramBot, HISTORY_STATUS_FAILED, HISTORY_STATUS_SUCCESS, utcnow
)
from postbot.delivery.telegram_client import (
    OutboundPayload, TelegramBotClient, PAYLOAD_DOCUMENT, PAYLOAD_PHOTO, PAYLOAD_VIDEO
)
from postbot.pipeline.failures import FailureHandler
from postbot.pipeline.filters import InboundPost, match_services

logger = logging.getLogger(__name__)


def build_payload(post: InboundPost, include_media: bool) -> Optional[OutboundPayload]:
    """
    Choose what to send for a mirrored post.

    Media is sent (photo, then video, then document) only when the service allows
    it; otherwise the text or caption goes out as a plain message. Returns None
    when there is nothing to send.
    """
    if include_media:
        caption = post.caption or ""
        if post.photo_file_id:
            return OutboundPayload(kind=PAYLOAD_PHOTO, text=caption, media=post.photo_file_id)
        if post.video_file_id:
            return OutboundPayload(kind=PAYLOAD_VIDEO, text=caption, media=post.video_file_id)
        if post.document_file_id:
            return OutboundPayload(kind=PAYLOAD_DOCUMENT, text=caption, media=post.document_file_id)
    if post.body:
        return OutboundPayload.text_message(post.body)
    return None


class ForwardingDispatcher:
    """Handles one inbound channel post for every matching forwarding service."""

    def __init__(
        self,
        failure_handler: Optional[FailureHandler] = None,
        delivery_factory: Optional[Callable[[str], Any]] = None,
        settings: Optional[Settings] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings or get_settings()
        self.failure_handler = failure_handler or FailureHandler(now=now)
        self.delivery_factory = delivery_factory or (lambda token: TelegramBotClient(token, self.settings))
        self.now = now

    async def dispatch(self, db: Session, bot: TelegramBot, channel_post: Dict[str, Any]) -> int:
        """
        Mirror a channel post.

        Args:
            db: Database session
            bot: Bot that received the webhook
            channel_post: `channel_post` object of the Telegram update

        Returns:
            Number of delivery attempts made
        """
        post = InboundPost.from_update(channel_post)
        logger.info(f"Channel post from {post.source_label} (chat_id={post.chat_id})")

        candidates = crud.get_forwarding_candidates(db, bot.id)
        matched = match_services(post, candidates)
        if not matched:
            logger.info(f"No forwarding services match {post.source_label}")
            return 0

        attempts = 0
        for service in matched:
            if await self._forward(db, bot, service, post):
                attempts += 1
        return attempts

    def quota_exhausted(self, db: Session, service: ForwardingService) -> bool:
        """True when today's (UTC) successful deliveries reached posts_per_day."""
        day_start = self.now().replace(hour=0, minute=0, second=0, microsecond=0)
        sent_today = crud.count_successful_forwards_since(db, service.id, day_start)
        return sent_today >= service.posts_per_day

    async def _forward(self, db: Session, bot: TelegramBot, service: ForwardingService, post: InboundPost) -> bool:
        service_id = service.id
        try:
            if self.quota_exhausted(db, service):
                logger.info(f"Daily limit reached for forwarding service {service_id}")
                return False

            payload = build_payload(post, service.include_media)
            if payload is None:
                logger.info(f"Nothing to forward for service {service_id}")
                return False

            client = self.delivery_factory(bot.bot_token)
            delivery = await client.deliver(service.target_channel, payload)
        except Exception as e:
            logger.exception(f"Forwarding to service {service_id} failed: {e}")
            db.rollback()
            self._record_failure(db, service, post, str(e))
            return True

        if delivery.ok:
            crud.add_post_history(
                db, service, post.source_label, post.body, post.has_media, HISTORY_STATUS_SUCCESS, when=self.now()
            )
            logger.info(f"Forwarded post from {post.source_label} to {service.target_channel}")
        else:
            self._record_failure(db, service, post, delivery.describe())
        return True

    def _record_failure(self, db: Session, service: ForwardingService, post: InboundPost, error_text: str) -> None:
        """Write a failed history row, then suspend the service even if the history write failed."""
        service_id = service.id
        try:
            crud.add_post_history(
                db, service, post.source_label, post.body, post.has_media, HISTORY_STATUS_FAILED, error_text,
                when=self.now(),
            )
        except Exception as e:
            logger.error(f"Could not write failure history for service {service_id}: {e}")
            db.rollback()

        try:
            self.failure_handler.on_failure(db, service, error_text)
        except Exception as e:
            logger.error(f"Could not suspend forwarding service {service_id}: {e}")
            db.rollback()
