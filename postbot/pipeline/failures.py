"""Suspend-and-notify handling for publishing failures."""

import logging
from datetime import datetime
from typing import Callable, Optional, Union
from sqlalchemy.orm import Session
from postbot.db import crud
from postbot.db.models import ForwardingService, GeneratedPost, GenerationService, utcnow
from postbot.notifications.notifier import Notifier

logger = logging.getLogger(__name__)

Service = Union[GenerationService, ForwardingService]


class FailureHandler:
    """Stops a service after a failed delivery and notifies its owner once."""

    def __init__(self, notifier: Optional[Notifier] = None, now: Callable[[], datetime] = utcnow):
        self.notifier = notifier or Notifier()
        self.now = now

    def on_failure(
        self,
        db: Session,
        service: Service,
        error_text: str,
        post: Optional[GeneratedPost] = None,
    ) -> bool:
        """
        Record a failure and suspend the service.

        Args:
            db: Database session
            service: AI or forwarding service that failed
            error_text: Error description, stored on the service and post
            post: Scheduled post that failed to publish, if any

        Returns:
            True if the service was running and an owner notification was attempted
        """
        was_running = bool(service.is_running)

        if post is not None:
            crud.mark_post_failed(post, error_text)

        service.is_running = False
        service.started_at = None
        service.last_error = error_text
        service.last_error_at = self.now()
        service.error_count = (service.error_count or 0) + 1
        db.commit()
        logger.warning(f"Suspended {service.SERVICE_TYPE} service {service.id}: {error_text}")

        if not was_running:
            logger.info(f"Service {service.id} was already stopped; owner not notified again")
            return False

        try:
            self.notifier.notify_service_error(
                db,
                user_id=service.owner_id,
                bot_name=service.DISPLAY_NAME,
                channel_name=service.target_channel,
                error_message=error_text,
                service_type=service.SERVICE_TYPE,
                service_id=service.id,
            )
        except Exception as e:
            logger.error(f"Failed to notify owner of service {service.id}: {e}")
            db.rollback()
        return True
