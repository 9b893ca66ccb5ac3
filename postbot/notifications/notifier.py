"""Owner notifications about suspended services."""

import logging
import uuid
from typing import Optional
from sqlalchemy.orm import Session
from postbot.core.config import Settings, get_settings
from postbot.db import crud
from postbot.db.models import Notification
from postbot.utils.emailer import EmailSender, send_service_error_email

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE_BOT_ERROR = "bot_error"


class Notifier:
    """Writes in-app notifications and mirrors them to the ops mailbox when configured."""

    def __init__(self, settings: Optional[Settings] = None, emailer: Optional[EmailSender] = None):
        self.settings = settings or get_settings()
        self.emailer = emailer

    def notify_service_error(
        self,
        db: Session,
        user_id: uuid.UUID,
        bot_name: str,
        channel_name: str,
        error_message: str,
        service_type: str,
        service_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """
        Tell the owner their service was stopped.

        Args:
            db: Database session
            user_id: Owner of the service
            bot_name: Display name of the service kind
            channel_name: Destination channel
            error_message: Error that stopped the service
            service_type: "ai" or "plagiarist"
            service_id: Service id, for the ops email

        Returns:
            Created Notification
        """
        note = crud.create_notification(
            db,
            user_id=user_id,
            type=NOTIFICATION_TYPE_BOT_ERROR,
            title=f"{bot_name} stopped",
            message=f"{bot_name} for channel {channel_name} was stopped because of an error: {error_message}",
            link=f"/services/{service_type}",
        )
        logger.info(f"Created {service_type} error notification for user {user_id}")

        recipients = self.settings.get_alert_recipients()
        if recipients:
            try:
                send_service_error_email(
                    bot_name, str(service_id or ""), channel_name, error_message, recipients,
                    emailer=self.emailer or EmailSender(self.settings),
                )
            except Exception as e:
                logger.error(f"Failed to send ops alert email: {e}")
        return note
