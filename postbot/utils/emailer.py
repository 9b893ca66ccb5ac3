"""Email utilities for ops alerts about suspended services."""

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
from tenacity import retry, stop_after_attempt, wait_exponential
from postbot.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

class EmailSender:
    """SMTP email sender with retry logic."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True
    )
    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        body: str,
        html_body: Optional[str] = None
    ) -> bool:
        """
        Send email with retry logic.

        Args:
            to_emails: List of recipient email addresses
            subject: Email subject
            body: Plain text body
            html_body: Optional HTML body

        Returns:
            True if email sent successfully, False if SMTP is not configured
        """
        if not self.settings.require_smtp():
            logger.warning("SMTP not configured, skipping email")
            return False

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.settings.SMTP_FROM_EMAIL
        msg['To'] = ', '.join(to_emails)
        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        if html_body:
            msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        try:
            with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT) as server:
                if self.settings.SMTP_TLS:
                    server.starttls()

                if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD:
                    server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)

                server.send_message(msg, to_addrs=to_emails)
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            raise

        logger.info(f"Email sent successfully to {len(to_emails)} recipients")
        return True

def send_service_error_email(
    service_name: str,
    service_id: str,
    target_channel: str,
    error_message: str,
    recipient_emails: List[str],
    emailer: Optional[EmailSender] = None
) -> bool:
    """
    Tell operators that a publishing service was suspended.

    Args:
        service_name: Display name of the service kind
        service_id: Service id
        target_channel: Destination channel of the service
        error_message: Error that caused the suspension
        recipient_emails: Ops recipients
        emailer: Optional sender instance

    Returns:
        True if email sent successfully
    """
    if not recipient_emails:
        return False
    emailer = emailer or EmailSender()

    subject = f"Service suspended: {service_name} -> {target_channel}"
    body = f"""
{service_name} service {service_id} was stopped after an error.

Target channel: {target_channel}
Error: {error_message}

The owner has been notified. The service stays stopped until it is resumed.
"""
    html_body = f"""
<html>
<body>
    <h2 style="color: #e74c3c;">{service_name} stopped</h2>
    <p><strong>Service:</strong> {service_id}</p>
    <p><strong>Target channel:</strong> {target_channel}</p>
    <div style="background-color: #f8f9fa; padding: 15px; border-left: 4px solid #e74c3c; margin: 10px 0;">
        {error_message}
    </div>
</body>
</html>
"""
    return emailer.send_email(recipient_emails, subject, body, html_body)
