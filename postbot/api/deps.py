"""FastAPI dependencies for authentication, DB and pipeline components."""

import secrets
from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session
from postbot.core.config import get_settings
from postbot.db.session import get_db
from postbot.pipeline.forwarding import ForwardingDispatcher
from postbot.pipeline.queue import QueueMaintainer
from postbot.pipeline.scheduler import PublishScheduler

security = HTTPBasic(auto_error=False)

def get_current_user(credentials: Optional[HTTPBasicCredentials] = Depends(security)) -> str:
    """
    Simple HTTP Basic Auth dependency.

    Args:
        credentials: HTTP Basic Auth credentials

    Returns:
        Username if authenticated

    Raises:
        HTTPException: If authentication fails
    """
    settings = get_settings()

    # No auth configured: allow access (development)
    if not settings.API_USERNAME or not settings.API_PASSWORD:
        return "anonymous"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    is_correct_username = secrets.compare_digest(
        credentials.username.encode("utf-8"), settings.API_USERNAME.encode("utf-8")
    )
    is_correct_password = secrets.compare_digest(
        credentials.password.encode("utf-8"), settings.API_PASSWORD.encode("utf-8")
    )

    if not (is_correct_username and is_correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username

def verify_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    """Require X-Cron-Secret when CRON_SECRET is configured."""
    configured = get_settings().CRON_SECRET
    if not configured:
        return
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret.encode("utf-8"), configured.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")

def verify_webhook_secret(
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None)
) -> None:
    """Require the Bot API secret token header when TELEGRAM_WEBHOOK_SECRET is configured."""
    configured = get_settings().TELEGRAM_WEBHOOK_SECRET
    if not configured:
        return
    received = x_telegram_bot_api_secret_token or ""
    if not secrets.compare_digest(received.encode("utf-8"), configured.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook secret")

def get_database() -> Generator[Session, None, None]:
    """
    Database dependency.

    Yields:
        SQLAlchemy session
    """
    yield from get_db()

def get_publish_scheduler() -> PublishScheduler:
    return PublishScheduler()

def get_forwarding_dispatcher() -> ForwardingDispatcher:
    return ForwardingDispatcher()

def get_queue_maintainer() -> QueueMaintainer:
    return QueueMaintainer()
