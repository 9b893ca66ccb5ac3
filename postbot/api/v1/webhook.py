"""Telegram Bot API webhook endpoint."""

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from postbot.api.deps import get_database, get_forwarding_dispatcher, verify_webhook_secret
from postbot.db import crud
from postbot.pipeline.forwarding import ForwardingDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", dependencies=[Depends(verify_webhook_secret)])
async def telegram_webhook(
    update: Dict[str, Any] = Body(...),
    bot_token: Optional[str] = Query(None, description="Token of the bot receiving this update"),
    db: Session = Depends(get_database),
    dispatcher: ForwardingDispatcher = Depends(get_forwarding_dispatcher),
):
    """Receive a Telegram update and mirror channel posts."""
    if not bot_token:
        return JSONResponse(status_code=400, content={"ok": False, "error": "bot_token is required"})

    bot = crud.get_bot_by_token(db, bot_token)
    if bot is None:
        logger.warning("Webhook called with unknown bot token")
        return JSONResponse(status_code=404, content={"ok": False})

    crud.touch_bot_activity(db, bot)

    channel_post = update.get("channel_post")
    if not channel_post:
        logger.debug(f"Ignoring update {update.get('update_id')} without channel_post")
        return {"ok": True}

    attempts = await dispatcher.dispatch(db, bot, channel_post)
    return {"ok": True, "forwarded": attempts}
