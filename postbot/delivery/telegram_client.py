"""Telegram Bot API client for publishing posts into channels."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import httpx
from postbot.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

PAYLOAD_TEXT = "text"
PAYLOAD_PHOTO = "photo"
PAYLOAD_VIDEO = "video"
PAYLOAD_DOCUMENT = "document"

_METHODS = {
    PAYLOAD_TEXT: "sendMessage",
    PAYLOAD_PHOTO: "sendPhoto",
    PAYLOAD_VIDEO: "sendVideo",
    PAYLOAD_DOCUMENT: "sendDocument",
}

_TME_RE = re.compile(r"t\.me/([a-zA-Z0-9_]+)", re.IGNORECASE)
_NUMERIC_RE = re.compile(r"^-?\d+$")
_DATA_URI_RE = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


def normalize_destination(destination: str) -> str:
    """
    Normalize a channel reference into a Bot API chat_id.

    Args:
        destination: Link (https://t.me/name), @name, bare name or numeric chat id

    Returns:
        Numeric ids unchanged, everything else as @handle
    """
    value = (destination or "").strip()
    match = _TME_RE.search(value)
    if match:
        value = match.group(1)
    if _NUMERIC_RE.match(value):
        return value
    return "@" + value.lstrip("@")


def decode_data_uri(value: str) -> Optional[Tuple[str, bytes]]:
    """Decode a base64 data: URI into (mime_type, bytes). Returns None when malformed."""
    match = _DATA_URI_RE.match(value or "")
    if not match:
        return None
    mime_type, data = match.group(1), match.group(2)
    try:
        return mime_type, base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError):
        return None


@dataclass
class OutboundPayload:
    """Message to deliver: plain text, or media with an optional caption."""
    kind: str = PAYLOAD_TEXT
    text: str = ""
    media: Optional[str] = None  # URL, Telegram file_id or data: URI

    @classmethod
    def text_message(cls, text: str) -> "OutboundPayload":
        return cls(kind=PAYLOAD_TEXT, text=text)

    @classmethod
    def photo(cls, media: str, caption: str = "") -> "OutboundPayload":
        return cls(kind=PAYLOAD_PHOTO, text=caption, media=media)


@dataclass
class DeliveryResult:
    ok: bool
    message_id: Optional[int] = None
    error_code: Optional[int] = None
    error_text: Optional[str] = None

    def describe(self) -> str:
        """Human readable error in the Bot API "code: description" form."""
        if self.ok:
            return "ok"
        if self.error_code is not None:
            return f"{self.error_code}: {self.error_text}"
        return self.error_text or "Unknown delivery error"


class TelegramBotClient:
    """Sends messages through the Bot API for a single bot token. Never retries."""

    def __init__(self, bot_token: str, settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.bot_token = bot_token
        self.settings = settings or get_settings()
        self._http_client = http_client

    def _url(self, method: str) -> str:
        base = self.settings.TELEGRAM_API_BASE_URL.rstrip("/")
        return f"{base}/bot{self.bot_token}/{method}"

    async def deliver(self, destination: str, payload: OutboundPayload) -> DeliveryResult:
        """
        Deliver one payload to a channel.

        Args:
            destination: Channel reference in any supported form
            payload: Text or media payload

        Returns:
            DeliveryResult; transport and API errors are reported, not raised
        """
        chat_id = normalize_destination(destination)
        kind = payload.kind if payload.kind in _METHODS else PAYLOAD_TEXT
        if kind != PAYLOAD_TEXT and not payload.media:
            kind = PAYLOAD_TEXT

        json_body: Optional[Dict[str, Any]] = None
        form_data: Optional[Dict[str, Any]] = None
        files = None

        if kind == PAYLOAD_TEXT:
            json_body = {"chat_id": chat_id, "text": payload.text}
        elif payload.media.startswith("data:"):
            decoded = decode_data_uri(payload.media)
            if decoded is None:
                logger.warning(f"Malformed data URI for {chat_id}, falling back to text message")
                kind = PAYLOAD_TEXT
                json_body = {"chat_id": chat_id, "text": payload.text}
            else:
                mime_type, content = decoded
                extension = mime_type.split("/")[-1] or "jpg"
                files = {kind: (f"{kind}.{extension}", content, mime_type)}
                form_data = {"chat_id": chat_id}
                if payload.text:
                    form_data["caption"] = payload.text
        else:
            json_body = {"chat_id": chat_id, kind: payload.media, "caption": payload.text or ""}

        url = self._url(_METHODS[kind])
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, url, json_body, form_data, files)
            else:
                async with httpx.AsyncClient(timeout=self.settings.TELEGRAM_TIMEOUT) as client:
                    response = await self._post(client, url, json_body, form_data, files)
        except httpx.HTTPError as e:
            logger.error(f"Telegram {_METHODS[kind]} transport error for {chat_id}: {e}")
            return DeliveryResult(ok=False, error_text=f"Transport error: {e}")

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Telegram {_METHODS[kind]} returned non-JSON body (HTTP {response.status_code})")
            return DeliveryResult(ok=False, error_code=response.status_code, error_text=response.text[:255])

        if not isinstance(data, dict) or not data.get("ok"):
            error_code = data.get("error_code", response.status_code) if isinstance(data, dict) else response.status_code
            description = data.get("description", "Unknown error") if isinstance(data, dict) else "Unknown error"
            logger.warning(f"Telegram {_METHODS[kind]} failed for {chat_id}: {error_code} {description}")
            return DeliveryResult(ok=False, error_code=error_code, error_text=description)

        message_id = (data.get("result") or {}).get("message_id")
        logger.info(f"Delivered {kind} to {chat_id} (message_id={message_id})")
        return DeliveryResult(ok=True, message_id=message_id)

    @staticmethod
    async def _post(client: httpx.AsyncClient, url: str, json_body, form_data, files) -> httpx.Response:
        if files is not None:
            return await client.post(url, data=form_data, files=files)
        return await client.post(url, json=json_body)
