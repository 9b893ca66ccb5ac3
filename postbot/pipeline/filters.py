import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
from postbot.db.models import ForwardingService, SourceChannel

_LINK_PREFIX_RE = re.compile(r"^(?:https?://)?(?:www\.)?(?:t\.me/|telegram\.me/)", re.IGNORECASE)


@dataclass
class InboundPost:
    """A channel post as received from the Bot API webhook."""
    chat_id: int
    username: Optional[str]
    text: Optional[str] = None
    caption: Optional[str] = None
    photo_file_id: Optional[str] = None
    video_file_id: Optional[str] = None
    document_file_id: Optional[str] = None

    @classmethod
    def from_update(cls, channel_post: Dict[str, Any]) -> "InboundPost":
        """Build from the `channel_post` object of a Telegram update."""
        chat = channel_post.get("chat") or {}
        photos = channel_post.get("photo") or []
        return cls(
            chat_id=chat.get("id"),
            username=chat.get("username"),
            text=channel_post.get("text"),
            caption=channel_post.get("caption"),
            # Telegram lists photo sizes ascending; the last one is the largest.
            photo_file_id=photos[-1].get("file_id") if photos else None,
            video_file_id=(channel_post.get("video") or {}).get("file_id"),
            document_file_id=(channel_post.get("document") or {}).get("file_id"),
        )

    @property
    def body(self) -> str:
        return self.text or self.caption or ""

    @property
    def has_media(self) -> bool:
        return bool(self.photo_file_id or self.video_file_id or self.document_file_id)

    @property
    def source_label(self) -> str:
        return f"@{self.username}" if self.username else str(self.chat_id)


def normalize_channel_identifier(value: Any) -> str:
    """Lower-cased bare handle or numeric id, without @ or t.me/ prefixes."""
    text = _LINK_PREFIX_RE.sub("", str(value or "").strip())
    return text.lstrip("@").strip("/").lower()


def matches_keywords(text: str, keywords: Optional[Iterable[str]]) -> bool:
    """
    Return True if the text contains any keyword (case-insensitive substring).
    An empty or missing keyword list matches everything.
    """
    words = [k for k in (keywords or []) if k and k.strip()]
    if not words:
        return True
    lowered = (text or "").lower()
    return any(k.strip().lower() in lowered for k in words)


def source_matches(source: SourceChannel, post: InboundPost) -> bool:
    if not source.is_active:
        return False
    identifier = normalize_channel_identifier(source.channel_username)
    if not identifier:
        return False
    if post.chat_id is not None and identifier == str(post.chat_id):
        return True
    return bool(post.username) and identifier == normalize_channel_identifier(post.username)


def match_services(post: InboundPost, services: Iterable[ForwardingService]) -> List[ForwardingService]:
    """
    Select the forwarding services that should mirror a post.

    A service matches when it is running, one of its active source channels is the
    post's chat, and the post passes both the service keywords_filter and that
    source's own keywords. Daily quota is not checked here.
    """
    matched = []
    for service in services:
        if not service.is_running:
            continue
        if not matches_keywords(post.body, service.keywords_filter):
            continue
        sources = [s for s in service.source_channels if source_matches(s, post)]
        if any(matches_keywords(post.body, s.keywords) for s in sources):
            matched.append(service)
    return matched
