"""Test configuration and fixtures."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from postbot.core.config import Settings
from postbot.db.models import (
    Base, TelegramBot, ForwardingService, SourceChannel, GenerationService, ContentSource,
    PublishingSettings, GeneratedPost, POST_STATUS_SCHEDULED,
)
from postbot.delivery.telegram_client import DeliveryResult
from postbot.generation.client import GeneratedContent
from postbot.notifications.notifier import Notifier
from postbot.pipeline.failures import FailureHandler

BASE_TIME = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_db():
    """In-memory SQLite session shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        TIMEZONE="UTC",
        POST_LANGUAGE="Ukrainian",
        QUEUE_TARGET_DEPTH=10,
        FIRST_POST_GRACE_MINUTES=5,
        ALERT_RECIPIENTS=None,
        TEXT_API_KEY="test-key",
        TEXT_API_ENDPOINT="https://llm.example.com/v1/generate",
        IMAGE_API_KEY=None,
        IMAGE_API_ENDPOINT=None,
        CRON_SECRET=None,
        TELEGRAM_WEBHOOK_SECRET=None,
        API_USERNAME=None,
        API_PASSWORD=None,
    )


class Clock:
    """Settable clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


class FakeDelivery:
    """Records deliveries and replays queued results (default: success)."""

    def __init__(self, results: Optional[List] = None):
        self.calls = []
        self.tokens = []
        self.results = list(results or [])

    def factory(self, bot_token: str) -> "FakeDelivery":
        self.tokens.append(bot_token)
        return self

    async def deliver(self, destination, payload):
        self.calls.append((destination, payload))
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return DeliveryResult(ok=True, message_id=1000 + len(self.calls))


@pytest.fixture
def fake_delivery():
    return FakeDelivery()


class FakeGenerator:
    """Generates numbered posts; optionally raises after `fail_after` successes."""

    def __init__(self, error: Optional[Exception] = None, fail_after: int = 0, image_data: Optional[str] = None):
        self.calls = 0
        self.error = error
        self.fail_after = fail_after
        self.image_data = image_data

    async def generate(self, service, settings, category_prompts=None):
        if self.error is not None and self.calls >= self.fail_after:
            raise self.error
        self.calls += 1
        return GeneratedContent(text=f"Generated post {self.calls}", image_data=self.image_data, category="tech")


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failure_handler(settings, clock):
    return FailureHandler(notifier=Notifier(settings=settings), now=clock)


@pytest.fixture
def bot(test_db):
    bot = TelegramBot(
        owner_id=uuid.uuid4(),
        bot_token="123456:TEST-TOKEN",
        username="postbot_test_bot",
        is_active=True,
    )
    test_db.add(bot)
    test_db.commit()
    test_db.refresh(bot)
    return bot


def make_ai_service(db, bot, **settings_kwargs) -> GenerationService:
    service = GenerationService(
        owner_id=bot.owner_id,
        bot_id=bot.id,
        target_channel="https://t.me/target_channel",
        is_running=True,
        started_at=BASE_TIME - timedelta(days=1),
        created_at=BASE_TIME - timedelta(days=1),
    )
    db.add(service)
    db.flush()
    db.add(ContentSource(ai_bot_service_id=service.id, category="tech", keywords=["AI"], is_active=True))
    defaults = dict(posts_per_day=10, post_interval_minutes=60, include_media=False, generate_tags=False)
    defaults.update(settings_kwargs)
    db.add(PublishingSettings(ai_bot_service_id=service.id, **defaults))
    db.commit()
    db.refresh(service)
    return service


@pytest.fixture
def ai_service(test_db, bot):
    return make_ai_service(test_db, bot)


def seed_posts(db, service, count: int, created_at: datetime, step: timedelta = timedelta(seconds=1), image_url=None) -> List[GeneratedPost]:
    """Insert `count` scheduled posts, oldest first, starting at created_at."""
    posts = []
    for i in range(count):
        post = GeneratedPost(
            ai_bot_service_id=service.id,
            category="tech",
            content=f"Seeded post {i}",
            image_url=image_url,
            status=POST_STATUS_SCHEDULED,
            created_at=created_at + step * i,
        )
        db.add(post)
        posts.append(post)
    db.commit()
    return posts


def make_forwarding_service(db, bot, sources=("@source_channel",), **kwargs) -> ForwardingService:
    values = dict(
        owner_id=bot.owner_id,
        bot_id=bot.id,
        target_channel="@mirror_channel",
        keywords_filter=None,
        posts_per_day=10,
        include_media=True,
        is_running=True,
        started_at=BASE_TIME - timedelta(days=1),
    )
    values.update(kwargs)
    service = ForwardingService(**values)
    db.add(service)
    db.flush()
    for source in sources:
        db.add(SourceChannel(bot_service_id=service.id, channel_username=source, is_active=True))
    db.commit()
    db.refresh(service)
    return service


def channel_post(text=None, caption=None, username="source_channel", chat_id=-1001111111111, photo=False, video=False, document=False) -> dict:
    post = {"message_id": 42, "chat": {"id": chat_id, "type": "channel"}, "date": 1760000000}
    if username:
        post["chat"]["username"] = username
    if text is not None:
        post["text"] = text
    if caption is not None:
        post["caption"] = caption
    if photo:
        post["photo"] = [
            {"file_id": "small-photo", "width": 90, "height": 90},
            {"file_id": "large-photo", "width": 1280, "height": 1280},
        ]
    if video:
        post["video"] = {"file_id": "video-file"}
    if document:
        post["document"] = {"file_id": "document-file"}
    return post
