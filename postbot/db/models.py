"""ORM models for bots, forwarding and AI services, generated posts, history."""


import uuid
from datetime import datetime, time, timezone
from typing import List, Optional
from sqlalchemy import (
	String, Boolean, Integer, BigInteger, DateTime, Time, Text, ForeignKey, Index, Uuid
)
from sqlalchemy.types import JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base

Base = declarative_base()

POST_STATUS_SCHEDULED = "scheduled"
POST_STATUS_PUBLISHED = "published"
POST_STATUS_FAILED = "failed"

HISTORY_STATUS_SUCCESS = "success"
HISTORY_STATUS_FAILED = "failed"

def utcnow() -> datetime:
	return datetime.now(timezone.utc)

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
	"""Attach UTC to naive datetimes read back from backends without tz support."""
	if value is None or value.tzinfo is not None:
		return value
	return value.replace(tzinfo=timezone.utc)

class TelegramBot(Base):
	__tablename__ = "telegram_bots"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
	bot_token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
	username: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
	is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

class ForwardingService(Base):
	__tablename__ = "bot_services"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
	bot_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("telegram_bots.id"), nullable=True)
	target_channel: Mapped[str] = mapped_column(String(256), nullable=False)
	keywords_filter: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
	posts_per_day: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
	include_media: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	is_running: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	last_error_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	source_channels: Mapped[List["SourceChannel"]] = relationship(
		back_populates="service", lazy="selectin", cascade="all, delete-orphan"
	)
	bot = relationship("TelegramBot")

	SERVICE_TYPE = "plagiarist"
	DISPLAY_NAME = "Plagiarist"

class SourceChannel(Base):
	__tablename__ = "source_channels"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	bot_service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bot_services.id", ondelete="CASCADE"), nullable=False, index=True)
	channel_username: Mapped[str] = mapped_column(String(256), nullable=False)
	channel_title: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
	is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	keywords: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	service: Mapped["ForwardingService"] = relationship(back_populates="source_channels")

class PostHistory(Base):
	__tablename__ = "posts_history"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	bot_service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("bot_services.id", ondelete="CASCADE"), nullable=False)
	source_channel: Mapped[str] = mapped_column(String(256), nullable=False)
	target_channel: Mapped[str] = mapped_column(String(256), nullable=False)
	post_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	has_media: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	status: Mapped[str] = mapped_column(String(16), nullable=False)
	error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	__table_args__ = (
		Index("ix_posts_history_service_status_created", "bot_service_id", "status", "created_at"),
	)

class GenerationService(Base):
	__tablename__ = "ai_bot_services"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
	bot_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("telegram_bots.id"), nullable=True)
	target_channel: Mapped[str] = mapped_column(String(256), nullable=False)
	is_running: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	last_published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	last_error_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	bot = relationship("TelegramBot")
	settings: Mapped[Optional["PublishingSettings"]] = relationship(
		back_populates="service", uselist=False, lazy="selectin"
	)
	content_sources: Mapped[List["ContentSource"]] = relationship(
		back_populates="service", lazy="selectin", cascade="all, delete-orphan"
	)

	SERVICE_TYPE = "ai"
	DISPLAY_NAME = "AI Bot"

class ContentSource(Base):
	__tablename__ = "ai_content_sources"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	ai_bot_service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("ai_bot_services.id", ondelete="CASCADE"), nullable=False, index=True)
	category: Mapped[str] = mapped_column(String(64), nullable=False)
	keywords: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
	is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	service: Mapped["GenerationService"] = relationship(back_populates="content_sources")

class PublishingSettings(Base):
	__tablename__ = "ai_publishing_settings"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	ai_bot_service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("ai_bot_services.id", ondelete="CASCADE"), unique=True, nullable=False)
	posts_per_day: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
	post_interval_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
	time_from: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
	time_to: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
	include_media: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	use_custom_prompt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	custom_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	generate_tags: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	service: Mapped["GenerationService"] = relationship(back_populates="settings")

class GeneratedPost(Base):
	__tablename__ = "ai_generated_posts"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	ai_bot_service_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("ai_bot_services.id", ondelete="CASCADE"), nullable=False)
	category: Mapped[str] = mapped_column(String(64), nullable=False)
	content: Mapped[str] = mapped_column(Text, nullable=False)
	image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	status: Mapped[str] = mapped_column(String(16), default=POST_STATUS_SCHEDULED, nullable=False)
	message_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
	error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
	published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
	__table_args__ = (
		Index("ix_ai_generated_posts_service_status_created", "ai_bot_service_id", "status", "created_at"),
	)

class CategoryPrompt(Base):
	__tablename__ = "category_prompts"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	category_name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
	custom_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
	use_custom_prompt: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

class Notification(Base):
	__tablename__ = "notifications"
	id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
	user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
	type: Mapped[str] = mapped_column(String(32), nullable=False)
	title: Mapped[str] = mapped_column(String(256), nullable=False)
	message: Mapped[str] = mapped_column(Text, nullable=False)
	link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
	is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
