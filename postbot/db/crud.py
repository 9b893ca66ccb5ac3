"""CRUD operations for models."""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, delete, func, or_
from sqlalchemy.orm import Session
from .models import (
	TelegramBot, ForwardingService, PostHistory, GenerationService, GeneratedPost,
	CategoryPrompt, Notification, utcnow,
	POST_STATUS_SCHEDULED, POST_STATUS_PUBLISHED, POST_STATUS_FAILED, HISTORY_STATUS_SUCCESS,
)

HISTORY_CONTENT_LIMIT = 500

def get_bot_by_token(db: Session, bot_token: str) -> Optional[TelegramBot]:
	"""Resolve a bot by its API token."""
	return db.scalar(select(TelegramBot).where(TelegramBot.bot_token == bot_token))

def touch_bot_activity(db: Session, bot: TelegramBot, when: Optional[datetime] = None) -> None:
	"""Update bot's last_activity_at."""
	bot.last_activity_at = when or utcnow()
	db.commit()

def get_running_generation_services(db: Session) -> List[GenerationService]:
	"""List running AI services, oldest first."""
	q = select(GenerationService).where(GenerationService.is_running.is_(True)).order_by(GenerationService.created_at.asc())
	return list(db.scalars(q))

def get_generation_service(db: Session, service_id: uuid.UUID) -> Optional[GenerationService]:
	return db.get(GenerationService, service_id)

def get_forwarding_service(db: Session, service_id: uuid.UUID) -> Optional[ForwardingService]:
	return db.get(ForwardingService, service_id)

def get_forwarding_candidates(db: Session, bot_id: uuid.UUID) -> List[ForwardingService]:
	"""Running forwarding services bound to this bot or to no bot at all."""
	q = select(ForwardingService).where(
		ForwardingService.is_running.is_(True),
		or_(ForwardingService.bot_id == bot_id, ForwardingService.bot_id.is_(None))
	).order_by(ForwardingService.created_at.asc())
	return list(db.scalars(q))

def get_category_prompts(db: Session) -> Dict[str, CategoryPrompt]:
	"""Active per-category prompt overrides keyed by lower-cased category name."""
	q = select(CategoryPrompt).where(CategoryPrompt.use_custom_prompt.is_(True))
	return {p.category_name.lower(): p for p in db.scalars(q) if p.custom_prompt}

def count_scheduled_posts(db: Session, service_id: uuid.UUID) -> int:
	q = select(func.count()).select_from(GeneratedPost).where(
		GeneratedPost.ai_bot_service_id == service_id,
		GeneratedPost.status == POST_STATUS_SCHEDULED
	)
	return db.scalar(q) or 0

def get_oldest_scheduled_post(db: Session, service_id: uuid.UUID) -> Optional[GeneratedPost]:
	"""Head of the FIFO backlog for a service."""
	q = select(GeneratedPost).where(
		GeneratedPost.ai_bot_service_id == service_id,
		GeneratedPost.status == POST_STATUS_SCHEDULED
	).order_by(GeneratedPost.created_at.asc(), GeneratedPost.id.asc()).limit(1)
	return db.scalar(q)

def add_generated_post(db: Session, service_id: uuid.UUID, category: str, content: str, image_url: Optional[str] = None, created_at: Optional[datetime] = None) -> GeneratedPost:
	"""Insert one scheduled post and commit."""
	post = GeneratedPost(
		ai_bot_service_id=service_id,
		category=category,
		content=content,
		image_url=image_url,
		status=POST_STATUS_SCHEDULED,
		created_at=created_at or utcnow()
	)
	db.add(post)
	db.commit()
	db.refresh(post)
	return post

def mark_post_published(db: Session, post: GeneratedPost, service: GenerationService, message_id: Optional[int], when: datetime) -> None:
	"""Flip a post to published and stamp the service's last publish time."""
	post.status = POST_STATUS_PUBLISHED
	post.message_id = message_id
	post.published_at = when
	service.last_published_at = when
	db.commit()

def mark_post_failed(post: GeneratedPost, error_message: str) -> None:
	"""Flip a scheduled post to failed. Caller commits."""
	if post.status == POST_STATUS_SCHEDULED:
		post.status = POST_STATUS_FAILED
		post.error_message = error_message

def count_successful_forwards_since(db: Session, service_id: uuid.UUID, since: datetime) -> int:
	"""Count successful mirror deliveries for a service since a point in time."""
	q = select(func.count()).select_from(PostHistory).where(
		PostHistory.bot_service_id == service_id,
		PostHistory.status == HISTORY_STATUS_SUCCESS,
		PostHistory.created_at >= since
	)
	return db.scalar(q) or 0

def add_post_history(db: Session, service: ForwardingService, source_channel: str, content: Optional[str], has_media: bool, status: str, error_message: Optional[str] = None, when: Optional[datetime] = None) -> PostHistory:
	"""Append one forwarding attempt to history and commit."""
	row = PostHistory(
		bot_service_id=service.id,
		source_channel=source_channel,
		target_channel=service.target_channel,
		post_content=(content or "")[:HISTORY_CONTENT_LIMIT],
		has_media=has_media,
		status=status,
		error_message=error_message,
		created_at=when or utcnow()
	)
	db.add(row)
	db.commit()
	return row

def create_notification(db: Session, user_id: uuid.UUID, type: str, title: str, message: str, link: Optional[str] = None) -> Notification:
	"""Create an owner-facing notification."""
	note = Notification(user_id=user_id, type=type, title=title, message=message, link=link, is_read=False)
	db.add(note)
	db.commit()
	return note

def resume_service(db: Session, service, when: Optional[datetime] = None) -> None:
	"""Human re-enable of a suspended service; clears the last error."""
	service.is_running = True
	service.started_at = when or utcnow()
	service.last_error = None
	service.last_error_at = None
	db.commit()

def delete_terminal_posts_before(db: Session, cutoff: datetime) -> Tuple[int, int]:
	"""Delete published/failed AI posts and history rows older than cutoff. Returns (posts, history)."""
	posts = db.execute(
		delete(GeneratedPost).where(
			GeneratedPost.status.in_([POST_STATUS_PUBLISHED, POST_STATUS_FAILED]),
			GeneratedPost.created_at < cutoff
		)
	).rowcount
	history = db.execute(delete(PostHistory).where(PostHistory.created_at < cutoff)).rowcount
	db.commit()
	return posts or 0, history or 0
