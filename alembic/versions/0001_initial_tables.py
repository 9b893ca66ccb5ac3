"""Initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
	return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)


def upgrade():
	op.create_table(
		'telegram_bots',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('owner_id', sa.Uuid(), nullable=False),
		sa.Column('bot_token', sa.String(128), nullable=False, unique=True),
		sa.Column('username', sa.String(128), nullable=True),
		sa.Column('is_active', sa.Boolean(), nullable=False),
		sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=True),
		_timestamps(),
	)
	op.create_index('ix_telegram_bots_owner_id', 'telegram_bots', ['owner_id'])

	op.create_table(
		'bot_services',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('owner_id', sa.Uuid(), nullable=False),
		sa.Column('bot_id', sa.Uuid(), sa.ForeignKey('telegram_bots.id'), nullable=True),
		sa.Column('target_channel', sa.String(256), nullable=False),
		sa.Column('keywords_filter', sa.JSON(), nullable=True),
		sa.Column('posts_per_day', sa.Integer(), nullable=False),
		sa.Column('include_media', sa.Boolean(), nullable=False),
		sa.Column('is_running', sa.Boolean(), nullable=False),
		sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('last_error', sa.Text(), nullable=True),
		sa.Column('last_error_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('error_count', sa.Integer(), nullable=False),
		_timestamps(),
	)
	op.create_index('ix_bot_services_owner_id', 'bot_services', ['owner_id'])

	op.create_table(
		'source_channels',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('bot_service_id', sa.Uuid(), sa.ForeignKey('bot_services.id', ondelete='CASCADE'), nullable=False),
		sa.Column('channel_username', sa.String(256), nullable=False),
		sa.Column('channel_title', sa.String(256), nullable=True),
		sa.Column('is_active', sa.Boolean(), nullable=False),
		sa.Column('keywords', sa.JSON(), nullable=True),
		_timestamps(),
	)
	op.create_index('ix_source_channels_bot_service_id', 'source_channels', ['bot_service_id'])

	op.create_table(
		'posts_history',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('bot_service_id', sa.Uuid(), sa.ForeignKey('bot_services.id', ondelete='CASCADE'), nullable=False),
		sa.Column('source_channel', sa.String(256), nullable=False),
		sa.Column('target_channel', sa.String(256), nullable=False),
		sa.Column('post_content', sa.Text(), nullable=True),
		sa.Column('has_media', sa.Boolean(), nullable=False),
		sa.Column('status', sa.String(16), nullable=False),
		sa.Column('error_message', sa.Text(), nullable=True),
		_timestamps(),
	)
	op.create_index('ix_posts_history_service_status_created', 'posts_history', ['bot_service_id', 'status', 'created_at'])

	op.create_table(
		'ai_bot_services',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('owner_id', sa.Uuid(), nullable=False),
		sa.Column('bot_id', sa.Uuid(), sa.ForeignKey('telegram_bots.id'), nullable=True),
		sa.Column('target_channel', sa.String(256), nullable=False),
		sa.Column('is_running', sa.Boolean(), nullable=False),
		sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('last_published_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('last_error', sa.Text(), nullable=True),
		sa.Column('last_error_at', sa.DateTime(timezone=True), nullable=True),
		sa.Column('error_count', sa.Integer(), nullable=False),
		_timestamps(),
	)
	op.create_index('ix_ai_bot_services_owner_id', 'ai_bot_services', ['owner_id'])

	op.create_table(
		'ai_content_sources',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('ai_bot_service_id', sa.Uuid(), sa.ForeignKey('ai_bot_services.id', ondelete='CASCADE'), nullable=False),
		sa.Column('category', sa.String(64), nullable=False),
		sa.Column('keywords', sa.JSON(), nullable=True),
		sa.Column('is_active', sa.Boolean(), nullable=False),
		_timestamps(),
	)
	op.create_index('ix_ai_content_sources_ai_bot_service_id', 'ai_content_sources', ['ai_bot_service_id'])

	op.create_table(
		'ai_publishing_settings',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('ai_bot_service_id', sa.Uuid(), sa.ForeignKey('ai_bot_services.id', ondelete='CASCADE'), nullable=False, unique=True),
		sa.Column('posts_per_day', sa.Integer(), nullable=False),
		sa.Column('post_interval_minutes', sa.Integer(), nullable=False, server_default='60'),
		sa.Column('time_from', sa.Time(), nullable=True),
		sa.Column('time_to', sa.Time(), nullable=True),
		sa.Column('include_media', sa.Boolean(), nullable=False),
		sa.Column('use_custom_prompt', sa.Boolean(), nullable=False),
		sa.Column('custom_prompt', sa.Text(), nullable=True),
		sa.Column('generate_tags', sa.Boolean(), nullable=False),
	)

	op.create_table(
		'ai_generated_posts',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('ai_bot_service_id', sa.Uuid(), sa.ForeignKey('ai_bot_services.id', ondelete='CASCADE'), nullable=False),
		sa.Column('category', sa.String(64), nullable=False),
		sa.Column('content', sa.Text(), nullable=False),
		sa.Column('image_url', sa.Text(), nullable=True),
		sa.Column('status', sa.String(16), nullable=False),
		sa.Column('message_id', sa.BigInteger(), nullable=True),
		sa.Column('error_message', sa.Text(), nullable=True),
		_timestamps(),
		sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
	)
	op.create_index('ix_ai_generated_posts_service_status_created', 'ai_generated_posts', ['ai_bot_service_id', 'status', 'created_at'])

	op.create_table(
		'category_prompts',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('category_name', sa.String(128), nullable=False, unique=True),
		sa.Column('custom_prompt', sa.Text(), nullable=True),
		sa.Column('use_custom_prompt', sa.Boolean(), nullable=False),
	)

	op.create_table(
		'notifications',
		sa.Column('id', sa.Uuid(), primary_key=True),
		sa.Column('user_id', sa.Uuid(), nullable=False),
		sa.Column('type', sa.String(32), nullable=False),
		sa.Column('title', sa.String(256), nullable=False),
		sa.Column('message', sa.Text(), nullable=False),
		sa.Column('link', sa.String(512), nullable=True),
		sa.Column('is_read', sa.Boolean(), nullable=False),
		_timestamps(),
	)
	op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
	op.drop_table('notifications')
	op.drop_table('category_prompts')
	op.drop_table('ai_generated_posts')
	op.drop_table('ai_publishing_settings')
	op.drop_table('ai_content_sources')
	op.drop_table('ai_bot_services')
	op.drop_table('posts_history')
	op.drop_table('source_channels')
	op.drop_table('bot_services')
	op.drop_table('telegram_bots')
