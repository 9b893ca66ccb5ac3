"""App settings and config loader."""

from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
	# Telegram Bot API
	TELEGRAM_API_BASE_URL: str = Field(default="https://api.telegram.org")
	TELEGRAM_TIMEOUT: float = Field(default=30.0)
	TELEGRAM_WEBHOOK_SECRET: Optional[str] = Field(default=None)

	# Database
	DATABASE_URL: Optional[str] = Field(default=None)
	DB_HOST: str = Field(default="db")
	DB_PORT: int = Field(default=5432)
	DB_USER: str = Field(default="postgres")
	DB_PASSWORD: str = Field(default="postgres")
	DB_NAME: str = Field(default="postbot")
	AUTO_CREATE_TABLES: bool = Field(default=False)

	# Redis
	REDIS_URL: str = Field(default="redis://redis:6379/0")

	# Text generation
	TEXT_PROVIDER_SHAPE: str = Field(default="chat")  # chat | multipart
	TEXT_API_KEY: Optional[str] = Field(default=None)
	TEXT_API_BASE_URL: Optional[str] = Field(default=None)
	TEXT_API_ENDPOINT: Optional[str] = Field(default=None)
	TEXT_MODEL: str = Field(default="gpt-4o-mini")
	TEXT_MAX_TOKENS: int = Field(default=1024)
	TEXT_TEMPERATURE: float = Field(default=0.9)

	# Image generation
	IMAGE_PROVIDER_SHAPE: str = Field(default="chat")  # chat | predict
	IMAGE_API_KEY: Optional[str] = Field(default=None)
	IMAGE_API_ENDPOINT: Optional[str] = Field(default=None)
	IMAGE_MODEL: Optional[str] = Field(default=None)
	GENERATION_TIMEOUT: float = Field(default=60.0)

	# Content
	POST_LANGUAGE: str = Field(default="Ukrainian")
	QUEUE_TARGET_DEPTH: int = Field(default=10)
	FIRST_POST_GRACE_MINUTES: int = Field(default=5)
	HISTORY_RETENTION_DAYS: int = Field(default=30)

	# Scheduling
	PUBLISH_CRON: str = Field(default="* * * * *")
	CLEANUP_CRON: str = Field(default="30 3 * * *")
	TIMEZONE: str = Field(default="UTC")
	CRON_SECRET: Optional[str] = Field(default=None)

	# SMTP
	SMTP_HOST: Optional[str] = Field(default=None)
	SMTP_PORT: int = Field(default=587)
	SMTP_USERNAME: Optional[str] = Field(default=None)
	SMTP_PASSWORD: Optional[str] = Field(default=None)
	SMTP_TLS: bool = Field(default=True)
	SMTP_FROM_EMAIL: str = Field(default="Postbot <no-reply@example.com>")
	ALERT_RECIPIENTS: Optional[str] = Field(default=None)  # Comma-separated emails

	# API Authentication
	API_USERNAME: Optional[str] = Field(default=None)
	API_PASSWORD: Optional[str] = Field(default=None)

	model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

	def sqlalchemy_dsn(self) -> str:
		"""Return SQLAlchemy DSN, preferring an explicit DATABASE_URL."""
		if self.DATABASE_URL:
			return self.DATABASE_URL
		return f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

	def get_publish_cron(self) -> str:
		return self.PUBLISH_CRON

	def get_cleanup_cron(self) -> str:
		return self.CLEANUP_CRON

	def require_text_provider(self) -> bool:
		"""Check if text generation configuration is complete."""
		if not self.TEXT_API_KEY:
			return False
		if (self.TEXT_PROVIDER_SHAPE or "").lower() == "multipart":
			return bool(self.TEXT_API_ENDPOINT)
		return True

	def require_image_provider(self) -> bool:
		"""Check if image generation configuration is complete."""
		return bool(self.IMAGE_API_KEY and self.IMAGE_API_ENDPOINT)

	def require_smtp(self) -> bool:
		"""Check if SMTP configuration is complete."""
		return bool(
			self.SMTP_HOST and
			self.SMTP_USERNAME and
			self.SMTP_PASSWORD and
			self.SMTP_FROM_EMAIL
		)

	def get_alert_recipients(self) -> list[str]:
		"""Get list of ops alert recipients."""
		if not self.ALERT_RECIPIENTS:
			return []
		return [email.strip() for email in self.ALERT_RECIPIENTS.split(",") if email.strip()]

@lru_cache(maxsize=1)
def get_settings() -> Settings:
	"""Return cached settings instance."""
	return Settings()
