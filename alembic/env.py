"""Alembic environment for the postbot schema."""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from postbot.core.config import get_settings
from postbot.db.models import Base

config = context.config

if config.config_file_name is not None:
	fileConfig(config.config_file_name)

# DSN comes from Settings, never from alembic.ini
config.set_main_option("sqlalchemy.url", get_settings().sqlalchemy_dsn())

target_metadata = Base.metadata

def _configure_kwargs(dialect_name: str) -> dict:
	return {
		"target_metadata": target_metadata,
		"compare_type": True,
		# SQLite needs batch mode for ALTER TABLE
		"render_as_batch": dialect_name == "sqlite",
	}

def run_migrations_offline():
	"""Emit SQL for the configured DSN without connecting."""
	url = config.get_main_option("sqlalchemy.url")
	context.configure(url=url, literal_binds=True, **_configure_kwargs(url.split(":", 1)[0].split("+", 1)[0]))
	with context.begin_transaction():
		context.run_migrations()

def run_migrations_online():
	"""Run migrations against a live connection."""
	connectable = engine_from_config(
		config.get_section(config.config_ini_section, {}),
		prefix="sqlalchemy.",
		poolclass=pool.NullPool,
	)
	with connectable.connect() as connection:
		context.configure(connection=connection, **_configure_kwargs(connection.dialect.name))
		with context.begin_transaction():
			context.run_migrations()

if context.is_offline_mode():
	run_migrations_offline()
else:
	run_migrations_online()
