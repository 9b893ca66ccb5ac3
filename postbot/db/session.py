"""Session management for SQLAlchemy."""

import logging
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from postbot.core.config import get_settings

logger = logging.getLogger(__name__)

engine = None
SessionLocal = None

def init_db():
    """Initialize database engine and session factory."""
    global engine, SessionLocal

    settings = get_settings()
    database_url = settings.sqlalchemy_dsn()

    logger.info(f"Initializing database connection to {database_url.split('@')[-1]}")

    engine_kwargs = {"pool_pre_ping": True, "echo": False}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_recycle"] = 300

    engine = create_engine(database_url, **engine_kwargs)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    logger.info("Database session factory initialized")

def create_tables():
    """Create all tables on the configured engine (development convenience)."""
    from postbot.db.models import Base

    if engine is None:
        init_db()
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields:
        SQLAlchemy session instance
    """
    if SessionLocal is None:
        init_db()

    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()

def get_db_session() -> Session:
    """
    Get a database session for use in Celery tasks or other contexts.

    Returns:
        SQLAlchemy session instance (must be closed manually)
    """
    if SessionLocal is None:
        init_db()

    return SessionLocal()
