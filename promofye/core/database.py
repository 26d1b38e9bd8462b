"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (Postgres) or a static pool (SQLite)
- Test database support
- Table definitions for profiles, plans, subscriptions, API keys,
  usage logs and generated images
"""
from typing import Optional
from contextlib import contextmanager
import logging
import os

from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, ForeignKey
from sqlalchemy.engine import make_url
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func

from promofye.core.config import settings

logger = logging.getLogger("promofye")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if make_url(url).get_backend_name() == "sqlite":
        # One shared connection so in-memory databases survive across sessions and threads
        _engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# User profiles (credentials live alongside the profile)
user_profiles = Table(
    'user_profiles',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('email', String(320), nullable=False, unique=True),
    Column('full_name', Text, nullable=True),
    Column('password_hash', String(200), nullable=False),
    Column('is_admin', Boolean, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_user_profiles_created_at', 'created_at'),
)

# Subscription plans
subscription_plans = Table(
    'subscription_plans',
    metadata,
    Column('id', String(50), primary_key=True),
    Column('name', String(200), nullable=False),
    Column('stripe_price_id', String(100), nullable=True),
    Column('monthly_price', Integer, nullable=False, server_default='0'),  # cents
    Column('image_generations_limit', Integer, nullable=False),
    Column('features', JSON, nullable=False),
    Column('is_active', Boolean, nullable=False, server_default='1'),
    Column('is_default', Boolean, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_subscription_plans_active_price', 'is_active', 'monthly_price'),
)

# User subscriptions
user_subscriptions = Table(
    'user_subscriptions',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False),
    Column('plan_id', String(50), ForeignKey('subscription_plans.id'), nullable=False),
    Column('stripe_subscription_id', String(100), nullable=True, unique=True),
    Column('stripe_customer_id', String(100), nullable=True),
    Column('status', String(20), nullable=False),  # active, cancelled, expired
    Column('current_period_start', DateTime(timezone=True), nullable=False),
    Column('current_period_end', DateTime(timezone=True), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Composite index for the active-subscription lookup: (user_id, status)
    Index('idx_user_subscriptions_user_status', 'user_id', 'status'),
)

# Provider API keys (admin-managed)
api_keys = Table(
    'api_keys',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('name', String(200), nullable=False),
    Column('provider', String(50), nullable=False),
    Column('api_key', Text, nullable=False),
    Column('is_active', Boolean, nullable=False, server_default='1'),
    Column('created_by', String(36), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_api_keys_provider_active', 'provider', 'is_active'),
)

# Usage logs (one row per generation)
usage_logs = Table(
    'usage_logs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(36), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False),
    Column('action_type', String(50), nullable=False),
    Column('credits_used', Integer, nullable=False, server_default='1'),
    Column('metadata', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    # Composite index for the monthly sum: (user_id, created_at)
    Index('idx_usage_logs_user_created', 'user_id', 'created_at'),
)

# Generated image history
generated_images = Table(
    'generated_images',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False),
    Column('title', String(200), nullable=False),
    Column('prompt', Text, nullable=True),
    Column('image_url', Text, nullable=False),  # data URL
    Column('image_type', String(20), nullable=False),  # thumbnail, product, reimagine
    Column('metadata', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_generated_images_user_type_created', 'user_id', 'image_type', 'created_at'),
)
