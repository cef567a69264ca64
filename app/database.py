"""
PostgreSQL engine and session factory for the database item store.

Only DatabaseItemStore and alembic touch this module; the directus and memory
stores never open a connection.
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app import config


def async_database_url(url: str) -> str:
    """postgresql://... -> postgresql+asyncpg://..."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


DATABASE_URL = async_database_url(config.DATABASE_URL)

# Created lazily by SQLAlchemy: no connection until the first query.
# Scheduling traffic is low-volume, so a small pool suffices.
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
    pool_pre_ping=True,
)

# One session per item store verb
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()
