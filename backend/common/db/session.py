"""
Database Session Management

This module provides the async SQLAlchemy engine and session factory:
1. Initializing the engine and verifying the connection
2. Creating the schema for development and tests
3. Providing sessions to FastAPI routes
4. Disposing of the connection pool on shutdown
"""

from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from backend.common.db.base import Base
from backend.common.logger import app_logger

# Set up logging
logger = app_logger.getChild("db.session")

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine_kwargs(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30
) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.
    SQLite does not accept queue pool options.
    """
    kwargs: Dict[str, Any] = {"echo": echo}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 300,  # Recycle connections every 5 minutes
        })

    return kwargs


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    """Create an AsyncSession factory bound to an engine."""
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> AsyncEngine:
    """
    Initialize the async database engine.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size
        max_overflow: Maximum number of connections to allow above pool_size
        pool_timeout: Timeout for getting a connection from the pool

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    logger.info(f"Initializing database with URL: {database_url[:10]}...")

    _engine = create_async_engine(
        database_url,
        **get_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
    )
    _session_factory = create_session_factory(_engine)

    # Test connection
    async with _engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

    logger.info("Database engine initialized successfully")
    return _engine


async def create_schema(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables known to the declarative base."""
    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the global session factory."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine closed successfully")
