#!/usr/bin/env python3
"""
Database initialization script.

This script creates the gamification tables and seeds the default
achievement catalog. Production databases are migrated with Alembic
instead (``alembic upgrade head``).
"""

import sys
import asyncio
from pathlib import Path

# Add the repository root to the Python path
root_dir = Path(__file__).parent.parent.parent
sys.path.append(str(root_dir))

from backend.common.config import get_config
from backend.common.db import close_database, create_schema, initialize_database
from backend.common.logger import app_logger
from backend.gamification.service import initialize_gamification_service

logger = app_logger.getChild("scripts.init_db")


async def async_main():
    """Initialize the database."""
    db_config = get_config().database
    try:
        await initialize_database(
            database_url=db_config.database_url,
            echo=db_config.echo,
            pool_size=db_config.pool_size,
            max_overflow=db_config.max_overflow,
            pool_timeout=db_config.pool_timeout
        )
        await create_schema()
        await initialize_gamification_service(seed_achievements=True)

        logger.info("Database initialized successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        sys.exit(1)
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(async_main())
