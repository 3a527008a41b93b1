"""
Redis Client Utility Module

This module provides a singleton asyncio Redis client for components
that need to coordinate across processes, such as the leaderboard
rank lock.
"""

from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from backend.common.config import RedisConfig, get_config
from backend.common.logger import app_logger

# Setup logging
logger = app_logger.getChild("redis")

# Singleton Redis client instance
_redis_client: Optional[redis.Redis] = None


def get_redis_settings(redis_config: Optional[RedisConfig] = None) -> Dict[str, Any]:
    """
    Get Redis connection settings from the configuration.

    Returns:
        Dictionary with Redis connection settings
    """
    redis_config = redis_config or get_config().redis
    return {
        "host": redis_config.host,
        "port": redis_config.port,
        "db": redis_config.db,
        "password": redis_config.password,
        "ssl": redis_config.use_ssl,
        "socket_connect_timeout": redis_config.connection_timeout,
        "decode_responses": False  # Let client code handle decoding as needed
    }


def get_redis_client(redis_config: Optional[RedisConfig] = None) -> redis.Redis:
    """
    Get a Redis client instance.

    Returns the singleton Redis client instance, creating it if it doesn't exist.
    The connection is established lazily on first command.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        settings = get_redis_settings(redis_config)
        _redis_client = redis.Redis(**settings)
        logger.info(f"Created Redis client for {settings['host']}:{settings['port']}")

    return _redis_client


async def reset_redis_client() -> None:
    """
    Reset the Redis client.

    This forces a new connection on the next call to get_redis_client().
    """
    global _redis_client

    if _redis_client is not None:
        try:
            await _redis_client.aclose()
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")

        _redis_client = None
        logger.info("Redis client reset")
