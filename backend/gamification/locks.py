"""
Exclusive sections for leaderboard re-ranking.

Re-ranking one (period, period_key) board must not interleave with another
re-rank of the same board. ``LocalRankLock`` serializes within one process;
``RedisRankLock`` serializes across workers sharing a Redis instance.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple

from redis.exceptions import LockError

from backend.common.config import GamificationConfig, get_config
from backend.common.error_handling import ConfigurationError, RankLockTimeoutError
from backend.common.logger import app_logger
from backend.common.redis import get_redis_client

logger = app_logger.getChild("gamification.locks")


class RankLock(ABC):
    """Keyed mutual exclusion for leaderboard boards."""

    @abstractmethod
    def hold(self, period: str, period_key: str):
        """Async context manager holding the lock for one board."""


class LocalRankLock(RankLock):
    """One asyncio.Lock per board, valid inside a single event loop."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, period: str, period_key: str) -> asyncio.Lock:
        key = (period, period_key)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @asynccontextmanager
    async def hold(self, period: str, period_key: str) -> AsyncIterator[None]:
        async with self._lock_for(period, period_key):
            yield


class RedisRankLock(RankLock):
    """
    Redis lock named ``leaderboard:rank-lock:{period}:{period_key}``.

    ``timeout`` bounds how long a crashed holder can block the board;
    ``blocking_timeout`` bounds how long a caller waits.
    """

    def __init__(self, client, timeout: float = 10.0, blocking_timeout: float = 5.0):
        self._client = client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    @staticmethod
    def lock_name(period: str, period_key: str) -> str:
        return f"leaderboard:rank-lock:{period}:{period_key}"

    @asynccontextmanager
    async def hold(self, period: str, period_key: str) -> AsyncIterator[None]:
        name = self.lock_name(period, period_key)
        lock = self._client.lock(name, timeout=self.timeout, blocking_timeout=self.blocking_timeout)
        acquired = await lock.acquire()
        if not acquired:
            raise RankLockTimeoutError(name, self.blocking_timeout)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Expired while held; the next holder already owns it
                logger.warning(f"Leaderboard lock {name} released after expiry: {e}")


def create_rank_lock(settings: Optional[GamificationConfig] = None) -> RankLock:
    """Build the rank lock selected by ``GAMIFICATION_RANK_LOCK_BACKEND``."""
    settings = settings or get_config().gamification
    if settings.rank_lock_backend == "local":
        return LocalRankLock()
    if settings.rank_lock_backend == "redis":
        return RedisRankLock(
            get_redis_client(),
            timeout=settings.rank_lock_timeout,
            blocking_timeout=settings.rank_lock_blocking_timeout,
        )
    raise ConfigurationError(
        f"Unknown rank lock backend: {settings.rank_lock_backend}",
        config_key="GAMIFICATION_RANK_LOCK_BACKEND"
    )
