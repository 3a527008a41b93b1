"""
Streak Tracker

Counts consecutive calendar days with at least one recorded activity.
"""

import datetime
from typing import Any, Dict, Optional

from backend.common.clock import Clock, SystemClock
from backend.common.logger import app_logger
from backend.gamification.models import UserPoints
from backend.gamification.repository import GamificationRepository

logger = app_logger.getChild("gamification.streaks")

# A few concurrent touches can each lose a compare-and-set before one wins
MAX_TOUCH_ATTEMPTS = 3


def next_streak(
    current_streak: int,
    longest_streak: int,
    last_activity: Optional[datetime.date],
    today: datetime.date
) -> Optional[Dict[str, Any]]:
    """
    Compute the streak state after an activity on ``today``.

    Returns:
        New column values, or None when the streak is unchanged
    """
    if last_activity is None:
        return {
            "current_streak": 1,
            "longest_streak": max(longest_streak, 1),
            "last_activity_date": today,
        }

    day_diff = (today - last_activity).days
    if day_diff <= 0:
        # Same day, or a stored date ahead of the clock
        return None
    if day_diff == 1:
        streak = current_streak + 1
        return {
            "current_streak": streak,
            "longest_streak": max(longest_streak, streak),
            "last_activity_date": today,
        }
    return {
        "current_streak": 1,
        "longest_streak": longest_streak,
        "last_activity_date": today,
    }


class StreakTracker:
    """Owns the streak columns of ``user_points``."""

    def __init__(
        self,
        repository: GamificationRepository,
        clock: Optional[Clock] = None,
        points_per_level: int = 100
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.points_per_level = points_per_level

    async def touch(self, user_id: str) -> UserPoints:
        """
        Register activity for today.

        Returns:
            The user's points record after the update
        """
        today = self.clock.today()

        for _ in range(MAX_TOUCH_ATTEMPTS):
            record = await self.repository.get_or_create_user_points(user_id, self.points_per_level)
            values = next_streak(
                record.current_streak,
                record.longest_streak,
                record.last_activity_date,
                today,
            )
            if values is None:
                return record

            written = await self.repository.update_streak(
                user_id,
                expected_last_activity=record.last_activity_date,
                **values
            )
            if written:
                logger.debug(f"Streak for user {user_id} is now {values['current_streak']}")
                return await self.repository.get_user_points(user_id)

            logger.debug(f"Streak for user {user_id} changed concurrently, re-reading")

        return await self.repository.get_user_points(user_id)

    async def get_streak(self, user_id: str) -> Dict[str, Any]:
        record = await self.repository.get_or_create_user_points(user_id, self.points_per_level)
        return {
            "current_streak": record.current_streak,
            "longest_streak": record.longest_streak,
            "last_activity_date": record.last_activity_date,
        }
