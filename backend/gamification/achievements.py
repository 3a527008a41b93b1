"""
Achievement Tracker

Advances per-user achievement progress from recorded activities and
manages the achievement catalog. Completions are announced as
``AchievementCompleted`` events; the reward itself is credited by the
points ledger.
"""

import math
from typing import Any, Dict, List, Optional

from backend.common.clock import Clock, SystemClock
from backend.common.error_handling import ValidationError
from backend.common.logger import app_logger
from backend.gamification.events import AchievementCompleted, EventDispatcher
from backend.gamification.models import (
    Achievement, AchievementCategory, AchievementRarity, AchievementType, UserAchievement
)
from backend.gamification.repository import GamificationRepository

logger = app_logger.getChild("gamification.achievements")

# Which achievement type an activity counts towards
ACTIVITY_ACHIEVEMENT_TYPES = {
    "video_watched": AchievementType.VIDEOS_WATCHED,
    "quiz_passed": AchievementType.QUIZZES_PASSED,
    "course_completed": AchievementType.COURSES_COMPLETED,
    "discussion_posted": AchievementType.DISCUSSIONS_POSTED,
    "review_posted": AchievementType.COURSE_REVIEWS,
}


def get_default_achievements() -> List[Dict[str, Any]]:
    """
    Get the default achievement catalog.

    Returns:
        Column values of the default achievements
    """
    return [
        {
            "name": "First Steps",
            "description": "Watch your first video",
            "icon": "🎬",
            "category": AchievementCategory.LEARNING.value,
            "type": AchievementType.VIDEOS_WATCHED.value,
            "requirement": 1,
            "points": 10,
            "rarity": AchievementRarity.COMMON.value,
            "order": 1,
        },
        {
            "name": "Video Enthusiast",
            "description": "Watch 10 videos",
            "icon": "📺",
            "category": AchievementCategory.LEARNING.value,
            "type": AchievementType.VIDEOS_WATCHED.value,
            "requirement": 10,
            "points": 50,
            "rarity": AchievementRarity.UNCOMMON.value,
            "order": 2,
        },
        {
            "name": "Course Beginner",
            "description": "Complete your first course",
            "icon": "🎓",
            "category": AchievementCategory.MILESTONE.value,
            "type": AchievementType.COURSES_COMPLETED.value,
            "requirement": 1,
            "points": 100,
            "rarity": AchievementRarity.UNCOMMON.value,
            "order": 3,
        },
        {
            "name": "Course Master",
            "description": "Complete 5 courses",
            "icon": "🏅",
            "category": AchievementCategory.MILESTONE.value,
            "type": AchievementType.COURSES_COMPLETED.value,
            "requirement": 5,
            "points": 500,
            "rarity": AchievementRarity.RARE.value,
            "order": 4,
        },
        {
            "name": "Quiz Expert",
            "description": "Pass 10 quizzes",
            "icon": "📝",
            "category": AchievementCategory.LEARNING.value,
            "type": AchievementType.QUIZZES_PASSED.value,
            "requirement": 10,
            "points": 250,
            "rarity": AchievementRarity.RARE.value,
            "order": 5,
        },
        {
            "name": "7 Day Streak",
            "description": "Learn for 7 days in a row",
            "icon": "🔥",
            "category": AchievementCategory.ENGAGEMENT.value,
            "type": AchievementType.DAYS_STREAK.value,
            "requirement": 7,
            "points": 150,
            "rarity": AchievementRarity.RARE.value,
            "order": 6,
        },
        {
            "name": "Community Helper",
            "description": "Give 5 helpful answers",
            "icon": "💡",
            "category": AchievementCategory.SOCIAL.value,
            "type": AchievementType.HELPFUL_ANSWERS.value,
            "requirement": 5,
            "points": 200,
            "rarity": AchievementRarity.UNCOMMON.value,
            "order": 7,
        },
        {
            "name": "Reviewer",
            "description": "Write your first course review",
            "icon": "⭐",
            "category": AchievementCategory.ENGAGEMENT.value,
            "type": AchievementType.COURSE_REVIEWS.value,
            "requirement": 1,
            "points": 50,
            "rarity": AchievementRarity.COMMON.value,
            "order": 8,
        },
    ]


def catalog_order(achievements: List[Achievement]) -> List[Achievement]:
    """Rarest first, then by reward."""
    return sorted(
        achievements,
        key=lambda a: (AchievementRarity(a.rarity).tier, a.points),
        reverse=True
    )


class AchievementTracker:
    """Owns ``user_achievements`` and the catalog."""

    def __init__(
        self,
        repository: GamificationRepository,
        dispatcher: EventDispatcher,
        clock: Optional[Clock] = None
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()

    async def advance(self, user_id: str, activity_type: str) -> List[AchievementCompleted]:
        """
        Count one activity towards every matching active achievement.

        Args:
            user_id: The ID of the user
            activity_type: Normalized activity type

        Returns:
            Events for the achievements completed by this call
        """
        achievement_type = ACTIVITY_ACHIEVEMENT_TYPES.get(activity_type)
        if achievement_type is None:
            logger.debug(f"Activity {activity_type} counts towards no achievement")
            return []

        completed = []
        for achievement in await self.repository.list_active_achievements(achievement_type.value):
            user_achievement = await self.repository.get_or_create_user_achievement(user_id, achievement.id)
            if user_achievement.is_completed:
                continue

            progress, just_completed = await self.repository.advance_user_achievement(
                user_achievement.id,
                achievement.requirement,
                achievement.points,
                self.clock.now(),
            )
            if not just_completed:
                if progress is not None:
                    logger.debug(
                        f"User {user_id} progress on {achievement.name}: "
                        f"{progress}/{achievement.requirement}"
                    )
                continue

            logger.info(f"User {user_id} completed achievement {achievement.name}")
            event = AchievementCompleted(
                user_id=user_id,
                achievement_id=achievement.id,
                achievement_name=achievement.name,
                points=achievement.points,
                completed_at=self.clock.now(),
            )
            await self.dispatcher.publish(event)
            completed.append(event)

        return completed

    async def create_achievement(self, data: Dict[str, Any]) -> Achievement:
        """
        Add an achievement to the catalog.

        Raises:
            ValidationError: If requirement or points are out of range
        """
        if data.get("requirement", 0) < 1:
            raise ValidationError("Requirement must be at least 1", details={"requirement": data.get("requirement")})
        if data.get("points", 0) < 0:
            raise ValidationError("Points must not be negative", details={"points": data.get("points")})

        values = dict(data)
        if values.get("is_active") is None:
            values["is_active"] = True
        values.setdefault("order", 0)

        created, = await self.repository.add_achievements([values])
        logger.info(f"Created achievement {created.name} ({created.id})")
        return created

    async def list_achievements(self) -> List[Achievement]:
        return catalog_order(await self.repository.list_active_achievements())

    async def get_user_achievements(self, user_id: str) -> Dict[str, Any]:
        """
        Progress on every active achievement with a completion summary.

        Returns:
            Dictionary with ``achievements`` (UserAchievement rows) and ``summary``
        """
        active = await self.repository.list_active_achievements()
        await self.repository.init_user_achievements(user_id, [a.id for a in active])

        rows: List[UserAchievement] = await self.repository.list_user_achievements(user_id)
        completed = sum(1 for row in rows if row.is_completed)
        total = len(rows)
        return {
            "achievements": rows,
            "summary": {
                "completed": completed,
                "total": total,
                "total_points": sum(row.points_earned for row in rows),
                "completion_rate": math.floor(completed * 100 / total + 0.5) if total > 0 else 0,
            },
        }

    async def seed_default_achievements(self) -> int:
        """
        Insert the default catalog into an empty achievements table.

        Returns:
            Number of achievements created
        """
        if await self.repository.count_achievements() > 0:
            logger.info("Achievements already present, skipping default catalog")
            return 0

        created = await self.repository.add_achievements(get_default_achievements())
        logger.info(f"Seeded {len(created)} default achievements")
        return len(created)
