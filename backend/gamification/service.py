"""
Gamification Service Module

This module provides the single entry point other backend modules use to
report learning activity, plus the read queries of the gamification API.

Recording an activity runs, in order:
1. The points ledger credits the activity's points
2. The leaderboards are refreshed (``PointsAwarded``)
3. Matching achievements advance; completions credit their reward
   (``AchievementCompleted``), which refreshes the leaderboards again
4. The daily streak is touched
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import sessionmaker

from backend.common.clock import Clock, SystemClock
from backend.common.config import GamificationConfig, get_config
from backend.common.error_handling import ValidationError
from backend.common.logger import LoggerAdapter, app_logger, log_execution_time
from backend.gamification.achievements import AchievementTracker
from backend.gamification.events import AchievementCompleted, EventDispatcher, PointsAwarded
from backend.gamification.leaderboard import LeaderboardMaintainer
from backend.gamification.ledger import PointsLedger
from backend.gamification.locks import RankLock, create_rank_lock
from backend.gamification.models import (
    Achievement, LeaderboardPeriod, PointsSource, PointsTransaction, UserPoints
)
from backend.gamification.repository import GamificationRepository
from backend.gamification.schemas import ActivityResult
from backend.gamification.streaks import StreakTracker

# Set up module logger
logger = app_logger.getChild("gamification.service")


def normalize_activity_type(activity_type: str) -> str:
    """
    Normalize an activity token: ``quiz-passed``, ``QUIZ_PASSED`` and
    ``quiz_passed`` are the same activity.

    Blank tokens normalize to ``""``, which like any unknown activity earns
    the default points and advances no achievement.
    """
    return (activity_type or "").strip().lower().replace("-", "_")


class GamificationService:
    """
    Service for gamification features.

    Wires the points ledger, streak tracker, achievement tracker and
    leaderboard maintainer together over one event dispatcher.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings: Optional[GamificationConfig] = None,
        clock: Optional[Clock] = None,
        rank_lock: Optional[RankLock] = None,
        dispatcher: Optional[EventDispatcher] = None
    ):
        """
        Initialize the gamification service.

        Args:
            session_factory: SQLAlchemy session factory (defaults to the global one)
            settings: Gamification rules (defaults to the loaded configuration)
            clock: Source of "today" (defaults to the system clock in the configured timezone)
            rank_lock: Leaderboard rank lock (defaults to the configured backend)
            dispatcher: Event dispatcher shared by the components
        """
        self.settings = settings or get_config().gamification
        self.clock = clock or SystemClock(self.settings.timezone)
        self.dispatcher = dispatcher or EventDispatcher()
        self.repository = GamificationRepository(session_factory)

        self.ledger = PointsLedger(
            self.repository, self.dispatcher, self.clock, self.settings.points_per_level
        )
        self.streaks = StreakTracker(self.repository, self.clock, self.settings.points_per_level)
        self.achievements = AchievementTracker(self.repository, self.dispatcher, self.clock)
        self.leaderboard = LeaderboardMaintainer(
            self.repository,
            self.clock,
            rank_lock or create_rank_lock(self.settings),
            page_size=self.settings.leaderboard_page_size,
            max_page_size=self.settings.leaderboard_max_page_size,
        )

        self.dispatcher.subscribe(PointsAwarded, self.leaderboard.on_points_awarded)
        self.dispatcher.subscribe(AchievementCompleted, self.ledger.on_achievement_completed)

    def points_for(self, activity_type: str) -> int:
        """Points awarded for an activity; unknown activities get the default."""
        return self.settings.activity_points.get(
            normalize_activity_type(activity_type), self.settings.default_activity_points
        )

    @log_execution_time(logger)
    async def record_activity(self, user_id: str, activity_type: str, entity_id: str) -> ActivityResult:
        """
        Record a completed learning activity.

        Args:
            user_id: The ID of the user
            activity_type: Activity token, e.g. ``quiz-passed``
            entity_id: The course, video, quiz, discussion or review concerned

        Returns:
            ActivityResult describing what was credited
        """
        activity = normalize_activity_type(activity_type)
        if not entity_id:
            raise ValidationError("Entity ID is required", details={"activity_type": activity})

        log = LoggerAdapter(logger, {"user_id": user_id, "activity_type": activity, "entity_id": entity_id})

        if not self.settings.award_repeat_entities and await self.repository.has_transaction(
            user_id, activity, entity_id
        ):
            current = await self.ledger.get_points(user_id)
            log.info("Activity already recorded for this entity, nothing awarded")
            return ActivityResult(
                points_awarded=0,
                activity_type=activity,
                entity_id=entity_id,
                duplicate=True,
                total_points=current.total_points,
                current_level=current.current_level,
                message="Activity already recorded",
            )

        points = self.points_for(activity)
        before = await self.ledger.get_points(user_id)

        await self.ledger.add_points(
            user_id,
            points,
            source=PointsSource.ACTIVITY,
            activity_type=activity,
            reference_id=entity_id,
            description=f"Activity: {activity}",
        )
        unlocked = await self.achievements.advance(user_id, activity)
        final = await self.streaks.touch(user_id)

        log.info(
            f"Recorded activity for {points} points "
            f"({len(unlocked)} achievements unlocked, total {final.total_points})"
        )
        return ActivityResult(
            points_awarded=points,
            activity_type=activity,
            entity_id=entity_id,
            total_points=final.total_points,
            current_level=final.current_level,
            level_up=final.current_level > before.current_level,
            achievements_unlocked=[event.achievement_id for event in unlocked],
            message=f"Earned {points} points!",
        )

    # ------------------------------------------------------------------
    # Reader surface
    # ------------------------------------------------------------------

    async def get_points(self, user_id: str) -> UserPoints:
        return await self.ledger.get_points(user_id)

    async def get_streak(self, user_id: str) -> Dict[str, Any]:
        return await self.streaks.get_streak(user_id)

    async def get_recent_transactions(self, user_id: str, limit: int = 10) -> List[PointsTransaction]:
        return await self.ledger.get_recent_transactions(user_id, limit)

    async def get_user_achievements(self, user_id: str) -> Dict[str, Any]:
        return await self.achievements.get_user_achievements(user_id)

    async def list_achievements(self) -> List[Achievement]:
        return await self.achievements.list_achievements()

    async def create_achievement(self, data: Dict[str, Any]) -> Achievement:
        return await self.achievements.create_achievement(data)

    async def seed_default_achievements(self) -> int:
        return await self.achievements.seed_default_achievements()

    async def get_leaderboard(
        self,
        period: Union[str, LeaderboardPeriod],
        page: int = 1,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        return await self.leaderboard.get_leaderboard(period, page, limit)

    async def get_my_rank(
        self,
        user_id: str,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME
    ) -> Dict[str, Any]:
        return await self.leaderboard.get_my_rank(user_id, period)


# Singleton instance
_gamification_service: Optional[GamificationService] = None


def get_gamification_service() -> GamificationService:
    """
    Get the singleton gamification service instance.

    Returns:
        Gamification service instance
    """
    global _gamification_service

    if _gamification_service is None:
        _gamification_service = GamificationService()

    return _gamification_service


async def initialize_gamification_service(
    service: Optional[GamificationService] = None,
    seed_achievements: Optional[bool] = None
) -> GamificationService:
    """
    Install the gamification service and seed the default catalog.

    Args:
        service: Service to install (defaults to one built from the configuration)
        seed_achievements: Override for ``GAMIFICATION_SEED_DEFAULT_ACHIEVEMENTS``
    """
    global _gamification_service

    _gamification_service = service or GamificationService()
    if seed_achievements is None:
        seed_achievements = _gamification_service.settings.seed_default_achievements
    if seed_achievements:
        await _gamification_service.seed_default_achievements()

    logger.info("Gamification service initialized")
    return _gamification_service


def reset_gamification_service() -> None:
    global _gamification_service
    _gamification_service = None
