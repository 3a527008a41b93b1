"""
Points Ledger

Credits points to users and keeps their level consistent with their total.
Every credit is announced as a ``PointsAwarded`` event.
"""

from typing import List, Optional

from backend.common.clock import Clock, SystemClock
from backend.common.error_handling import ValidationError
from backend.common.logger import app_logger
from backend.gamification.events import AchievementCompleted, EventDispatcher, PointsAwarded
from backend.gamification.models import PointsSource, PointsTransaction, UserPoints
from backend.gamification.repository import GamificationRepository

logger = app_logger.getChild("gamification.ledger")

DEFAULT_POINTS_PER_LEVEL = 100


def level_for(total_points: int, points_per_level: int = DEFAULT_POINTS_PER_LEVEL) -> int:
    """Level reached with ``total_points``; every user starts at level 1."""
    return total_points // points_per_level + 1


def points_to_next_level(total_points: int, points_per_level: int = DEFAULT_POINTS_PER_LEVEL) -> int:
    """Points still missing to reach the next level, always in 1..points_per_level."""
    return level_for(total_points, points_per_level) * points_per_level - total_points


class PointsLedger:
    """
    Owns the points and level columns of ``user_points``.
    """

    def __init__(
        self,
        repository: GamificationRepository,
        dispatcher: EventDispatcher,
        clock: Optional[Clock] = None,
        points_per_level: int = DEFAULT_POINTS_PER_LEVEL
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.points_per_level = points_per_level

    async def get_points(self, user_id: str) -> UserPoints:
        """Current points snapshot, creating the zeroed record on first use."""
        return await self.repository.get_or_create_user_points(user_id, self.points_per_level)

    async def add_points(
        self,
        user_id: str,
        amount: int,
        source: PointsSource = PointsSource.ACTIVITY,
        activity_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> UserPoints:
        """
        Credit points to a user.

        Args:
            user_id: The ID of the user
            amount: Points to add, must be positive
            source: Why the points are credited
            activity_type: Normalized activity type for activity credits
            reference_id: Entity or achievement the credit refers to
            description: Human readable note for the transaction history

        Returns:
            The updated UserPoints

        Raises:
            ValidationError: If amount is not positive
        """
        if amount <= 0:
            raise ValidationError(
                f"Points to add must be positive, got {amount}",
                details={"user_id": user_id, "amount": amount}
            )

        await self.repository.get_or_create_user_points(user_id, self.points_per_level)
        updated = await self.repository.increment_points(
            user_id,
            amount,
            self.points_per_level,
            source=source.value,
            activity_type=activity_type,
            reference_id=reference_id,
            description=description,
            created_at=self.clock.now(),
        )
        logger.info(
            f"Added {amount} points to user {user_id} ({source.value}); "
            f"total {updated.total_points}, level {updated.current_level}"
        )

        await self.dispatcher.publish(PointsAwarded(
            user_id=user_id,
            amount=amount,
            total_points=updated.total_points,
            source=source.value,
            reference_id=reference_id,
        ))
        return updated

    async def on_achievement_completed(self, event: AchievementCompleted) -> None:
        """Credit the reward of a newly completed achievement."""
        if event.points <= 0:
            return
        await self.add_points(
            event.user_id,
            event.points,
            source=PointsSource.ACHIEVEMENT,
            reference_id=event.achievement_id,
            description=f"Achievement unlocked: {event.achievement_name}",
        )

    async def get_recent_transactions(self, user_id: str, limit: int = 10) -> List[PointsTransaction]:
        """Newest transactions first."""
        if limit < 1:
            raise ValidationError("Limit must be at least 1", details={"limit": limit})
        return await self.repository.list_transactions(user_id, limit)
