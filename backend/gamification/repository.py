"""
Gamification Repository

This module provides database access for points, achievements,
leaderboard entries and the points transaction history.

Every method opens its own session and commits before returning. Counters
are changed with SQL-side increments and one-way flags with conditional
updates, so concurrent callers never lose an update. Rows created lazily
may race; the loser of an insert race re-reads the winner's row.
"""

import datetime
import functools
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend.common.db.session import get_session_factory
from backend.common.error_handling import DatabaseQueryError
from backend.common.logger import app_logger
from backend.gamification.models import (
    Achievement, LeaderboardEntry, PointsTransaction, UserAchievement, UserPoints
)
from backend.users.models import User

logger = app_logger.getChild("gamification.repository")


def db_operation(query_type: str) -> Callable:
    """Translate SQLAlchemy failures into DatabaseQueryError."""
    def decorator(func_: Callable) -> Callable:
        @functools.wraps(func_)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func_(self, *args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Database error during {query_type}: {e}", exc_info=True)
                raise DatabaseQueryError(query_type, cause=e) from e
        return wrapper
    return decorator


def rank_order(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """
    Order entries by descending points.

    ``sorted`` is stable, so entries with equal points keep the order
    they were given in (insertion order when read by id).
    """
    return sorted(entries, key=lambda entry: -entry.points)


class GamificationRepository:
    """Repository for gamification data."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize the repository with a session factory.

        Args:
            session_factory: SQLAlchemy session factory for creating database sessions
        """
        self._session_factory = session_factory or get_session_factory()

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    @db_operation("get_user_points")
    async def get_user_points(self, user_id: str) -> Optional[UserPoints]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserPoints).where(UserPoints.user_id == user_id)
            )
            return result.scalar_one_or_none()

    @db_operation("get_or_create_user_points")
    async def get_or_create_user_points(self, user_id: str, points_per_level: int = 100) -> UserPoints:
        """
        Get the points row of a user, creating a zeroed one if it doesn't exist.

        Args:
            user_id: The ID of the user
            points_per_level: Level size used for the initial points_to_next_level

        Returns:
            The UserPoints instance
        """
        existing = await self.get_user_points(user_id)
        if existing is not None:
            return existing

        async with self._session_factory() as session:
            session.add(UserPoints(
                user_id=user_id,
                total_points=0,
                current_level=1,
                points_to_next_level=points_per_level,
                current_streak=0,
                longest_streak=0,
            ))
            try:
                await session.commit()
                logger.info(f"Created points record for user {user_id}")
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Points record for user {user_id} created concurrently")

        return await self.get_user_points(user_id)

    @db_operation("increment_points")
    async def increment_points(
        self,
        user_id: str,
        amount: int,
        points_per_level: int,
        source: str,
        activity_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        description: Optional[str] = None,
        created_at: Optional[datetime.datetime] = None
    ) -> UserPoints:
        """
        Atomically add points, recompute the level and record the transaction.

        The user's points row must exist.

        Returns:
            The updated UserPoints instance
        """
        async with self._session_factory() as session:
            await session.execute(
                update(UserPoints)
                .where(UserPoints.user_id == user_id)
                .values(total_points=UserPoints.total_points + amount)
            )
            result = await session.execute(
                select(UserPoints.total_points).where(UserPoints.user_id == user_id)
            )
            total = result.scalar_one()
            level = total // points_per_level + 1
            await session.execute(
                update(UserPoints)
                .where(UserPoints.user_id == user_id)
                .values(current_level=level, points_to_next_level=level * points_per_level - total)
            )
            session.add(PointsTransaction(
                user_id=user_id,
                amount=amount,
                source=source,
                activity_type=activity_type,
                reference_id=reference_id,
                description=description,
                created_at=created_at or datetime.datetime.now(),
            ))
            await session.commit()

        return await self.get_user_points(user_id)

    @db_operation("has_transaction")
    async def has_transaction(self, user_id: str, activity_type: str, reference_id: str) -> bool:
        """Check whether an activity was already credited for an entity."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(PointsTransaction.id).where(
                    PointsTransaction.user_id == user_id,
                    PointsTransaction.activity_type == activity_type,
                    PointsTransaction.reference_id == reference_id,
                ).limit(1)
            )
            return result.first() is not None

    @db_operation("list_transactions")
    async def list_transactions(self, user_id: str, limit: int = 10) -> List[PointsTransaction]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PointsTransaction)
                .where(PointsTransaction.user_id == user_id)
                .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    @db_operation("update_streak")
    async def update_streak(
        self,
        user_id: str,
        expected_last_activity: Optional[datetime.date],
        current_streak: int,
        longest_streak: int,
        last_activity_date: datetime.date
    ) -> bool:
        """
        Write new streak values if ``last_activity_date`` is still the one read.

        Returns:
            True if this call performed the write
        """
        if expected_last_activity is None:
            last_date_matches = UserPoints.last_activity_date.is_(None)
        else:
            last_date_matches = UserPoints.last_activity_date == expected_last_activity

        async with self._session_factory() as session:
            result = await session.execute(
                update(UserPoints)
                .where(UserPoints.user_id == user_id, last_date_matches)
                .values(
                    current_streak=current_streak,
                    longest_streak=longest_streak,
                    last_activity_date=last_activity_date,
                )
            )
            await session.commit()
            return result.rowcount == 1

    # ------------------------------------------------------------------
    # Achievements
    # ------------------------------------------------------------------

    @db_operation("count_achievements")
    async def count_achievements(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count(Achievement.id)))
            return result.scalar_one()

    @db_operation("add_achievements")
    async def add_achievements(self, achievements: List[Dict[str, Any]]) -> List[Achievement]:
        """
        Insert catalog entries.

        Args:
            achievements: Column values for each new achievement

        Returns:
            The created Achievement instances
        """
        created = [Achievement(**data) for data in achievements]
        async with self._session_factory() as session:
            session.add_all(created)
            await session.commit()
        return created

    @db_operation("list_active_achievements")
    async def list_active_achievements(self, achievement_type: Optional[str] = None) -> List[Achievement]:
        async with self._session_factory() as session:
            stmt = select(Achievement).where(Achievement.is_active.is_(True))
            if achievement_type is not None:
                stmt = stmt.where(Achievement.type == achievement_type)
            result = await session.execute(stmt.order_by(Achievement.order, Achievement.created_at))
            return list(result.scalars().all())

    @db_operation("get_or_create_user_achievement")
    async def get_or_create_user_achievement(self, user_id: str, achievement_id: str) -> UserAchievement:
        existing = await self._get_user_achievement(user_id, achievement_id)
        if existing is not None:
            return existing

        async with self._session_factory() as session:
            session.add(UserAchievement(
                user_id=user_id,
                achievement_id=achievement_id,
                progress=0,
                is_completed=False,
                points_earned=0,
            ))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Progress row for {user_id}/{achievement_id} created concurrently")

        return await self._get_user_achievement(user_id, achievement_id)

    async def _get_user_achievement(self, user_id: str, achievement_id: str) -> Optional[UserAchievement]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserAchievement).where(
                    UserAchievement.user_id == user_id,
                    UserAchievement.achievement_id == achievement_id,
                )
            )
            return result.scalar_one_or_none()

    @db_operation("advance_user_achievement")
    async def advance_user_achievement(
        self,
        user_achievement_id: str,
        requirement: int,
        points: int,
        completed_at: datetime.datetime
    ) -> Tuple[Optional[int], bool]:
        """
        Increment progress and complete the achievement once the requirement is met.

        Returns:
            Tuple of (new progress or None if already completed, whether this
            call completed the achievement)
        """
        async with self._session_factory() as session:
            result = await session.execute(
                update(UserAchievement)
                .where(
                    UserAchievement.id == user_achievement_id,
                    UserAchievement.is_completed.is_(False),
                )
                .values(progress=UserAchievement.progress + 1)
            )
            if result.rowcount != 1:
                await session.rollback()
                return None, False

            progress_result = await session.execute(
                select(UserAchievement.progress).where(UserAchievement.id == user_achievement_id)
            )
            progress = progress_result.scalar_one()

            completed = False
            if progress >= requirement:
                completion = await session.execute(
                    update(UserAchievement)
                    .where(
                        UserAchievement.id == user_achievement_id,
                        UserAchievement.is_completed.is_(False),
                    )
                    .values(is_completed=True, completed_at=completed_at, points_earned=points)
                )
                completed = completion.rowcount == 1

            await session.commit()
            return progress, completed

    @db_operation("init_user_achievements")
    async def init_user_achievements(self, user_id: str, achievement_ids: List[str]) -> int:
        """
        Create zero-progress rows for achievements the user has not touched.

        Returns:
            Number of rows created
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            )
            known = set(result.scalars().all())

        created = 0
        for achievement_id in achievement_ids:
            if achievement_id in known:
                continue
            async with self._session_factory() as session:
                session.add(UserAchievement(
                    user_id=user_id,
                    achievement_id=achievement_id,
                    progress=0,
                    is_completed=False,
                    points_earned=0,
                ))
                try:
                    await session.commit()
                    created += 1
                except IntegrityError:
                    await session.rollback()
        return created

    @db_operation("list_user_achievements")
    async def list_user_achievements(self, user_id: str) -> List[UserAchievement]:
        """Progress rows of a user, completed first, then by progress."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(UserAchievement)
                .join(Achievement, UserAchievement.achievement_id == Achievement.id)
                .where(UserAchievement.user_id == user_id, Achievement.is_active.is_(True))
                .order_by(UserAchievement.is_completed.desc(), UserAchievement.progress.desc())
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Leaderboards
    # ------------------------------------------------------------------

    @db_operation("upsert_leaderboard_entry")
    async def upsert_leaderboard_entry(self, user_id: str, period: str, period_key: str, points: int) -> None:
        """
        Set a user's points on one board, creating the entry unranked.

        Inserts and updates both store the user's committed total from
        ``user_points``, falling back to ``points`` for users without a
        ledger row. Every board a refresh touches gets the same total, and a
        late refresh never writes back an older one.
        """
        if await self._update_entry_points(user_id, period, period_key, points):
            return

        async with self._session_factory() as session:
            try:
                await session.execute(
                    insert(LeaderboardEntry).values(
                        user_id=user_id,
                        period=period,
                        period_key=period_key,
                        points=self._committed_total(user_id, points),
                        rank=0,
                    )
                )
                await session.commit()
                return
            except IntegrityError:
                await session.rollback()

        await self._update_entry_points(user_id, period, period_key, points)

    @staticmethod
    def _committed_total(user_id: str, points: int):
        latest_total = (
            select(UserPoints.total_points)
            .where(UserPoints.user_id == user_id)
            .scalar_subquery()
        )
        return func.coalesce(latest_total, points)

    async def _update_entry_points(self, user_id: str, period: str, period_key: str, points: int) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(LeaderboardEntry)
                .where(
                    LeaderboardEntry.user_id == user_id,
                    LeaderboardEntry.period == period,
                    LeaderboardEntry.period_key == period_key,
                )
                .values(points=self._committed_total(user_id, points))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount == 1

    @db_operation("rerank_leaderboard")
    async def rerank(self, period: str, period_key: str) -> int:
        """
        Rewrite the ranks of one board in a single transaction.

        Callers hold the board's rank lock.

        Returns:
            Number of entries whose rank changed
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeaderboardEntry)
                .where(LeaderboardEntry.period == period, LeaderboardEntry.period_key == period_key)
                .order_by(LeaderboardEntry.id)
            )
            entries = result.scalars().all()

            changed = 0
            for position, entry in enumerate(rank_order(entries), start=1):
                if entry.rank != position:
                    entry.rank = position
                    changed += 1

            await session.commit()
            return changed

    @db_operation("get_leaderboard_entry")
    async def get_leaderboard_entry(self, user_id: str, period: str, period_key: str) -> Optional[LeaderboardEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeaderboardEntry).where(
                    LeaderboardEntry.user_id == user_id,
                    LeaderboardEntry.period == period,
                    LeaderboardEntry.period_key == period_key,
                )
            )
            return result.scalar_one_or_none()

    @db_operation("get_leaderboard_page")
    async def get_leaderboard_page(
        self,
        period: str,
        period_key: str,
        offset: int,
        limit: int
    ) -> Tuple[List[Tuple[LeaderboardEntry, Optional[User]]], int]:
        """
        One page of a board joined with the users' display fields.

        Returns:
            Tuple of ((entry, user) pairs ordered by rank, total entries on the board)
        """
        board = (LeaderboardEntry.period == period, LeaderboardEntry.period_key == period_key)
        async with self._session_factory() as session:
            result = await session.execute(
                select(LeaderboardEntry, User)
                .outerjoin(User, User.id == LeaderboardEntry.user_id)
                .where(*board)
                .order_by(LeaderboardEntry.rank, LeaderboardEntry.id)
                .offset(offset)
                .limit(limit)
            )
            rows = [(entry, user) for entry, user in result.all()]

            count_result = await session.execute(
                select(func.count(LeaderboardEntry.id)).where(*board)
            )
            return rows, count_result.scalar_one()
