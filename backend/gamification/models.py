"""
Gamification System Models

This module defines the data models for the gamification engine including:
1. Points, levels and daily streaks per user
2. Achievements with rarity tiers and per-user progress
3. Time-windowed leaderboard entries
4. The points transaction history

Enum-valued columns are stored as their string values.
"""

import enum
import uuid
import datetime

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String,
    Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from backend.common.db.base import ModelBase


class AchievementCategory(enum.Enum):
    """Catalog grouping for achievements."""
    LEARNING = "learning"
    ENGAGEMENT = "engagement"
    SOCIAL = "social"
    MILESTONE = "milestone"
    SPECIAL = "special"


class AchievementType(enum.Enum):
    """What an achievement counts."""
    COURSES_COMPLETED = "courses_completed"
    VIDEOS_WATCHED = "videos_watched"
    QUIZZES_PASSED = "quizzes_passed"
    DAYS_STREAK = "days_streak"
    HOURS_LEARNED = "hours_learned"
    CERTIFICATES_EARNED = "certificates_earned"
    DISCUSSIONS_POSTED = "discussions_posted"
    HELPFUL_ANSWERS = "helpful_answers"
    COURSE_REVIEWS = "course_reviews"
    PERFECT_SCORES = "perfect_scores"


class AchievementRarity(enum.Enum):
    """Rarity tiers for achievements."""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def tier(self) -> int:
        """Ordinal of the tier, higher is rarer."""
        return list(AchievementRarity).index(self)


class LeaderboardPeriod(enum.Enum):
    """Leaderboard scoring windows."""
    ALL_TIME = "all_time"
    MONTHLY = "monthly"
    WEEKLY = "weekly"


class PointsSource(enum.Enum):
    """Why points were credited."""
    ACTIVITY = "activity"
    ACHIEVEMENT = "achievement"


def generate_id() -> str:
    return str(uuid.uuid4())


class UserPoints(ModelBase):
    """
    Points, level and streak state of one user.
    """
    __tablename__ = 'user_points'

    user_id = Column(String(255), primary_key=True)
    total_points = Column(Integer, nullable=False, default=0)
    current_level = Column(Integer, nullable=False, default=1)
    points_to_next_level = Column(Integer, nullable=False, default=100)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_activity_date = Column(Date, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.datetime.now,
                        onupdate=datetime.datetime.now, nullable=False)

    def __repr__(self):
        return (f"<UserPoints(user_id='{self.user_id}', "
                f"total_points={self.total_points}, level={self.current_level})>")


class Achievement(ModelBase):
    """
    A catalog entry that users make progress towards.
    """
    __tablename__ = 'achievements'

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(50), nullable=False)
    badge_url = Column(String(500), nullable=True)
    category = Column(String(50), nullable=False)
    type = Column(String(50), nullable=False)
    requirement = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False, default=0)
    rarity = Column(String(20), nullable=False, default=AchievementRarity.COMMON.value)
    is_active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    __table_args__ = (
        Index('idx_achievements_type_active', type, is_active),
    )

    def __repr__(self):
        return f"<Achievement(id='{self.id}', name='{self.name}', type='{self.type}')>"


class UserAchievement(ModelBase):
    """
    Progress of one user towards one achievement.

    Progress never decreases and is frozen once the achievement is completed.
    """
    __tablename__ = 'user_achievements'

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(255), nullable=False)
    achievement_id = Column(String(36), ForeignKey('achievements.id'), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    points_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    achievement = relationship("Achievement", lazy="joined")

    __table_args__ = (
        UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievements_user_achievement'),
        Index('idx_user_achievements_user', user_id),
    )

    def __repr__(self):
        return (f"<UserAchievement(user_id='{self.user_id}', achievement_id='{self.achievement_id}', "
                f"progress={self.progress}, completed={self.is_completed})>")


class LeaderboardEntry(ModelBase):
    """
    A user's standing in one leaderboard period instance.

    The autoincrement id preserves insertion order and breaks ties between
    equal point totals.
    """
    __tablename__ = 'leaderboard_entries'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    period = Column(String(20), nullable=False)
    period_key = Column(String(20), nullable=False)
    points = Column(Integer, nullable=False, default=0)
    rank = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.datetime.now,
                        onupdate=datetime.datetime.now, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'period', 'period_key', name='uq_leaderboard_entries_user_period'),
        Index('idx_leaderboard_entries_period_rank', period, period_key, rank),
    )

    def __repr__(self):
        return (f"<LeaderboardEntry(user_id='{self.user_id}', period='{self.period}', "
                f"period_key='{self.period_key}', points={self.points}, rank={self.rank})>")


class PointsTransaction(ModelBase):
    """
    A single credit of points in the user's history.
    """
    __tablename__ = 'points_transactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    amount = Column(Integer, nullable=False)
    source = Column(String(20), nullable=False)
    activity_type = Column(String(50), nullable=True)
    reference_id = Column(String(255), nullable=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    __table_args__ = (
        Index('idx_points_transactions_user_created', user_id, created_at),
        Index('idx_points_transactions_reference', user_id, activity_type, reference_id),
    )

    def __repr__(self):
        return (f"<PointsTransaction(user_id='{self.user_id}', amount={self.amount}, "
                f"source='{self.source}')>")
