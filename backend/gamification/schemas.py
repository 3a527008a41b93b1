"""
Request and response models for the gamification API.
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.gamification.models import AchievementCategory, AchievementRarity, AchievementType


class ActivityRequest(BaseModel):
    activity_type: str = Field(..., min_length=1, description="Activity type, e.g. quiz-passed")
    entity_id: str = Field(..., min_length=1, description="Course, video, quiz, discussion or review ID")


class ActivityResult(BaseModel):
    """Outcome of recording one activity."""
    points_awarded: int = Field(..., description="Points credited for the activity itself")
    activity_type: str = Field(..., description="Normalized activity type")
    entity_id: str = Field(..., description="Entity the activity refers to")
    duplicate: bool = Field(False, description="Activity was already recorded for this entity")
    total_points: int = Field(..., description="Total points after the activity")
    current_level: int = Field(..., description="Level after the activity")
    level_up: bool = Field(False, description="Whether the user reached a new level")
    achievements_unlocked: List[str] = Field(default_factory=list, description="IDs of achievements completed")
    message: str = Field(..., description="Human readable summary")


class UserPointsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    total_points: int
    current_level: int
    points_to_next_level: int
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[datetime.date] = None


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[datetime.date] = None


class PointsTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    source: str
    activity_type: Optional[str] = None
    reference_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime.datetime


class AchievementCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    icon: str = Field(..., min_length=1, description="Emoji or icon identifier")
    badge_url: Optional[str] = None
    category: AchievementCategory
    type: AchievementType
    requirement: int = Field(..., ge=1, description="Count needed to unlock")
    points: int = Field(..., ge=0, description="Points awarded on completion")
    rarity: AchievementRarity
    is_active: Optional[bool] = None


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    icon: str
    badge_url: Optional[str] = None
    category: str
    type: str
    requirement: int
    points: int
    rarity: str
    is_active: bool


class UserAchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    achievement_id: str
    progress: int
    is_completed: bool
    completed_at: Optional[datetime.datetime] = None
    points_earned: int
    achievement: AchievementResponse


class AchievementSummary(BaseModel):
    completed: int
    total: int
    total_points: int
    completion_rate: int


class UserAchievementsResponse(BaseModel):
    achievements: List[UserAchievementResponse]
    summary: AchievementSummary


class LeaderboardEntryResponse(BaseModel):
    user_id: str
    rank: int
    points: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_photo: Optional[str] = None


class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntryResponse]
    meta: Dict[str, Any]


class MyRankResponse(BaseModel):
    user_id: str
    period: str
    period_key: str
    rank: Optional[int] = None
    points: int
    message: Optional[str] = None
