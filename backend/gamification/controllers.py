"""
Gamification Controllers Module

This module provides API endpoints for gamification features, including:
- Recording learning activity
- Points, level, streak and transaction history of the current user
- The achievement catalog and the current user's progress
- Leaderboards and the current user's rank
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.common.auth import get_current_user_id, require_admin
from backend.common.error_handling import LearnQuestError
from backend.common.logger import app_logger
from backend.gamification.models import LeaderboardPeriod
from backend.gamification.schemas import (
    AchievementCreate,
    AchievementResponse,
    ActivityRequest,
    ActivityResult,
    LeaderboardResponse,
    MyRankResponse,
    PointsTransactionResponse,
    StreakResponse,
    UserAchievementsResponse,
    UserPointsResponse,
)
from backend.gamification.service import GamificationService, get_gamification_service

# Set up module logger
logger = app_logger.getChild("gamification.controllers")

# Create router
router = APIRouter(prefix="/gamification", tags=["Gamification"])


def internal_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"Error {action}: {error}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Error {action}")


@router.post("/points/activity", response_model=ActivityResult)
async def record_activity(
    request: ActivityRequest,
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> ActivityResult:
    """
    Record a completed learning activity for the current user.

    Returns:
        Points credited and the user's resulting totals
    """
    try:
        return await service.record_activity(user_id, request.activity_type, request.entity_id)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("recording activity", e)


@router.get("/points/me", response_model=UserPointsResponse)
async def get_my_points(
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> Any:
    """Get the current user's points, level and streak."""
    try:
        return await service.get_points(user_id)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving points", e)


@router.get("/points/streak", response_model=StreakResponse)
async def get_my_streak(
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    try:
        return await service.get_streak(user_id)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving streak", e)


@router.get("/points/transactions", response_model=List[PointsTransactionResponse])
async def get_my_transactions(
    limit: int = Query(10, ge=1, le=100, description="Number of transactions to return"),
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> Any:
    """Get the current user's most recent points transactions."""
    try:
        return await service.get_recent_transactions(user_id, limit)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving transactions", e)


@router.get("/achievements", response_model=List[AchievementResponse])
async def list_achievements(
    service: GamificationService = Depends(get_gamification_service)
) -> Any:
    """
    Get all active achievements, rarest first.

    This endpoint does not require authentication.
    """
    try:
        return await service.list_achievements()
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving achievements", e)


@router.get("/achievements/me", response_model=UserAchievementsResponse)
async def get_my_achievements(
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> Any:
    """
    Get the current user's progress on every active achievement.

    Returns:
        Achievements with progress and a completion summary
    """
    try:
        return await service.get_user_achievements(user_id)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving user achievements", e)


@router.post("/achievements", response_model=AchievementResponse, status_code=201)
async def create_achievement(
    request: AchievementCreate,
    admin_id: str = Depends(require_admin),
    service: GamificationService = Depends(get_gamification_service)
) -> Any:
    """Create an achievement (administrators only)."""
    try:
        achievement = await service.create_achievement(request.model_dump(mode="json"))
        logger.info(f"Administrator {admin_id} created achievement {achievement.id}")
        return achievement
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("creating achievement", e)


# Declared before /leaderboard/{period} so "my-rank" is not taken for a period
@router.get("/leaderboard/my-rank", response_model=MyRankResponse)
async def get_my_rank(
    period: str = Query(LeaderboardPeriod.ALL_TIME.value, description="all-time, monthly or weekly"),
    user_id: str = Depends(get_current_user_id),
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    try:
        return await service.get_my_rank(user_id, period)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving rank", e)


@router.get("/leaderboard/{period}", response_model=LeaderboardResponse)
async def get_leaderboard(
    period: str,
    page: int = Query(1, description="Page number, starting at 1"),
    limit: Optional[int] = Query(None, description="Entries per page"),
    service: GamificationService = Depends(get_gamification_service)
) -> Dict[str, Any]:
    """
    Get a page of the current leaderboard for a period.

    Args:
        period: all-time, monthly or weekly

    Returns:
        Ranked entries with display names and pagination metadata
    """
    try:
        return await service.get_leaderboard(period, page, limit)
    except LearnQuestError:
        raise
    except Exception as e:
        raise internal_error("retrieving leaderboard", e)
