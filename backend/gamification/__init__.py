"""
Gamification Package

This package provides the points-and-leaderboard engine of the learning platform:
- Points and levels
- Daily streaks
- Achievements with rarity tiers
- All-time, monthly and weekly leaderboards

Other backend modules report learning activity through
``GamificationService.record_activity``.
"""

from backend.gamification.service import (
    GamificationService,
    get_gamification_service,
    initialize_gamification_service,
    normalize_activity_type,
)

__all__ = [
    'GamificationService',
    'get_gamification_service',
    'initialize_gamification_service',
    'normalize_activity_type',
]
