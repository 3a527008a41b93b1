"""
LearnQuest Gamification Backend

The points-and-leaderboard engine of the LearnQuest learning platform:
1. Points and levels earned from learning activity
2. Daily activity streaks
3. Achievements with progress tracking and rarity tiers
4. All-time, monthly and weekly leaderboards
"""
