"""
Users

Display fields for learners shown on leaderboards. Accounts are managed
by the platform's user service.
"""

from backend.users.models import User

__all__ = ['User']
