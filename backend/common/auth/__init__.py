"""
Authentication helpers

FastAPI dependencies resolving the calling user from the bearer token.
"""

from .dependencies import get_current_user_id, require_admin

# Public API
__all__ = [
    'get_current_user_id',
    'require_admin',
]
