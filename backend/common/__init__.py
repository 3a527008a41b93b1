"""
Common Components for LearnQuest

This package contains infrastructure shared across the backend:
1. Configuration - Environment, .env and file based settings
2. Logging - Centralized logging configuration
3. Error Handling - Exception hierarchy and API error responses
4. Database - Declarative base and async session management
5. Clock - Injectable wall-clock for date-dependent rules
"""

# Initialize logging
from backend.common.logger import app_logger

from backend.common.error_handling import (
    LearnQuestError, ValidationError, InvalidPeriodError, ConfigurationError,
    error_response, log_error
)

from backend.common.clock import Clock, SystemClock, FixedClock

__all__ = [
    'app_logger',
    'LearnQuestError',
    'ValidationError',
    'InvalidPeriodError',
    'ConfigurationError',
    'error_response',
    'log_error',
    'Clock',
    'SystemClock',
    'FixedClock',
]
