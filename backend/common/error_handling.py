"""
Error Handling for LearnQuest

All errors the gamification engine raises deliberately derive from
``LearnQuestError``. Each carries an ``ErrorCode`` that decides the HTTP
status when it reaches the API, and ``error_response`` renders the body
clients receive:

    {"status": "error", "code": "invalid_period", "message": "...", "details": {...}}

Storage failures are wrapped in ``DatabaseQueryError`` with the original
exception kept as ``cause``.
"""

import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """How loudly an error is logged"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Machine readable error codes returned to API clients"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"
    CONFIGURATION_ERROR = "configuration_error"

    # Gamification
    INVALID_PERIOD = "invalid_period"
    EVENT_CYCLE = "event_cycle"
    RANK_LOCK_TIMEOUT = "rank_lock_timeout"

    # Storage
    DATABASE_QUERY_ERROR = "database_query_error"


HTTP_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_PERIOD: 400,
    ErrorCode.RANK_LOCK_TIMEOUT: 503,
}

LOG_LEVEL_BY_SEVERITY = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorInfo(BaseModel):
    """Serializable snapshot of an error"""

    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    stack_trace: Optional[List[str]] = None


class LearnQuestError(Exception):
    """Base exception class for all LearnQuest errors"""

    code = ErrorCode.UNKNOWN_ERROR
    severity = ErrorSeverity.ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[ErrorCode] = None,
        severity: Optional[ErrorSeverity] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        if code is not None:
            self.code = code
        if severity is not None:
            self.severity = severity
        self.timestamp = datetime.now()

    @property
    def http_status(self) -> int:
        """Status code used when this error reaches the API layer"""
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = f"{type(self.cause).__name__}: {self.cause}"

        return ErrorInfo(
            code=self.code,
            message=self.message,
            severity=self.severity,
            timestamp=self.timestamp,
            details=details,
            context=self.context,
            stack_trace=traceback.format_exc().splitlines() if include_stack_trace else None
        )

    def __str__(self) -> str:
        text = f"{self.code.value}: {self.message}"
        if self.details:
            text += f" (details: {self.details})"
        return text


class ValidationError(LearnQuestError):
    """Input outside what an operation accepts"""
    code = ErrorCode.VALIDATION_ERROR
    severity = ErrorSeverity.WARNING


class InvalidPeriodError(ValidationError):
    """Leaderboard period token that is not all-time, monthly or weekly"""
    code = ErrorCode.INVALID_PERIOD

    def __init__(self, period: str, allowed: List[str]):
        super().__init__(
            f"Invalid leaderboard period: {period}",
            details={"period": period, "allowed": allowed}
        )


class ConfigurationError(LearnQuestError):
    """Settings that validate individually but cannot be used together"""
    code = ErrorCode.CONFIGURATION_ERROR
    severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, details={"config_key": config_key} if config_key else None)


class EventCycleError(LearnQuestError):
    """An internal event re-published while its own handlers are running"""
    code = ErrorCode.EVENT_CYCLE
    severity = ErrorSeverity.CRITICAL

    def __init__(self, event_type: str, chain: List[str]):
        super().__init__(
            f"Event {event_type} published while already being handled",
            details={"event_type": event_type, "chain": chain}
        )


class RankLockTimeoutError(LearnQuestError):
    """A leaderboard rank lock could not be acquired in time"""
    code = ErrorCode.RANK_LOCK_TIMEOUT

    def __init__(self, lock_name: str, blocking_timeout: float):
        super().__init__(
            f"Timed out waiting for leaderboard lock {lock_name}",
            details={"lock": lock_name, "blocking_timeout": blocking_timeout}
        )


class DatabaseError(LearnQuestError):
    """Base class for database-related errors"""


class DatabaseQueryError(DatabaseError):
    """A repository operation failed in the database"""
    code = ErrorCode.DATABASE_QUERY_ERROR

    def __init__(self, query_type: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Database query of type {query_type} failed",
            details={"query_type": query_type},
            cause=cause
        )


def error_response(error: LearnQuestError, include_details: bool = True) -> Dict[str, Any]:
    """
    Build the API error body for an error.

    The ``cause`` of storage errors is left out; it is logged instead.
    """
    info = error.to_error_info()
    response: Dict[str, Any] = {
        "status": "error",
        "code": info.code,
        "message": info.message,
    }

    details = {key: value for key, value in info.details.items() if key != "cause"}
    if include_details and details:
        response["details"] = details

    return response


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    log: Optional[logging.Logger] = None,
    include_stack_trace: bool = True
) -> None:
    """
    Log an error at the level matching its severity.

    Args:
        error: The error to log; other exceptions are logged as unknown errors
        context: Extra key/value pairs such as the request path
        log: Logger to write to (defaults to this module's logger)
        include_stack_trace: Whether to attach the active traceback
    """
    if not isinstance(error, LearnQuestError):
        error = LearnQuestError(str(error) or "An unexpected error occurred", cause=error)
    if context:
        error.context.update(context)

    message = f"ERROR [{error.code.value}]: {error.message}"
    if error.context:
        message += " (context: " + ", ".join(f"{k}={v}" for k, v in error.context.items()) + ")"
    if error.cause is not None:
        message += f" caused by {type(error.cause).__name__}: {error.cause}"

    (log or logger).log(LOG_LEVEL_BY_SEVERITY[error.severity], message, exc_info=include_stack_trace)
