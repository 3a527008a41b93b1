"""
Tests for the error hierarchy and API error bodies.
"""

from sqlalchemy.exc import OperationalError

from backend.common.error_handling import (
    DatabaseQueryError,
    InvalidPeriodError,
    LearnQuestError,
    ValidationError,
    error_response,
)


def test_status_follows_error_code():
    assert ValidationError("bad page").http_status == 400
    assert InvalidPeriodError("daily", ["all-time", "monthly", "weekly"]).http_status == 400
    assert LearnQuestError("boom").http_status == 500


def test_invalid_period_is_a_validation_error():
    error = InvalidPeriodError("daily", ["all-time", "monthly", "weekly"])

    assert isinstance(error, ValidationError)
    assert error.code.value == "invalid_period"


def test_error_response_body():
    body = error_response(ValidationError("Limit must be between 1 and 100", details={"limit": 500}))

    assert body == {
        "status": "error",
        "code": "validation_error",
        "message": "Limit must be between 1 and 100",
        "details": {"limit": 500},
    }


def test_database_cause_is_not_exposed():
    cause = OperationalError("UPDATE user_points", {}, Exception("disk I/O error"))
    error = DatabaseQueryError("increment_points", cause=cause)

    body = error_response(error)

    assert error.http_status == 500
    assert body["code"] == "database_query_error"
    assert body["details"] == {"query_type": "increment_points"}
    assert "disk I/O error" in error.to_error_info().details["cause"]
