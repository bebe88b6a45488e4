"""Unit tests for custom exception hierarchy"""
import logging
import pytest
from datetime import datetime

import psycopg

from progression.exceptions import (
    AccountNotInitializedError,
    ConfigurationError,
    ConnectionError,
    DatabaseError,
    InsufficientPointsError,
    ProgressionError,
    QueryError,
    RecordNotFoundError,
    RedemptionAlreadyUsedError,
    RedemptionLimitReachedError,
    RedemptionNotFoundError,
    RewardNotFoundError,
    ValidationError,
    wrap_external_exception,
)


class TestProgressionError:
    """Test base exception class"""

    def test_basic_exception(self):
        """Test basic exception creation"""
        error = ProgressionError("Test error")
        assert error.message == "Test error"
        assert error.user_message == "An error occurred. Please try again."
        assert error.request_id is not None
        assert isinstance(error.timestamp, datetime)
        assert error.http_status == 500

    def test_exception_with_context(self):
        """Test exception with full context"""
        error = ProgressionError(
            message="Credit failed",
            user_id="123456",
            operation="award_points",
            context={"amount": 50},
            user_message="Could not add your points"
        )
        assert error.user_id == "123456"
        assert error.operation == "award_points"
        assert error.context["amount"] == 50
        assert error.user_message == "Could not add your points"

    def test_to_dict(self):
        error = ProgressionError("Serialization test")
        data = error.to_dict()

        assert data["error"] == "ProgressionError"
        assert data["message"] == "Serialization test"
        assert data["request_id"] == error.request_id
        assert "timestamp" in data

    def test_logs_on_creation(self, caplog):
        with caplog.at_level(logging.WARNING, logger="progression.exceptions"):
            AccountNotInitializedError("42")

        assert any("AccountNotInitializedError" in record.message for record in caplog.records)
        assert caplog.records[-1].levelno == logging.WARNING


class TestBusinessErrors:
    """Ledger and reward errors carry their HTTP status"""

    def test_validation_error(self):
        error = ValidationError("Amount must be positive", field="amount", value=-5)
        assert error.http_status == 422
        assert error.field == "amount"
        assert error.context == {"field": "amount", "value": -5}
        assert "amount" in error.user_message

    def test_account_not_initialized(self):
        error = AccountNotInitializedError("user_1")
        assert error.http_status == 409
        assert error.user_id == "user_1"

    def test_insufficient_points(self):
        error = InsufficientPointsError("user_1", required=500, available=200)
        assert error.http_status == 409
        assert error.required == 500
        assert error.available == 200
        assert "300 more points" in error.user_message

    def test_redemption_errors(self):
        assert RedemptionLimitReachedError("u", "r", 1).http_status == 409
        assert RedemptionAlreadyUsedError("red_1").redemption_id == "red_1"

    def test_not_found_hierarchy(self):
        reward_error = RewardNotFoundError("reward_1")
        redemption_error = RedemptionNotFoundError("red_1")

        assert isinstance(reward_error, RecordNotFoundError)
        assert isinstance(redemption_error, RecordNotFoundError)
        assert reward_error.http_status == 404
        assert reward_error.record_id == "reward_1"
        assert redemption_error.record_type == "Redemption"

    def test_configuration_error(self):
        error = ConfigurationError("Bad backend", config_key="STORE_BACKEND")
        assert error.config_key == "STORE_BACKEND"
        assert error.http_status == 500


class TestWrapExternalException:
    """Storage driver errors are mapped into the hierarchy"""

    def test_operational_error_becomes_connection_error(self):
        wrapped = wrap_external_exception(
            psycopg.OperationalError("connection refused"),
            operation="get_account",
            user_id="u1",
        )
        assert isinstance(wrapped, ConnectionError)
        assert isinstance(wrapped, DatabaseError)
        assert wrapped.user_id == "u1"

    def test_query_error(self):
        wrapped = wrap_external_exception(psycopg.errors.UniqueViolation("duplicate key"), operation="save_reward")
        assert isinstance(wrapped, QueryError)
        assert wrapped.operation == "save_reward"

    def test_progression_error_passes_through(self):
        original = RewardNotFoundError("r1")
        assert wrap_external_exception(original, operation="redeem") is original

    def test_generic_error(self):
        cause = RuntimeError("boom")
        wrapped = wrap_external_exception(cause, operation="reset_period")
        assert type(wrapped) is ProgressionError
        assert wrapped.cause is cause
        assert "reset_period failed" in wrapped.message


def test_business_errors_are_exceptions():
    with pytest.raises(ProgressionError):
        raise InsufficientPointsError("u", required=10, available=0)
