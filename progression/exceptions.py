"""
Standardized exception hierarchy for the progression engine
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class ProgressionError(Exception):
    """
    Base exception for all progression engine errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise ProgressionError(
            message="Failed to credit points",
            user_id="user_123",
            operation="award_points",
            context={"amount": 50}
        )
    """

    http_status: int = 500
    log_level: int = logging.ERROR

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.log(self.log_level, f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for API responses"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (Caller Input)
# ==========================================

class ValidationError(ProgressionError):
    """
    Raised when caller input fails validation

    Examples:
    - Non-positive award amount
    - Unknown award category or leaderboard period
    - Reward defined with a zero cost

    Example:
        raise ValidationError(
            message="Amount must be positive",
            field="amount",
            value=-5,
            user_id="user_123"
        )
    """

    http_status = 422
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


# ==========================================
# Ledger Business Errors
# ==========================================

class AccountNotInitializedError(ProgressionError):
    """Operation on a user that has no progression account yet"""

    http_status = 409
    log_level = logging.WARNING

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            message=f"Progression account not initialized for user {user_id}",
            user_id=user_id,
            user_message="Your points account is not set up yet.",
            **kwargs
        )


class InsufficientPointsError(ProgressionError):
    """User cannot afford a reward"""

    http_status = 409
    log_level = logging.WARNING

    def __init__(self, user_id: str, required: int, available: int, **kwargs):
        self.required = required
        self.available = available
        super().__init__(
            message=f"Insufficient points: {available} available, {required} required",
            user_id=user_id,
            user_message=f"You need {required - available} more points to redeem this reward.",
            context={"required": required, "available": available},
            **kwargs
        )


class RedemptionLimitReachedError(ProgressionError):
    """User already redeemed a reward as many times as allowed"""

    http_status = 409
    log_level = logging.WARNING

    def __init__(self, user_id: str, reward_id: str, limit: int, **kwargs):
        self.reward_id = reward_id
        self.limit = limit
        super().__init__(
            message=f"Redemption limit of {limit} reached for reward {reward_id}",
            user_id=user_id,
            user_message="You have already redeemed this reward the maximum number of times.",
            context={"reward_id": reward_id, "limit": limit},
            **kwargs
        )


class RedemptionAlreadyUsedError(ProgressionError):
    """Redemption was already marked as used"""

    http_status = 409
    log_level = logging.WARNING

    def __init__(self, redemption_id: str, **kwargs):
        self.redemption_id = redemption_id
        super().__init__(
            message=f"Redemption {redemption_id} has already been used",
            user_message="This reward has already been used.",
            context={"redemption_id": redemption_id},
            **kwargs
        )


# ==========================================
# Not Found Errors
# ==========================================

class RecordNotFoundError(ProgressionError):
    """Requested record does not exist"""

    http_status = 404
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context={"record_type": record_type, "record_id": record_id},
            **kwargs
        )


class RewardNotFoundError(RecordNotFoundError):
    """Unknown or inactive reward id"""

    def __init__(self, reward_id: str, **kwargs):
        super().__init__(
            message=f"Reward {reward_id} not found",
            record_type="Reward",
            record_id=reward_id,
            **kwargs
        )


class RedemptionNotFoundError(RecordNotFoundError):
    """Unknown redemption id"""

    def __init__(self, redemption_id: str, **kwargs):
        super().__init__(
            message=f"Redemption {redemption_id} not found",
            record_type="Redemption",
            record_id=redemption_id,
            **kwargs
        )


# ==========================================
# Storage Errors
# ==========================================

class DatabaseError(ProgressionError):
    """
    Base class for storage-related errors
    """
    pass


class ConnectionError(DatabaseError):
    """Database connection failed"""

    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="We're having trouble connecting to the database. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """Database query execution failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        super().__init__(
            message=message,
            user_message="We encountered an issue saving your progress. Please try again.",
            context={"query": query},
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(ProgressionError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The system is not properly configured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> ProgressionError:
    """
    Wrap storage driver exceptions into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate ProgressionError subclass

    Example:
        try:
            await cur.execute(query)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="award_points",
                user_id="user_123",
            )
    """
    # Import here to avoid loading the driver for the in-memory backend
    import psycopg

    if isinstance(error, ProgressionError):
        return error

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Database connection failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    elif isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Database query failed: {str(error)}",
            user_id=user_id,
            operation=operation,
            cause=error
        )

    # Generic fallback
    return ProgressionError(
        message=f"{operation} failed: {str(error)}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
