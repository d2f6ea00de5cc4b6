"""
Standardized exception hierarchy for the track-anything sync core
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class TrackAnythingError(Exception):
    """
    Base exception for all sync core errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise TrackAnythingError(
            message="Failed to save log",
            user_id="5b1c...",
            operation="create_log",
            context={"event_id": "e1"}
        )
    """

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
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationError(TrackAnythingError):
    """
    Raised when user input fails validation

    Examples:
    - Scale event without scale_max
    - Log value outside the event's scale
    - Malformed color string
    """

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
# Backend Errors
# ==========================================

class BackendError(TrackAnythingError):
    """
    The remote data source rejected a request

    Carries the HTTP status and the PostgREST error code when available.
    """

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        self.table = table
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(
            message=message,
            user_message=user_message or "We couldn't save your changes. Please try again.",
            context={"table": table, "status_code": status_code, "error_code": error_code},
            **kwargs
        )


class BackendUnavailableError(BackendError):
    """Backend could not be reached (timeout, connection refused, DNS)"""

    def __init__(self, message: str = "Backend unreachable", **kwargs):
        super().__init__(
            message=message,
            user_message="You appear to be offline. Please check your connection.",
            **kwargs
        )


class RecordNotFoundError(BackendError):
    """Requested row does not exist (or is not visible to the current user)"""

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_id = record_id
        kwargs.setdefault("status_code", 404)
        super().__init__(
            message=message,
            user_message="That item no longer exists.",
            **kwargs
        )


# ==========================================
# Authentication
# ==========================================

class AuthenticationError(TrackAnythingError):
    """No signed-in user for an operation that needs one"""

    def __init__(
        self,
        message: str = "Not signed in",
        **kwargs
    ):
        super().__init__(
            message=message,
            user_message="Please sign in again.",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(TrackAnythingError):
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
            user_message="The app is not properly configured.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helper Functions
# ==========================================

def wrap_external_exception(
    error: Exception,
    operation: str,
    table: Optional[str] = None,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> TrackAnythingError:
    """
    Wrap external exceptions (httpx) into our exception hierarchy

    Args:
        error: Original exception
        operation: What operation was being performed
        table: Backend table involved, if any
        user_id: User ID if applicable
        context: Additional context

    Returns:
        Appropriate TrackAnythingError subclass

    Example:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise wrap_external_exception(e, operation="select", table="logs")
    """
    import httpx

    if isinstance(error, TrackAnythingError):
        return error

    # HTTP errors
    if isinstance(error, httpx.HTTPStatusError):
        error_code = None
        detail = error.response.text
        try:
            body = error.response.json()
            if isinstance(body, dict):
                error_code = body.get("code")
                detail = body.get("message") or detail
        except ValueError:
            pass
        return BackendError(
            message=f"{operation} on {table or 'backend'} failed with {error.response.status_code}: {detail}",
            table=table,
            status_code=error.response.status_code,
            error_code=error_code,
            user_id=user_id,
            operation=operation,
            cause=error
        )
    elif isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return BackendUnavailableError(
            message=f"{operation} on {table or 'backend'} could not reach the server: {error}",
            table=table,
            user_id=user_id,
            operation=operation,
            cause=error
        )

    # Generic fallback
    return TrackAnythingError(
        message=f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
