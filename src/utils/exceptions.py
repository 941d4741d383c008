"""
Custom Exception Classes for ME Tracker

Provides hierarchy of specific exceptions for different failure scenarios,
so the scheduler, pipeline and command handler can each decide precisely
what to swallow, what to log and what to surface to the operator.

Exception Hierarchy:
├── MeTrackerError (Base)
│   ├── ConfigurationError
│   ├── APIError
│   │   ├── RateLimitError
│   │   └── TransientFetchError
│   │       └── InvalidResponseError
│   ├── DataValidationError
│   ├── PersistenceError
│   └── NotificationError
"""

from typing import Optional, Dict, Any


class MeTrackerError(Exception):
    """
    Base exception for all tracker errors.
    All other exceptions inherit from this.
    Enables catching all tracker errors with: except MeTrackerError
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize tracker error with structured information.

        Args:
            message: Human-readable error message
            error_code: Error code for classification (e.g., 'HTTP_429')
            details: Additional context dict
            original_error: Original exception that caused this (for error chaining)
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        error_str = f"{self.__class__.__name__}: {self.message}"
        if self.error_code:
            error_str += f" (Code: {self.error_code})"
        if self.details:
            error_str += f" | Details: {self.details}"
        return error_str


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigurationError(MeTrackerError):
    """
    Raised when configuration is invalid or incomplete.
    Examples: Missing Discord token, missing channel id, missing owner id
    Action: Fix configuration and restart the tracker
    """
    pass


# ============================================================================
# API & NETWORK ERRORS
# ============================================================================

class APIError(MeTrackerError):
    """
    Base exception for marketplace / rarity service API errors.
    Includes HTTP status code and response data for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
        **kwargs
    ):
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(message, **kwargs)


class RateLimitError(APIError):
    """
    Raised when API rate limit is exceeded (HTTP 429).
    Never converted into an empty result: the scheduler must see it to back off.
    Action: Pause all polling and widen the tick interval
    """

    def __init__(self, message: str, retry_after: Optional[str] = None, **kwargs):
        self.retry_after = retry_after
        kwargs.setdefault('status_code', 429)
        kwargs.setdefault('error_code', 'HTTP_429')
        super().__init__(message, **kwargs)


class TransientFetchError(APIError):
    """
    Raised for HTTP, network or timeout failures other than 429.
    Action: Skip this task for this tick, no global backoff
    """
    pass


class InvalidResponseError(TransientFetchError):
    """
    Raised when API response cannot be parsed or has an unexpected shape.
    Indicates potential upstream API changes.
    Action: Log response and skip
    """
    pass


# ============================================================================
# DATA & VALIDATION ERRORS
# ============================================================================

class DataValidationError(MeTrackerError):
    """
    Raised when operator input fails validation.
    Examples: Unparseable collection URL, non-numeric max price, unknown rarity tier
    """
    pass


class PersistenceError(MeTrackerError):
    """
    Raised when the track list cannot be read or written.
    Commands report it to the operator; the scheduler idles.
    """

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        self.path = path
        super().__init__(message, **kwargs)


class NotificationError(MeTrackerError):
    """
    Raised when the chat platform rejects or fails an alert delivery.
    Delivery is best effort: logged, never requeued.
    """
    pass
