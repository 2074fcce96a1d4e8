"""
Tadoku Backend — Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for business outcomes and faults.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and the ledger store; caught by global handlers.

Exception Hierarchy:
    TadokuError (base)
    ├── ValidationError               → 400 Bad Request
    ├── NotFoundError                 → 404 Not Found
    ├── NoReadingRecordError          → 404 Not Found (nothing to undo)
    ├── GenerationLimitExceededError  → 429 Too Many Requests (daily quota)
    ├── StoreUnavailableError         → 503 Service Unavailable
    ├── LLMServiceError               → 503 Service Unavailable
    └── CircuitBreakerOpenError       → 503 Service Unavailable

Business outcomes vs faults:
    NotFoundError, NoReadingRecordError and GenerationLimitExceededError are
    expected outcomes a user can trigger on purpose. They are never logged as
    errors. StoreUnavailableError is an infrastructure fault: the store
    adapter logs it with context before raising, and the client only sees a
    generic message.
"""

from typing import Any, Dict, Optional


class TadokuError(Exception):
    """
    Base exception for all Tadoku application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for faults)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TadokuError):
    """
    Raised when client input fails a business rule.

    When:    Empty prompt, negative word count, out-of-range `days`.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(TadokuError):
    """
    Raised when a requested resource does not exist for the calling user.

    When:    Story id unknown, or the story belongs to someone else. The two
             cases are deliberately indistinguishable to the caller.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NoReadingRecordError(TadokuError):
    """
    Raised when "undo last read" finds no reading event to remove.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        story_id: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if story_id is not None:
            ctx["story_id"] = story_id
        super().__init__(
            message="There is no reading record to undo for this story",
            context=ctx,
        )
        self.story_id = story_id


class GenerationLimitExceededError(TadokuError):
    """
    Raised by the quota gate when today's generations reached the daily limit.

    HTTP:    429 Too Many Requests
    Details: `limit` and `current_count` are safe to show to the user.
    """

    def __init__(
        self,
        limit: int,
        current_count: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["limit"] = limit
        ctx["current_count"] = current_count
        super().__init__(
            message=(
                f"Daily generation limit of {limit} reached. "
                "You can generate more stories tomorrow."
            ),
            context=ctx,
        )
        self.limit = limit
        self.current_count = current_count


class StoreUnavailableError(TadokuError):
    """
    Raised when any persistence operation fails.

    When:    Connection lost, statement timeout, constraint violation.
    HTTP:    503 Service Unavailable

    The message returned to the client is always generic. The failing
    operation and its ids live in `context` and are logged server-side only.
    No retry is attempted here.
    """

    def __init__(
        self,
        message: str = "The data store is temporarily unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(TadokuError):
    """
    Raised when the text generation service fails after all retries.

    When:    After tenacity retries are exhausted, or the model returned no text.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Story generation service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(TadokuError):
    """
    Raised when the generation client's circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED, else OPEN again
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Story generation is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time
