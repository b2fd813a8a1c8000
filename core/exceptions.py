"""
Custom exceptions for the bulk import pipeline with structured error context.

This module provides the exception hierarchy used throughout the import
pipeline. Each exception includes context information for debugging and
for the `last_error` field persisted in the checkpoint.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── APIExtractionError
    │   │   └── CongressApiError
    │   └── PaginationError
    ├── TransformationError
    │   └── DataFormatError
    ├── LoadError
    │   ├── DatabaseError
    │   └── UpsertError
    ├── CheckpointError
    │   ├── CheckpointNotInitializedError
    │   ├── CheckpointAlreadyInitializedError
    │   └── PhaseAdvanceError
    ├── ImportControlError
    │   ├── PhaseDependencyError
    │   ├── PhaseTimeoutError
    │   ├── ErrorBudgetExceededError
    │   └── TimeBudgetExceededError
    ├── ImportValidationError / InsufficientDataError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class ETLException(Exception):
    """
    Base exception for all import-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (endpoint, phase, offset, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        context = {k: v for k, v in self.context.items() if k != "error_timestamp"}
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        super().__init__(message, context, original_exception)
        self.max_retries = max_retries
        self.retry_delay = retry_delay


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Invalid data format
    - Resource not found (HTTP 404)
    - Budget exhaustion and contract violations
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when API data extraction fails.

    Context should include:
        - endpoint: The API endpoint that failed
        - status_code: HTTP status code (if applicable)
        - response_body: Response body (truncated if large)
    """
    pass


class CongressApiError(APIExtractionError):
    """Unexpected HTTP status from Congress.gov (4xx other than 401/403/404/429)."""

    def __init__(
        self,
        message: str,
        status_code: int,
        endpoint: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        context = dict(context or {})
        context.setdefault("status_code", status_code)
        context.setdefault("endpoint", endpoint)
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        self.endpoint = endpoint


class NetworkError(RetryableError, APIExtractionError):
    """Network-related errors (timeouts, transport failures, 5xx) that should be retried."""
    pass


class RateLimitError(RetryableError, APIExtractionError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds to wait before retry
        if retry_after:
            self.context["retry_after"] = retry_after


class RateLimitTimeoutError(RetryableError, ExtractionError):
    """The local token bucket could not admit a request within the acquire timeout."""
    pass


class AuthenticationError(NonRetryableError, APIExtractionError):
    """Authentication failures (HTTP 401, 403) that should not be retried."""
    pass


class ResourceNotFoundError(NonRetryableError, ExtractionError):
    """Resource not found (HTTP 404). At a pagination boundary this means end of data."""
    pass


class RetryExhaustedError(NonRetryableError, ExtractionError):
    """
    All retry attempts failed for a single operation.

    Attributes:
        attempts: Number of attempts made
        last_error: The final failure
    """

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        context = dict(context or {})
        context["attempts"] = attempts
        super().__init__(message, context, last_error)
        self.attempts = attempts
        self.last_error = last_error


class PaginationError(NonRetryableError, ExtractionError):
    """
    Terminal pagination failure: a page kept failing at the same offset.

    Context should include:
        - endpoint: Paginated endpoint
        - offset: The offset that could not be fetched
        - consecutive_errors: Number of failed attempts at that offset
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class DataFormatError(NonRetryableError, TransformationError):
    """
    A provider record is malformed and cannot be mapped.

    Context should include:
        - record_id: Identifier of the offending record (if known)
        - field_name: Missing or invalid field
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class DatabaseError(LoadError):
    """
    Exception raised when database operations fail.

    Context should include:
        - operation: Type of database operation (SELECT, UPSERT, UPDATE)
        - table_name: Name of the table
    """
    pass


class UpsertError(LoadError):
    """
    Exception raised when a single upsert fails.

    Context should include:
        - record_id: ID of the record being upserted
        - table_name: Target table
    """
    pass


# ============================================================================
# Checkpoint Errors
# ============================================================================

class CheckpointError(NonRetryableError):
    """
    Exception raised when checkpoint management fails.

    Context should include:
        - phase: Current phase (if any)
        - operation: Operation that failed (create, update, advance)
    """
    pass


class CheckpointNotInitializedError(CheckpointError):
    """A mutating checkpoint call was made before create() or load()."""
    pass


class CheckpointAlreadyInitializedError(CheckpointError):
    """create() was called while a checkpoint state is already held."""
    pass


class PhaseAdvanceError(CheckpointError):
    """Attempt to advance past the terminal phase."""
    pass


# ============================================================================
# Run Control Errors
# ============================================================================

class ImportControlError(NonRetryableError):
    """Base exception for structural failures that abort the run."""
    pass


class PhaseDependencyError(ImportControlError):
    """A phase was entered before all of its dependencies completed."""
    pass


class PhaseTimeoutError(ImportControlError):
    """A phase exceeded its wall-clock timeout."""
    pass


class ErrorBudgetExceededError(ImportControlError):
    """Total recorded errors across the run exceeded the configured ceiling."""
    pass


class TimeBudgetExceededError(ImportControlError):
    """The run exceeded its wall-clock duration ceiling."""
    pass


# ============================================================================
# Data Validation Errors
# ============================================================================

class InsufficientDataError(NonRetryableError):
    """A phase finished with fewer records than the configured minimum."""
    pass


class ImportValidationError(NonRetryableError):
    """Post-import validation found critical errors."""
    pass
