"""
Core utilities and configuration for the legislative bulk import system.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Database connection and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and progress formatting helpers

Usage:
    from core.config import settings
    from core.database import get_session
    from core.exceptions import PaginationError, NetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Get database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "get_session",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "APIExtractionError",
    "CongressApiError",
    "PaginationError",
    "TransformationError",
    "DataFormatError",
    "LoadError",
    "DatabaseError",
    "UpsertError",
    "CheckpointError",
    "CheckpointNotInitializedError",
    "CheckpointAlreadyInitializedError",
    "PhaseAdvanceError",
    "PhaseDependencyError",
    "PhaseTimeoutError",
    "ErrorBudgetExceededError",
    "TimeBudgetExceededError",
    "InsufficientDataError",
    "ImportValidationError",
    "RetryableError",
    "NonRetryableError",
    "NetworkError",
    "RateLimitError",
    "RateLimitTimeoutError",
    "RetryExhaustedError",
    "AuthenticationError",
    "ResourceNotFoundError",
]
