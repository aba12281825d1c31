"""Utility modules for JobFit."""

from jobfit.utils.errors import (
    AuthOrPermissionError,
    ContentUnavailableError,
    DailyQuotaExhaustedError,
    InferenceError,
    JobFitError,
    MalformedRequestError,
    MalformedResponseError,
    PersistenceError,
    RateLimitError,
)
from jobfit.utils.retry import ErrorClass, RetryAttempt, classify_error, execute_with_retry

__all__ = [
    "JobFitError",
    "ContentUnavailableError",
    "InferenceError",
    "RateLimitError",
    "DailyQuotaExhaustedError",
    "AuthOrPermissionError",
    "MalformedRequestError",
    "MalformedResponseError",
    "PersistenceError",
    "ErrorClass",
    "RetryAttempt",
    "classify_error",
    "execute_with_retry",
]
