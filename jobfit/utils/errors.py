"""Custom exception classes for JobFit."""

from typing import Optional


class JobFitError(Exception):
    """Base exception for all application errors."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class ContentUnavailableError(JobFitError):
    """Job content could not be fetched or was too short to analyze."""

    default_message = (
        "We couldn't read that job posting. The site might be blocking scrapers. "
        "Please paste the full job description instead."
    )


class InferenceError(JobFitError):
    """Errors from the inference client."""

    default_message = "Analysis failed. Please try again."


class RateLimitError(InferenceError):
    """Short-window rate limit on the model provider."""

    default_message = "High traffic right now. Please try again shortly."

    def __init__(self, message: Optional[str] = None, status_code: int = 429) -> None:
        self.status_code = status_code
        super().__init__(message)


class DailyQuotaExhaustedError(InferenceError):
    """Hard daily ceiling on the model provider."""

    default_message = "The daily AI quota has been used up. Please come back tomorrow."


class AuthOrPermissionError(InferenceError):
    """Invalid or restricted API credential."""

    default_message = "Permission denied. Please check your API key and its restrictions."

    def __init__(self, message: Optional[str] = None, status_code: int = 403) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedRequestError(InferenceError):
    """The provider rejected the request as invalid."""

    default_message = "The analysis request was rejected. Try shortening the job description."

    def __init__(self, message: Optional[str] = None, status_code: int = 400) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedResponseError(InferenceError):
    """The model output failed schema validation."""

    default_message = "The AI returned an unreadable analysis. Please try again."


class PersistenceError(JobFitError):
    """The durable store rejected a read or write."""

    default_message = "Failed to save changes."

    def __init__(self, message: Optional[str] = None) -> None:
        # Backend detail stays in the exception text, users see the fixed message
        super().__init__(message)
        self.user_message = self.default_message


_DAILY_QUOTA_MARKERS = ("perday", "per day", "daily quota", "daily limit")
_RATE_LIMIT_MARKERS = (
    "429",
    "quota",
    "rate limit",
    "rate_limit",
    "too many requests",
    "high traffic",
    "resource_exhausted",
    "overloaded",
)
_AUTH_MARKERS = ("401", "403", "permission", "unauthorized", "forbidden", "api key")
_BAD_REQUEST_MARKERS = ("400", "invalid argument", "bad request")
_NOT_FOUND_MARKERS = ("404", "model not found", "not_found")


def _matches(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def is_daily_quota_error(error: BaseException) -> bool:
    """Return True when the error signals the provider's daily ceiling."""
    if isinstance(error, JobFitError):
        return isinstance(error, DailyQuotaExhaustedError)
    return _matches(str(error).lower(), _DAILY_QUOTA_MARKERS)


def is_rate_limit_error(error: BaseException) -> bool:
    """Return True for short-window rate limiting or "high traffic" errors."""
    if isinstance(error, RateLimitError):
        return True
    if isinstance(error, JobFitError):
        return False
    return _matches(str(error).lower(), _RATE_LIMIT_MARKERS)


def to_user_error(error: BaseException) -> JobFitError:
    """
    Translate any exception into a typed error with a user-facing message.

    Errors that are already typed pass through unchanged. Untyped errors are
    matched on their text, the way provider SDK messages are reported.
    """
    if isinstance(error, JobFitError):
        return error

    text = str(error).lower()
    if _matches(text, _DAILY_QUOTA_MARKERS):
        return DailyQuotaExhaustedError()
    if _matches(text, _RATE_LIMIT_MARKERS):
        return RateLimitError()
    if _matches(text, _AUTH_MARKERS):
        return AuthOrPermissionError()
    if _matches(text, _NOT_FOUND_MARKERS):
        return MalformedRequestError("Model not found. Try a different key or region.", 404)
    if _matches(text, _BAD_REQUEST_MARKERS):
        return MalformedRequestError()
    if "network" in text or "fetch" in text or "connection" in text:
        return InferenceError("Network error. Please check your connection and try again.")
    return InferenceError()


def retry_message(attempt: int, max_attempts: int, delay_seconds: float) -> str:
    """Human-readable progress line shown while waiting to retry."""
    return (
        f"High traffic. Retrying in {delay_seconds:g}s "
        f"(attempt {attempt} of {max_attempts})..."
    )
