"""Error classification utilities for completion-service failures."""

import asyncio
from enum import Enum
from typing import Literal

from pydantic_ai.exceptions import UnexpectedModelBehavior


class AIErrorKind(Enum):
    """Categories of errors that can occur when calling the completion service."""

    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN = "UNKNOWN"


RETRYABLE_KINDS: frozenset[AIErrorKind] = frozenset(
    {
        AIErrorKind.TIMEOUT,
        AIErrorKind.RATE_LIMIT,
        AIErrorKind.SERVICE_UNAVAILABLE,
        AIErrorKind.UNKNOWN,
    }
)


class AIError(Exception):
    """A completion-service failure classified into the fixed taxonomy."""

    def __init__(self, kind: AIErrorKind, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = kind in RETRYABLE_KINDS if retryable is None else retryable

    def __repr__(self) -> str:
        return f"AIError(kind={self.kind.value}, retryable={self.retryable}, message={str(self)!r})"


_PatternType = Literal["timeout", "rate_limit", "quota", "credential", "unavailable", "invalid_request"]

_ERROR_PATTERNS: dict[_PatternType, dict[str, list[str] | set[int]]] = {
    "timeout": {
        "phrases": ["timeout", "timed out"],
        "status_codes": {408},
    },
    "rate_limit": {
        "phrases": ["rate limit", "rate_limit", "too many requests", "throttled", "429"],
        "status_codes": {429},
    },
    "quota": {
        "phrases": ["quota", "exceeded", "limit reached", "insufficient credits", "out of credits"],
        "status_codes": {402},
    },
    "credential": {
        "phrases": ["api key", "authentication", "unauthorized", "invalid token", "401", "403"],
        "status_codes": {401, 403},
    },
    "unavailable": {
        "phrases": [
            "503",
            "502",
            "504",
            "service unavailable",
            "temporarily unavailable",
            "unavailable",
            "connection",
            "network",
            "unreachable",
        ],
        "status_codes": {500, 502, 503, 504},
    },
    "invalid_request": {
        "phrases": ["400", "bad request", "invalid"],
        "status_codes": {400, 404, 422},
    },
}

_USER_MESSAGES: dict[AIErrorKind, str] = {
    AIErrorKind.TIMEOUT: "The request took too long. Please try again.",
    AIErrorKind.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    AIErrorKind.QUOTA_EXCEEDED: "AI service quota exceeded. Please try again later or contact support.",
    AIErrorKind.INVALID_CREDENTIAL: "AI service configuration error. Please contact support.",
    AIErrorKind.SERVICE_UNAVAILABLE: "AI service is temporarily unavailable. Please try again in a few moments.",
    AIErrorKind.INVALID_REQUEST: "Invalid request. Please try rephrasing your input.",
    AIErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}

_CLASSIFIED_MESSAGES: dict[AIErrorKind, str] = {
    AIErrorKind.TIMEOUT: "AI request timed out. Please try again.",
    AIErrorKind.RATE_LIMIT: "AI service rate limit reached. Please wait a moment and try again.",
    AIErrorKind.QUOTA_EXCEEDED: "AI service quota exceeded. Please try again later.",
    AIErrorKind.INVALID_CREDENTIAL: "AI service authentication failed. Please contact support.",
    AIErrorKind.SERVICE_UNAVAILABLE: "AI service is temporarily unavailable. Please try again.",
    AIErrorKind.INVALID_REQUEST: "Invalid AI request. Please try rephrasing your input.",
    AIErrorKind.UNKNOWN: "An unexpected error occurred. Please try again.",
}


def _extract_status_code(exception: BaseException) -> int | None:
    """Return the HTTP status code carried by the exception, if any.

    Understands `pydantic_ai.exceptions.ModelHTTPError` (``status_code``) and
    `httpx.HTTPStatusError` (``response.status_code``).
    """
    status_code = getattr(exception, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    response = getattr(exception, "response", None)
    status_code = getattr(response, "status_code", None)
    return status_code if isinstance(status_code, int) else None


def _match_error_pattern(*, error_str: str, status_code: int | None, pattern_type: _PatternType) -> bool:
    """Return True if the status code or message matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    if status_code is not None:
        return status_code in patterns["status_codes"]
    return any(phrase in error_str for phrase in patterns["phrases"])


def _build(kind: AIErrorKind) -> AIError:
    return AIError(kind, _CLASSIFIED_MESSAGES[kind])


def classify_error(exception: BaseException) -> AIError:  # noqa: PLR0911
    """Classify a raw completion-service failure into an AIError.

    Status codes are checked before message phrases, and categories are
    checked in a fixed order so that e.g. "rate limit exceeded" is a
    RATE_LIMIT rather than a QUOTA_EXCEEDED.

    Args:
        exception: The exception raised by the operation

    Returns:
        AIError with kind and retryable flag set
    """
    if isinstance(exception, AIError):
        return exception

    if isinstance(exception, asyncio.TimeoutError | TimeoutError):
        return _build(AIErrorKind.TIMEOUT)

    # Malformed model output ("Exceeded maximum retries ..."), not a quota problem.
    if isinstance(exception, UnexpectedModelBehavior):
        return _build(AIErrorKind.UNKNOWN)

    error_str = str(exception).lower()
    status_code = _extract_status_code(exception)

    ordered: list[tuple[_PatternType, AIErrorKind]] = [
        ("timeout", AIErrorKind.TIMEOUT),
        ("rate_limit", AIErrorKind.RATE_LIMIT),
        ("quota", AIErrorKind.QUOTA_EXCEEDED),
        ("credential", AIErrorKind.INVALID_CREDENTIAL),
        ("unavailable", AIErrorKind.SERVICE_UNAVAILABLE),
        ("invalid_request", AIErrorKind.INVALID_REQUEST),
    ]

    # Status codes take precedence over free text.
    if status_code is not None:
        for pattern_type, kind in ordered:
            if _match_error_pattern(error_str=error_str, status_code=status_code, pattern_type=pattern_type):
                return _build(kind)

    if isinstance(exception, ConnectionError):
        return _build(AIErrorKind.SERVICE_UNAVAILABLE)

    for pattern_type, kind in ordered:
        if _match_error_pattern(error_str=error_str, status_code=None, pattern_type=pattern_type):
            return _build(kind)

    return _build(AIErrorKind.UNKNOWN)


def user_friendly_message(error: AIError) -> str:
    """Get the user-facing message for a classified error."""
    return _USER_MESSAGES.get(error.kind, _USER_MESSAGES[AIErrorKind.UNKNOWN])
