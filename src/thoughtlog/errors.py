"""
Error taxonomy for the analysis and persistence pipeline.

Each exception carries an ErrorKind tag. Retry decisions are made on the
kind, never on message text:

  transport / provider:  NetworkError, RateLimitError, AuthError,
                         ParseError, ServerError
  persistence:           ValidationError, NotFoundError

Network, rate-limit and server errors are transient (worth retrying).
Auth and parse errors are terminal. Anything that is not a ThoughtLogError
has no kind and is not retried.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    PARSE = "parse"
    SERVER = "server"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"


TRANSIENT_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.RATE_LIMIT, ErrorKind.SERVER})


class ThoughtLogError(Exception):
    """Base class for every classified pipeline error."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(ThoughtLogError):
    """Connectivity failure or timeout talking to the provider."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.original = original


class RateLimitError(ThoughtLogError):
    """Provider asked us to slow down. retry_after_seconds comes from the provider when known."""

    kind = ErrorKind.RATE_LIMIT

    def __init__(self, message: str, retry_after_seconds: Optional[float] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class AuthError(ThoughtLogError):
    kind = ErrorKind.AUTH

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(ThoughtLogError):
    """The provider answered, but not with something we can use."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str, response: Optional[str] = None):
        super().__init__(message)
        self.response = response


class ServerError(ThoughtLogError):
    kind = ErrorKind.SERVER

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ValidationError(ThoughtLogError):
    """Caller supplied data that violates a persistence or input rule."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ThoughtLogError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


def error_kind(error: BaseException) -> Optional[ErrorKind]:
    """Return the ErrorKind of a classified error, or None for anything else."""
    return getattr(error, "kind", None) if isinstance(error, ThoughtLogError) else None


def is_transient(error: BaseException) -> bool:
    """True when retrying the failed operation might succeed."""
    return error_kind(error) in TRANSIENT_KINDS


@dataclass(frozen=True)
class Recovery:
    message: str
    action: str


def recovery_for(error: BaseException) -> Recovery:
    """User-facing explanation and suggested next step for an error."""
    kind = error_kind(error)
    if kind is ErrorKind.NETWORK:
        return Recovery(
            "Network connection issue detected.",
            "Check your internet connection and try again.",
        )
    if kind is ErrorKind.RATE_LIMIT:
        retry_after = getattr(error, "retry_after_seconds", None)
        action = (
            f"Wait {retry_after:g} seconds before trying again."
            if retry_after
            else "Wait a moment and try again."
        )
        return Recovery("API rate limit exceeded.", action)
    if kind is ErrorKind.AUTH:
        return Recovery(
            "Authentication failed.",
            "Verify the API key is correct and has the necessary permissions.",
        )
    if kind is ErrorKind.PARSE:
        return Recovery(
            "Failed to process the AI response.",
            "The response format may have changed. Try again; report it if it persists.",
        )
    if kind is ErrorKind.SERVER:
        return Recovery(
            "The AI service is experiencing issues.",
            "Try again in a few minutes.",
        )
    if kind is ErrorKind.VALIDATION:
        return Recovery("The request was invalid.", "Correct the input and resubmit.")
    if kind is ErrorKind.NOT_FOUND:
        return Recovery("The requested record does not exist.", "Refresh and try again.")
    return Recovery(
        "An unexpected error occurred.",
        "Try again. If the problem persists, check the logs.",
    )
