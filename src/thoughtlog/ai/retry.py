"""
Retry-with-backoff harness used by every component that talks to the network.

    policy = RetryPolicy(RetryOptions(max_retries=3, initial_delay_ms=1000))
    text = await policy.execute(lambda: client.complete(prompt))

Delays follow min(initial * multiplier ** attempt, max_delay). A
RateLimitError carrying retry_after_seconds overrides the computed delay
exactly. When retries are exhausted or refused, the last error is raised
unchanged.
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Optional, TypeVar

from thoughtlog.errors import (
    AuthError,
    NetworkError,
    ParseError,
    RateLimitError,
    ServerError,
    ThoughtLogError,
    is_transient,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRY_AFTER_RE = re.compile(r"retry after (\d+(?:\.\d+)?)", re.IGNORECASE)


def default_should_retry(error: BaseException, attempt: int) -> bool:
    """Retry network, rate-limit and server errors. Everything else is final."""
    return is_transient(error)


def default_on_retry(error: BaseException, attempt: int, delay_ms: float) -> None:
    logger.warning(
        "Attempt %d failed with %s: %s. Retrying in %.0fms",
        attempt,
        type(error).__name__,
        error,
        delay_ms,
    )


@dataclass
class RetryOptions:
    max_retries: int = 3
    initial_delay_ms: float = 1000
    max_delay_ms: float = 10000
    backoff_multiplier: float = 2.0
    should_retry: Callable[[BaseException, int], bool] = field(default=default_should_retry)
    on_retry: Callable[[BaseException, int, float], None] = field(default=default_on_retry)


def compute_delay(
    attempt: int,
    options: RetryOptions,
    error: Optional[BaseException] = None,
) -> float:
    """Delay in milliseconds before retrying after the 0-based `attempt` failed."""
    if isinstance(error, RateLimitError) and error.retry_after_seconds:
        return error.retry_after_seconds * 1000
    delay = options.initial_delay_ms * options.backoff_multiplier ** attempt
    return min(delay, options.max_delay_ms)


class RetryPolicy:
    """Executes async operations with bounded retries and exponential backoff."""

    def __init__(
        self,
        options: Optional[RetryOptions] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            options: Default options for execute(). Defaults to RetryOptions().
            sleep: Coroutine taking seconds. Injected by tests to avoid real waits.
        """
        self.options = options or RetryOptions()
        self._sleep = sleep

    def with_options(self, **overrides) -> "RetryPolicy":
        """Return a policy sharing this one's sleep function with some options replaced."""
        return RetryPolicy(replace(self.options, **overrides), sleep=self._sleep)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        options: Optional[RetryOptions] = None,
    ) -> T:
        """
        Run `operation` until it succeeds, retries are refused, or retries run out.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per call.
            options: Per-call override of the policy's options.

        Returns:
            Whatever the operation returns.

        Raises:
            The last error raised by the operation, unchanged.
        """
        opts = options or self.options
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as exc:
                if attempt >= opts.max_retries:
                    logger.error(
                        "All %d retries exhausted. Final error: %s: %s",
                        opts.max_retries,
                        type(exc).__name__,
                        exc,
                    )
                    raise
                if not opts.should_retry(exc, attempt):
                    logger.error("Error not retryable: %s: %s", type(exc).__name__, exc)
                    raise

                delay_ms = compute_delay(attempt, opts, exc)
                opts.on_retry(exc, attempt + 1, delay_ms)
                await self._sleep(delay_ms / 1000)
                attempt += 1


def _consume_result(task: "asyncio.Future") -> None:
    # Abandoned work may still fail later; read the exception so asyncio
    # does not report it as never retrieved.
    if not task.cancelled():
        task.exception()


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_ms: float,
    message: Optional[str] = None,
) -> T:
    """
    Wait for `awaitable` at most `timeout_ms` milliseconds.

    The underlying work is shielded: on timeout we stop waiting and raise
    NetworkError, but the work itself keeps running to completion. Callers
    must treat a timeout as an unknown outcome.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout_ms / 1000)
    except asyncio.TimeoutError as exc:
        task.add_done_callback(_consume_result)
        raise NetworkError(
            message or f"Request timed out after {timeout_ms:.0f}ms", original=exc
        ) from exc


def classify_http_status(
    status_code: int,
    message: str = "",
    response: Optional[str] = None,
) -> ThoughtLogError:
    """Map an HTTP status code to the matching error kind."""
    if status_code in (401, 403):
        return AuthError(
            message or "Authentication failed. Check your API key.", status_code
        )
    if status_code == 429:
        match = _RETRY_AFTER_RE.search(message or "")
        retry_after = float(match.group(1)) if match else None
        return RateLimitError(
            message or "Rate limit exceeded. Try again later.", retry_after
        )
    if status_code >= 500:
        return ServerError(
            message or "Server error. The service may be temporarily unavailable.",
            status_code,
            response,
        )
    if status_code >= 400:
        return ParseError(message or "Bad request. The request may be malformed.", response)
    return ThoughtLogError(message or "Unknown error occurred")
