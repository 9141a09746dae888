"""
Translate Anthropic / OpenAI SDK exceptions into the pipeline's error taxonomy.

Both SDKs share the same exception shape (generated by the same tooling), so
one function handles them:

  APIConnectionError / APITimeoutError  -> NetworkError
  RateLimitError (429)                  -> RateLimitError (+ retry-after header)
  AuthenticationError / PermissionDenied -> AuthError
  APIStatusError >= 500                 -> ServerError
  other APIStatusError 4xx              -> ParseError

Errors that are already classified pass through. Anything unrecognised is
returned unchanged so the caller re-raises the original exception.
"""
import asyncio
from typing import Optional

import anthropic
import openai

from thoughtlog.ai.retry import classify_http_status
from thoughtlog.errors import AuthError, NetworkError, RateLimitError, ThoughtLogError

_SDKS = (anthropic, openai)


def _retry_after_seconds(exc) -> Optional[float]:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _response_text(exc) -> Optional[str]:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    try:
        return response.text[:500]
    except Exception:  # streaming responses may not be readable
        return None


def translate_provider_error(exc: BaseException) -> BaseException:
    """Return the classified equivalent of `exc`, or `exc` itself when unknown."""
    if isinstance(exc, ThoughtLogError):
        return exc

    for sdk in _SDKS:
        if isinstance(exc, sdk.APIConnectionError):
            return NetworkError(str(exc) or "Connection error", original=exc)
        if isinstance(exc, sdk.RateLimitError):
            return RateLimitError(str(exc), _retry_after_seconds(exc))
        if isinstance(exc, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
            return AuthError(str(exc), exc.status_code)
        if isinstance(exc, sdk.APIStatusError):
            return classify_http_status(exc.status_code, str(exc), _response_text(exc))

    if isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return NetworkError(str(exc) or type(exc).__name__, original=exc)
    return exc
