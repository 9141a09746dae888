"""Tests for the error taxonomy: kinds, transience and recovery hints."""
import pytest

from thoughtlog.errors import (
    AuthError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    ParseError,
    RateLimitError,
    ServerError,
    ValidationError,
    error_kind,
    is_transient,
    recovery_for,
)


class TestIsTransient:
    @pytest.mark.parametrize(
        "error",
        [NetworkError("x"), RateLimitError("x"), ServerError("x", status_code=503)],
    )
    def test_transient_kinds(self, error):
        assert is_transient(error)

    @pytest.mark.parametrize(
        "error",
        [
            AuthError("x"),
            ParseError("x"),
            ValidationError("x"),
            NotFoundError("Log", 1),
            RuntimeError("x"),
        ],
    )
    def test_terminal_and_unknown(self, error):
        assert not is_transient(error)


class TestErrorKind:
    def test_kind_of_classified_error(self):
        assert error_kind(RateLimitError("x")) is ErrorKind.RATE_LIMIT

    def test_plain_exception_has_no_kind(self):
        assert error_kind(KeyError("x")) is None

    def test_not_found_message(self):
        err = NotFoundError("Log", 42)
        assert err.message == "Log 42 not found"
        assert err.entity_id == 42


class TestRecoveryFor:
    def test_rate_limit_mentions_wait_time(self):
        hint = recovery_for(RateLimitError("429", retry_after_seconds=30))
        assert "30 seconds" in hint.action

    def test_auth_points_at_api_key(self):
        assert "API key" in recovery_for(AuthError("401")).action

    def test_unknown_error_has_generic_hint(self):
        hint = recovery_for(ZeroDivisionError())
        assert hint.message == "An unexpected error occurred."
