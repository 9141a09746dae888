"""Tests for ClaudeClient, the async wrapper over the Anthropic SDK.

We mock the Anthropic client entirely (no real API calls) and verify:
  - _complete_sync builds the correct payload
  - system_prompt is only included when provided
  - complete() delegates to the thread executor and returns text
  - SDK errors come out as pipeline errors
"""
from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from thoughtlog.ai.claude_client import ClaudeClient
from thoughtlog.errors import NetworkError, ParseError, RateLimitError


@pytest.fixture
def mock_anthropic_client():
    """Anthropic.Anthropic client mock with messages.create stubbed."""
    client = MagicMock()
    response = MagicMock()
    response.content = [MagicMock(text='{"segments": []}')]
    client.messages.create.return_value = response
    return client


@pytest.fixture
def claude(mock_anthropic_client):
    """ClaudeClient with a mock Anthropic backend."""
    with patch("thoughtlog.ai.claude_client.anthropic.Anthropic", return_value=mock_anthropic_client):
        return ClaudeClient(api_key="test-key", model="claude-sonnet-4-5")


class TestClaudeClientInit:
    def test_model_stored(self, claude):
        assert claude.model == "claude-sonnet-4-5"

    def test_sdk_retries_disabled(self):
        with patch("thoughtlog.ai.claude_client.anthropic.Anthropic") as mock_cls:
            ClaudeClient(api_key="k")
        mock_cls.assert_called_once_with(api_key="k", max_retries=0)


class TestCompleteSyncPayload:
    def test_user_message_included(self, claude, mock_anthropic_client):
        claude._complete_sync("I shipped the release", system_prompt=None, max_tokens=500)
        call_kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert call_kwargs["messages"] == [{"role": "user", "content": "I shipped the release"}]

    def test_system_prompt_included_when_provided(self, claude, mock_anthropic_client):
        claude._complete_sync("q", system_prompt="Extract segments", max_tokens=100)
        call_kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert call_kwargs.get("system") == "Extract segments"

    def test_system_prompt_omitted_when_none(self, claude, mock_anthropic_client):
        claude._complete_sync("q", system_prompt=None, max_tokens=100)
        call_kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert "system" not in call_kwargs

    def test_max_tokens_passed_through(self, claude, mock_anthropic_client):
        claude._complete_sync("q", system_prompt=None, max_tokens=999)
        call_kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert call_kwargs["max_tokens"] == 999

    def test_joins_text_blocks(self, claude, mock_anthropic_client):
        mock_anthropic_client.messages.create.return_value.content = [
            MagicMock(text='{"segments": '),
            MagicMock(text="[]}"),
        ]
        assert claude._complete_sync("q", None, 100) == '{"segments": []}'

    def test_no_text_is_parse_error(self, claude, mock_anthropic_client):
        mock_anthropic_client.messages.create.return_value.content = []
        with pytest.raises(ParseError):
            claude._complete_sync("q", None, 100)


class TestCompleteAsync:
    @pytest.mark.asyncio
    async def test_complete_returns_string(self, claude):
        assert await claude.complete("q") == '{"segments": []}'

    @pytest.mark.asyncio
    async def test_complete_default_max_tokens(self, claude, mock_anthropic_client):
        await claude.complete("q")
        call_kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert call_kwargs["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_rate_limit_translated(self, claude, mock_anthropic_client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(429, headers={"retry-after": "3"}, request=request)
        mock_anthropic_client.messages.create.side_effect = anthropic.RateLimitError(
            "slow down", response=response, body=None
        )
        with pytest.raises(RateLimitError) as exc_info:
            await claude.complete("q")
        assert exc_info.value.retry_after_seconds == 3
        assert isinstance(exc_info.value.__cause__, anthropic.RateLimitError)

    @pytest.mark.asyncio
    async def test_connection_failure_translated(self, claude, mock_anthropic_client):
        mock_anthropic_client.messages.create.side_effect = ConnectionError("reset")
        with pytest.raises(NetworkError):
            await claude.complete("q")

    @pytest.mark.asyncio
    async def test_unknown_exceptions_propagate_unchanged(self, claude, mock_anthropic_client):
        mock_anthropic_client.messages.create.side_effect = Exception("API error")
        with pytest.raises(Exception, match="API error"):
            await claude.complete("q")
