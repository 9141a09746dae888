"""
ProviderClassifier: the production Classifier.

Transcription goes to OpenAI Whisper, classification to Anthropic Claude.
Every call is bounded by with_timeout() and wrapped in the RetryPolicy, so
transient provider failures are retried here, beneath the orchestrator.
SDK clients are built lazily on first use from the SecretStore.
"""
import logging
from typing import Optional

from thoughtlog.ai.claude_client import ClaudeClient
from thoughtlog.ai.retry import RetryPolicy, with_timeout
from thoughtlog.ai.secrets import ANTHROPIC_API_KEY, OPENAI_API_KEY, SecretStore
from thoughtlog.ai.whisper_client import WhisperClient
from thoughtlog.errors import AuthError

logger = logging.getLogger(__name__)


class ProviderClassifier:
    """Classifier backed by Whisper (audio) and Claude (text)."""

    def __init__(
        self,
        secrets: SecretStore,
        retry: Optional[RetryPolicy] = None,
        timeout_ms: float = 60000,
        claude_model: str = "claude-sonnet-4-5",
        whisper_model: str = "whisper-1",
        max_tokens: int = 2000,
    ):
        self._secrets = secrets
        self._retry = retry or RetryPolicy()
        self._timeout_ms = timeout_ms
        self._claude_model = claude_model
        self._whisper_model = whisper_model
        self._max_tokens = max_tokens
        self._claude: Optional[ClaudeClient] = None
        self._whisper: Optional[WhisperClient] = None

    def _require_secret(self, name: str) -> str:
        value = self._secrets.get_secret(name)
        if not value:
            raise AuthError(f"No API key configured ({name.upper()})")
        return value

    def _claude_client(self) -> ClaudeClient:
        if self._claude is None:
            self._claude = ClaudeClient(
                api_key=self._require_secret(ANTHROPIC_API_KEY), model=self._claude_model
            )
        return self._claude

    def _whisper_client(self) -> WhisperClient:
        if self._whisper is None:
            self._whisper = WhisperClient(
                api_key=self._require_secret(OPENAI_API_KEY), model=self._whisper_model
            )
        return self._whisper

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> str:
        whisper = self._whisper_client()
        logger.debug("Transcribing %d bytes (%s)", len(audio), mime_type)
        text = await self._retry.execute(
            lambda: with_timeout(
                whisper.transcribe(audio, mime_type),
                self._timeout_ms,
                "Transcription timed out",
            )
        )
        return text.strip()

    async def classify(self, text: str, instructions: str) -> str:
        claude = self._claude_client()
        return await self._retry.execute(
            lambda: with_timeout(
                claude.complete(text, system_prompt=instructions, max_tokens=self._max_tokens),
                self._timeout_ms,
                "Classification timed out",
            )
        )
