"""Async Claude API wrapper used for segment classification."""
import asyncio
from typing import Optional

import anthropic

from thoughtlog.ai.provider_errors import translate_provider_error
from thoughtlog.errors import ParseError


class ClaudeClient:
    """Thin async wrapper over the Anthropic SDK."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5"):
        self._client = anthropic.Anthropic(api_key=api_key, max_retries=0)
        self.model = model

    async def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 2000,
    ) -> str:
        """
        Send a message to Claude and return the response text.
        Runs the sync SDK call in a thread pool executor.

        SDK failures are re-raised as pipeline errors (RateLimitError,
        AuthError, ...) so retry decisions can be made on their kind.
        """
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(
                None,
                lambda: self._complete_sync(user_prompt, system_prompt, max_tokens),
            )
        except Exception as exc:
            mapped = translate_provider_error(exc)
            if mapped is exc:
                raise
            raise mapped from exc

    def _complete_sync(
        self,
        user_prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
    ) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = self._client.messages.create(**kwargs)
        texts = [block.text for block in response.content if getattr(block, "text", None)]
        if not texts:
            raise ParseError("Claude returned no text content")
        return "".join(texts)
