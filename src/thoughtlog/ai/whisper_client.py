"""Async OpenAI Whisper wrapper for voice note transcription."""
import asyncio

import openai

from thoughtlog.ai.provider_errors import translate_provider_error
from thoughtlog.prompts.classification import build_whisper_prompt

# Whisper infers the container from the upload's file name.
_EXTENSIONS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/flac": "flac",
}


def filename_for(mime_type: str) -> str:
    """Upload file name for a MIME type, e.g. 'audio/webm;codecs=opus' -> 'note.webm'."""
    base = mime_type.split(";", 1)[0].strip().lower()
    return f"note.{_EXTENSIONS.get(base, 'wav')}"


class WhisperClient:
    """Transcribes raw audio bytes via OpenAI Whisper."""

    def __init__(self, api_key: str, model: str = "whisper-1"):
        self._client = openai.OpenAI(api_key=api_key, max_retries=0)
        self.model = model

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> str:
        """
        Transcribe audio bytes. Returns the transcript string.
        Runs the sync OpenAI call in a thread pool executor.
        """
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(
                None,
                lambda: self._transcribe_sync(audio, mime_type),
            )
        except Exception as exc:
            mapped = translate_provider_error(exc)
            if mapped is exc:
                raise
            raise mapped from exc

    def _transcribe_sync(self, audio: bytes, mime_type: str) -> str:
        response = self._client.audio.transcriptions.create(
            model=self.model,
            file=(filename_for(mime_type), audio, mime_type),
            prompt=build_whisper_prompt(),
        )
        return response.text
