"""The classification capability the analysis pipeline depends on."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class Classifier(Protocol):
    """
    Two network-bound operations and nothing else.

    Implementations raise the pipeline error kinds (NetworkError,
    RateLimitError, AuthError, ParseError, ServerError) and never interpret
    the text returned by classify().
    """

    async def transcribe(self, audio: bytes, mime_type: str = "audio/wav") -> str:
        ...

    async def classify(self, text: str, instructions: str) -> str:
        ...
