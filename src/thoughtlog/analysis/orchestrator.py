"""
AnalysisOrchestrator: input -> AnalysisResult.

  audio: transcribe -> (blank? stop) -> classify -> validate
  text:  check length -> classify -> validate

Retries live in the Classifier. Errors from the classifier and ParseError
from the validator propagate unchanged; the pending queue decides what to
do with transient ones.
"""
import logging
from typing import Optional

from thoughtlog.ai.classifier import Classifier
from thoughtlog.analysis.segments import AnalysisResult
from thoughtlog.analysis.validator import ResponseValidator
from thoughtlog.errors import ValidationError
from thoughtlog.prompts.classification import build_classification_prompt

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10000


class AnalysisOrchestrator:
    """Composes Classifier and ResponseValidator into one analysis step."""

    def __init__(
        self,
        classifier: Classifier,
        validator: Optional[ResponseValidator] = None,
        instructions: Optional[str] = None,
    ):
        self.classifier = classifier
        self.validator = validator or ResponseValidator()
        self.instructions = instructions or build_classification_prompt()

    async def analyze_audio(self, audio: bytes, mime_type: str = "audio/wav") -> AnalysisResult:
        """
        Transcribe then classify a recording.

        A blank transcript (silence, noise) yields an empty result without
        calling classify.
        """
        transcript = (await self.classifier.transcribe(audio, mime_type)).strip()
        if not transcript:
            logger.info("Empty transcript for %d bytes of audio, skipping classification", len(audio))
            return AnalysisResult(transcript="", segments=[])
        logger.info("Transcribed %d bytes of audio into %d characters", len(audio), len(transcript))
        return await self._classify(transcript)

    async def analyze_text(self, text: str) -> AnalysisResult:
        """Classify typed text. Raises ValidationError for blank or oversized input."""
        if text is None or not text.strip():
            raise ValidationError("Text must not be empty")
        if len(text) > MAX_TEXT_LENGTH:
            raise ValidationError(
                f"Text must be at most {MAX_TEXT_LENGTH} characters (got {len(text)})"
            )
        return await self._classify(text)

    async def _classify(self, transcript: str) -> AnalysisResult:
        raw = await self.classifier.classify(transcript, self.instructions)
        report = self.validator.validate(raw)
        logger.info(
            "Classified %d segments (%d dropped)",
            len(report.segments),
            report.dropped_count,
        )
        return AnalysisResult(
            transcript=transcript,
            segments=report.segments,
            dropped=report.dropped_count,
        )
