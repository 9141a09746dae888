"""Tests for AnalysisOrchestrator with a scripted classifier."""
import json

import pytest
from conftest import SAMPLE_RESPONSE, FakeClassifier

from thoughtlog.analysis.orchestrator import MAX_TEXT_LENGTH, AnalysisOrchestrator
from thoughtlog.analysis.segments import SegmentType
from thoughtlog.errors import NetworkError, ParseError, ValidationError
from thoughtlog.prompts.classification import CLASSIFICATION_PROMPT


class TestAnalyzeText:
    @pytest.mark.asyncio
    async def test_returns_validated_segments(self):
        orchestrator = AnalysisOrchestrator(FakeClassifier())
        result = await orchestrator.analyze_text("I finished the auth module.")
        assert result.transcript == "I finished the auth module."
        assert [s.type for s in result.segments] == [
            SegmentType.ACCOMPLISHMENT,
            SegmentType.TODO,
            SegmentType.IDEA,
            SegmentType.LEARNING,
        ]

    @pytest.mark.asyncio
    async def test_sends_classification_instructions(self):
        captured = {}

        class Recording(FakeClassifier):
            async def classify(self, text, instructions):
                captured["instructions"] = instructions
                return SAMPLE_RESPONSE

        await AnalysisOrchestrator(Recording()).analyze_text("note")
        assert captured["instructions"] == CLASSIFICATION_PROMPT

    @pytest.mark.asyncio
    async def test_counts_dropped_candidates(self):
        response = json.dumps(
            {"segments": [{"type": "todo", "text": "a"}, {"type": "bogus", "text": "b"}]}
        )
        result = await AnalysisOrchestrator(FakeClassifier(responses=[response])).analyze_text("x")
        assert len(result.segments) == 1
        assert result.dropped == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n"])
    async def test_blank_text_rejected_without_classifying(self, text):
        classifier = FakeClassifier()
        with pytest.raises(ValidationError):
            await AnalysisOrchestrator(classifier).analyze_text(text)
        assert classifier.classify_calls == []

    @pytest.mark.asyncio
    async def test_oversized_text_rejected(self):
        with pytest.raises(ValidationError, match=str(MAX_TEXT_LENGTH)):
            await AnalysisOrchestrator(FakeClassifier()).analyze_text("x" * (MAX_TEXT_LENGTH + 1))

    @pytest.mark.asyncio
    async def test_parse_error_propagates(self):
        classifier = FakeClassifier(responses=["not json"])
        with pytest.raises(ParseError):
            await AnalysisOrchestrator(classifier).analyze_text("note")

    @pytest.mark.asyncio
    async def test_classifier_errors_propagate_without_retry(self):
        classifier = FakeClassifier(responses=[NetworkError("down")])
        with pytest.raises(NetworkError):
            await AnalysisOrchestrator(classifier).analyze_text("note")
        assert len(classifier.classify_calls) == 1


class TestAnalyzeAudio:
    @pytest.mark.asyncio
    async def test_transcribes_then_classifies(self):
        classifier = FakeClassifier(transcripts=["  Call mom tomorrow.  "])
        result = await AnalysisOrchestrator(classifier).analyze_audio(b"audio")
        assert classifier.transcribe_calls == [b"audio"]
        assert classifier.classify_calls == ["Call mom tomorrow."]
        assert result.transcript == "Call mom tomorrow."
        assert len(result.segments) == 4

    @pytest.mark.asyncio
    async def test_blank_transcript_short_circuits(self):
        classifier = FakeClassifier(transcripts=["   "])
        result = await AnalysisOrchestrator(classifier).analyze_audio(b"silence")
        assert result.transcript == ""
        assert result.segments == []
        assert classifier.classify_calls == []

    @pytest.mark.asyncio
    async def test_transcription_error_propagates(self):
        classifier = FakeClassifier(transcripts=[NetworkError("offline")])
        with pytest.raises(NetworkError):
            await AnalysisOrchestrator(classifier).analyze_audio(b"audio")
