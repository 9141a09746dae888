"""
ResponseValidator: classifier raw text -> ordered list of typed segments.

Two failure channels:
  - The payload as a whole is unusable (not JSON, not an object, no
    `segments` array): ParseError is raised. Not retried.
  - A single candidate is unusable (no type/text, unknown type): it is
    dropped and recorded in ValidationReport.dropped. Processing continues.

Out-of-domain field values are corrected rather than rejected:
  - todo priority not high/medium/low (or 1/2/3) -> medium
  - confidence is coerced to float; 0-100 scores are read as percentages,
    then clamped into [0, 1]; unusable values are omitted
  - idea category / learning topic kept only when they are strings that
    fit the stored label length

Candidates whose text is longer than the stored column allows are dropped.

Normalisation before parsing is best-effort: a single surrounding markdown
fence (```json ... ```) is stripped. Prose mixed in with the JSON is not
guessed at; it fails to parse and raises ParseError.
"""
import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from thoughtlog.analysis.segments import (
    AccomplishmentSegment,
    IdeaSegment,
    LearningSegment,
    Priority,
    Segment,
    SegmentType,
    TodoSegment,
)
from thoughtlog.errors import ParseError
from thoughtlog.storage.validation import MAX_LABEL_LENGTH, MAX_SEGMENT_LENGTH, MAX_TODO_LENGTH

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[\w-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)

TYPE_ALIASES: Dict[str, SegmentType] = {
    "todo": SegmentType.TODO,
    "todos": SegmentType.TODO,
    "task": SegmentType.TODO,
    "tasks": SegmentType.TODO,
    "idea": SegmentType.IDEA,
    "ideas": SegmentType.IDEA,
    "learning": SegmentType.LEARNING,
    "learnings": SegmentType.LEARNING,
    "note": SegmentType.LEARNING,
    "accomplishment": SegmentType.ACCOMPLISHMENT,
    "accomplishments": SegmentType.ACCOMPLISHMENT,
}

MAX_TEXT_LENGTHS: Dict[SegmentType, int] = {
    SegmentType.TODO: MAX_TODO_LENGTH,
    SegmentType.IDEA: MAX_SEGMENT_LENGTH,
    SegmentType.LEARNING: MAX_SEGMENT_LENGTH,
    SegmentType.ACCOMPLISHMENT: MAX_SEGMENT_LENGTH,
}

_PRIORITY_ALIASES: Dict[str, Priority] = {
    "high": Priority.HIGH,
    "medium": Priority.MEDIUM,
    "low": Priority.LOW,
    "1": Priority.HIGH,
    "2": Priority.MEDIUM,
    "3": Priority.LOW,
}


@dataclass
class DroppedCandidate:
    index: int
    reason: str


@dataclass
class ValidationReport:
    segments: List[Segment] = field(default_factory=list)
    dropped: List[DroppedCandidate] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)


def strip_code_fence(raw: str) -> str:
    """Remove one surrounding markdown code fence, if present."""
    cleaned = raw.strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        return match.group("body").strip()
    return cleaned


def parse_payload(raw: str) -> Dict[str, Any]:
    """Parse classifier output into a JSON object. Raises ParseError."""
    cleaned = strip_code_fence(raw or "")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Failed to parse JSON response: {exc}", response=raw[:500]) from exc
    if not isinstance(parsed, dict):
        raise ParseError("Response is not a JSON object", response=raw[:500])
    return parsed


def normalize_confidence(value: Any) -> Optional[float]:
    """
    Coerce a raw confidence score into [0, 1].

    Returns None when the value is absent or not numeric. Scores in (1, 100]
    are treated as percentages. Everything else is clamped.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(score) or math.isinf(score):
        return None
    if 1 < score <= 100:
        score = score / 100
    return max(0.0, min(1.0, score))


def normalize_priority(value: Any) -> Optional[Priority]:
    """Priority for a raw value, or None when it is not recognisable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and float(value).is_integer():
        value = str(int(value))
    if not isinstance(value, str):
        return None
    return _PRIORITY_ALIASES.get(value.strip().lower())


def _optional_label(value: Any, field_name: str, index: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    label = value.strip()
    if len(label) > MAX_LABEL_LENGTH:
        logger.warning(
            "Segment %d has a %s longer than %d characters, ignoring",
            index,
            field_name,
            MAX_LABEL_LENGTH,
        )
        return None
    return label or None


def _build_todo(candidate: Dict[str, Any], text: str, confidence: Optional[float], index: int) -> Segment:
    raw_priority = candidate.get("priority")
    priority = Priority.MEDIUM
    if raw_priority is not None:
        priority = normalize_priority(raw_priority)
        if priority is None:
            logger.warning(
                "Segment %d has invalid priority %r, using medium", index, raw_priority
            )
            priority = Priority.MEDIUM
    return TodoSegment(text=text, priority=priority, confidence=confidence)


def _build_idea(candidate: Dict[str, Any], text: str, confidence: Optional[float], index: int) -> Segment:
    category = _optional_label(candidate.get("category"), "category", index)
    return IdeaSegment(text=text, category=category, confidence=confidence)


def _build_learning(candidate: Dict[str, Any], text: str, confidence: Optional[float], index: int) -> Segment:
    topic = _optional_label(candidate.get("topic"), "topic", index)
    return LearningSegment(text=text, topic=topic, confidence=confidence)


def _build_accomplishment(candidate: Dict[str, Any], text: str, confidence: Optional[float], index: int) -> Segment:
    return AccomplishmentSegment(text=text, confidence=confidence)


_BUILDERS: Dict[SegmentType, Callable[[Dict[str, Any], str, Optional[float], int], Segment]] = {
    SegmentType.TODO: _build_todo,
    SegmentType.IDEA: _build_idea,
    SegmentType.LEARNING: _build_learning,
    SegmentType.ACCOMPLISHMENT: _build_accomplishment,
}


class ResponseValidator:
    """Turns classifier output into validated, ordered segments."""

    def validate(self, raw: str) -> ValidationReport:
        """Parse and validate raw classifier text. Raises ParseError on a bad payload."""
        return self.validate_payload(parse_payload(raw))

    def validate_payload(self, payload: Dict[str, Any]) -> ValidationReport:
        candidates = payload.get("segments")
        if not isinstance(candidates, list):
            raise ParseError('Response missing "segments" array', response=str(payload)[:500])

        report = ValidationReport()
        for index, candidate in enumerate(candidates):
            segment, reason = self._validate_candidate(index, candidate)
            if segment is None:
                logger.warning("Dropping segment %d: %s", index, reason)
                report.dropped.append(DroppedCandidate(index=index, reason=reason))
            else:
                report.segments.append(segment)

        if candidates and not report.segments:
            logger.warning("All %d segment candidates failed validation", len(candidates))
        return report

    def _validate_candidate(self, index: int, candidate: Any):
        if not isinstance(candidate, dict):
            return None, "candidate is not an object"

        raw_type = candidate.get("type")
        if not isinstance(raw_type, str) or not raw_type.strip():
            return None, "missing or invalid type"

        raw_text = candidate.get("text")
        if not isinstance(raw_text, str) or not raw_text.strip():
            return None, "missing or invalid text"

        segment_type = TYPE_ALIASES.get(raw_type.strip().lower())
        if segment_type is None:
            return None, f"unknown type {raw_type!r}"

        text = raw_text.strip()
        limit = MAX_TEXT_LENGTHS[segment_type]
        if len(text) > limit:
            return None, f"text longer than {limit} characters"

        confidence = None
        if "confidence" in candidate:
            confidence = normalize_confidence(candidate["confidence"])
            if confidence is None:
                logger.warning(
                    "Segment %d has invalid confidence %r, ignoring",
                    index,
                    candidate["confidence"],
                )

        builder = _BUILDERS[segment_type]
        return builder(candidate, text, confidence, index), None
