"""Classification instructions and transcription hints."""

CLASSIFICATION_PROMPT = """
You analyse personal voice notes and typed journal entries and pull out
structured items.

Extract every relevant segment into one of four types:
- accomplishment: something the person has completed or achieved
- todo: a task or action item still to be done
- idea: a concept, plan or creative thought to explore later
- learning: an insight, piece of knowledge or lesson learned

Rules:
- Each segment is a clear, self-contained statement in the speaker's own meaning.
- confidence is a number from 0.0 to 1.0 saying how sure you are of the type.
- For todos, set priority to "high", "medium" or "low" from urgency cues.
- For ideas, optionally set category (e.g. "product", "personal", "tech").
- For learnings, optionally set topic (e.g. "python", "leadership", "design").
- If a statement fits several types, choose the best one.
- If there is nothing to extract, return an empty segments list.

Return JSON only. No markdown. No explanation. Schema:
{
  "segments": [
    {
      "type": "accomplishment|todo|idea|learning",
      "text": "the extracted statement",
      "confidence": 0.0,
      "priority": "high|medium|low",
      "category": "ideas only, optional",
      "topic": "learnings only, optional"
    }
  ]
}

Example input:
"I finished the auth module today. I need to write tests for it tomorrow.
Maybe we could add OAuth later."

Example output:
{
  "segments": [
    {"type": "accomplishment", "text": "Finished the auth module", "confidence": 0.95},
    {"type": "todo", "text": "Write tests for the auth module", "confidence": 0.9, "priority": "high"},
    {"type": "idea", "text": "Add OAuth support", "confidence": 0.85, "category": "product"}
  ]
}
""".strip()


def build_classification_prompt() -> str:
    """System prompt sent alongside the note text."""
    return CLASSIFICATION_PROMPT


def build_whisper_prompt() -> str:
    """Prompt hint for OpenAI Whisper to improve transcription of journal-style notes."""
    return (
        "Personal daily voice log. May mention: to-do, todo, action item, "
        "idea, learned, til, finished, shipped, accomplished, priority, "
        "tomorrow, next week, follow up."
    )
