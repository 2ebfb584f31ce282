"""Fixed prompt text and framing for history summaries."""

SUMMARY_PROMPT = (
    "Summarize this conversation excerpt in 2-3 concise paragraphs. "
    "Focus on: decisions made, key context, open questions, and anything "
    "the user said they would come back to. Be factual and brief."
)

# Used when the model returns no text; an empty summary would read as "no context".
SUMMARY_PLACEHOLDER = "Earlier context was summarized, but no additional details were extracted."

SUMMARY_HEADER = "[Earlier in this conversation]"
SUMMARY_FOOTER = "[End of summary - recent messages follow]"

SYSTEM_CONTEXT_PREFIX = "[System context]"


def frame_summary(summary: str) -> str:
    """Wrap summary text so the model reads it as compressed history."""
    return f"{SUMMARY_HEADER}\n{summary}\n{SUMMARY_FOOTER}"
