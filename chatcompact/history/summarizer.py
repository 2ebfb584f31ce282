"""LLM-backed summarizer for older conversation turns."""

from typing import Any, Sequence

from loguru import logger

from chatcompact.history.messages import ConversationMessage, to_provider_messages
from chatcompact.prompts.summary import SUMMARY_PLACEHOLDER, SUMMARY_PROMPT
from chatcompact.providers.base import LLMProvider


class SummarizationError(Exception):
    """The completion call behind a summary failed."""


class Summarizer:
    """Compress a slice of older turns into a short prose digest."""

    DEFAULT_MAX_TOKENS = 300

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = 0.3,
    ):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def summarize(self, messages: Sequence[ConversationMessage | dict[str, Any]]) -> str:
        """Return a summary of ``messages``.

        Never returns an empty string: a blank completion is replaced by
        SUMMARY_PLACEHOLDER. Provider failures raise SummarizationError and
        are not retried.
        """
        response = await self.provider.chat(
            messages=to_provider_messages(messages),
            system=SUMMARY_PROMPT,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        if response.is_error:
            raise SummarizationError(response.content or "LLM call failed")

        summary = (response.content or "").strip()
        if not summary:
            logger.warning("Summarizer returned empty text, using placeholder")
            return SUMMARY_PLACEHOLDER
        return summary
