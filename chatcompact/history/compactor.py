"""History compactor: bounded, LLM-ready message sequences for a chat turn."""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from loguru import logger

from chatcompact.history.cache import SummaryCache, SummaryCacheEntry
from chatcompact.history.hasher import hash_messages
from chatcompact.history.messages import (
    ROLE_SYSTEM,
    ROLE_USER,
    ConversationMessage,
    ConversationScope,
    coerce_message,
    to_provider_messages,
)
from chatcompact.history.store import SummaryStore
from chatcompact.history.summarizer import Summarizer
from chatcompact.prompts.summary import frame_summary

if TYPE_CHECKING:
    from chatcompact.config.schema import Config
    from chatcompact.providers.base import LLMProvider

__all__ = ["HistoryCompactor", "PreparedHistoryResult", "to_provider_messages"]

MAX_HISTORY_MESSAGES = 20
SUMMARY_THRESHOLD = 20


@dataclass
class PreparedHistoryResult:
    """Final message sequence for an LLM call plus observability flags."""

    messages: list[dict[str, str]]
    did_summarize: bool = False
    used_cached_summary: bool = False
    summary: str | None = None


class HistoryCompactor:
    """Replace old turns with a cached rolling summary and keep recent turns verbatim.

    System messages always pass through in full. When the user/assistant
    conversation is longer than ``summary_threshold``, everything before the
    last ``summary_threshold`` turns is summarized once per distinct prefix
    and reused from the cache afterwards.
    """

    def __init__(
        self,
        summarizer: Summarizer,
        cache: SummaryCache,
        max_history_messages: int = MAX_HISTORY_MESSAGES,
        summary_threshold: int = SUMMARY_THRESHOLD,
        single_flight: bool = True,
    ):
        if max_history_messages <= 0:
            raise ValueError("max_history_messages must be positive")
        if summary_threshold <= 0:
            raise ValueError("summary_threshold must be positive")
        self.summarizer = summarizer
        self.cache = cache
        self.max_history_messages = max_history_messages
        self.summary_threshold = summary_threshold
        self.single_flight = single_flight
        self._inflight: dict[tuple[str, str, int], asyncio.Task] = {}

    @classmethod
    def from_config(
        cls,
        config: "Config",
        provider: "LLMProvider",
        store: SummaryStore | None = None,
    ) -> "HistoryCompactor":
        """Build a compactor, its summarizer and its cache from config."""
        settings = config.compaction
        summarizer = Summarizer(
            provider,
            model=settings.model,
            max_tokens=settings.summary_max_tokens,
            temperature=settings.summary_temperature,
        )
        return cls(
            summarizer,
            SummaryCache(store),
            max_history_messages=settings.max_history_messages,
            summary_threshold=settings.summary_threshold,
            single_flight=settings.single_flight,
        )

    async def prepare(
        self,
        messages: Sequence[ConversationMessage | dict[str, Any]],
        scope: ConversationScope,
    ) -> PreparedHistoryResult:
        """Build the bounded message sequence for one LLM call.

        Raises whatever the summarizer raises; nothing is returned on failure.
        """
        msgs = [coerce_message(m) for m in messages]
        system_messages = [m for m in msgs if m.role == ROLE_SYSTEM]
        base = [m for m in msgs if m.role != ROLE_SYSTEM]

        if len(base) <= self.summary_threshold:
            logger.debug(
                f"History for {scope.cache_key}: {len(base)} turns, window only"
            )
            conversation = base[-self.max_history_messages:]
            return PreparedHistoryResult(
                messages=to_provider_messages(system_messages + conversation),
            )

        old = base[:-self.summary_threshold]
        recent = base[-self.summary_threshold:]
        fingerprint = hash_messages(old)

        cached = await self.cache.read(scope, fingerprint, len(old))
        if cached is not None:
            logger.debug(
                f"Summary cache hit for {scope.cache_key} ({len(old)} old turns)"
            )
            summary = cached.summary.strip()
            used_cached = True
        else:
            summary = await self._summarize(scope, fingerprint, old)
            used_cached = False

        summary_message = ConversationMessage(role=ROLE_USER, content=frame_summary(summary))
        conversation = [summary_message, *recent]

        return PreparedHistoryResult(
            messages=to_provider_messages(system_messages + conversation),
            did_summarize=True,
            used_cached_summary=used_cached,
            summary=summary,
        )

    async def _summarize(
        self,
        scope: ConversationScope,
        fingerprint: str,
        old: list[ConversationMessage],
    ) -> str:
        """Summarize ``old`` and cache it, sharing in-flight work when enabled."""
        if not self.single_flight:
            return await self._summarize_and_store(scope, fingerprint, old)

        key = (scope.cache_key, fingerprint, len(old))
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._summarize_and_store(scope, fingerprint, old))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.debug(f"Joining in-flight summary for {scope.cache_key}")

        # Shield so one cancelled caller does not cancel the shared work.
        return await asyncio.shield(task)

    def _forget(self, key: tuple[str, str, int], task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Every waiter may have been cancelled; consume the error here.
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Shared summary for {key[0]} failed: {task.exception()!r}")

    async def _summarize_and_store(
        self,
        scope: ConversationScope,
        fingerprint: str,
        old: list[ConversationMessage],
    ) -> str:
        summary = await self.summarizer.summarize(old)
        status = await self.cache.write(
            scope,
            SummaryCacheEntry(
                source_fingerprint=fingerprint,
                source_message_count=len(old),
                summary=summary,
            ),
        )
        logger.info(
            f"Summarized {len(old)} turns for {scope.cache_key} "
            f"({len(summary)} chars, durable: {status.value})"
        )
        return summary
