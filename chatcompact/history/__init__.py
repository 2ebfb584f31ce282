"""Conversation history compaction: hashing, summary cache, summarizer, compactor."""

from chatcompact.history.cache import CacheLookup, DurableStatus, SummaryCache, SummaryCacheEntry
from chatcompact.history.compactor import HistoryCompactor, PreparedHistoryResult, to_provider_messages
from chatcompact.history.hasher import hash_messages
from chatcompact.history.messages import ConversationMessage, ConversationScope
from chatcompact.history.store import JsonSummaryStore, SummaryRow, SummaryStore, SummaryStoreUnavailable
from chatcompact.history.summarizer import SummarizationError, Summarizer

__all__ = [
    "CacheLookup",
    "ConversationMessage",
    "ConversationScope",
    "DurableStatus",
    "HistoryCompactor",
    "JsonSummaryStore",
    "PreparedHistoryResult",
    "SummarizationError",
    "Summarizer",
    "SummaryCache",
    "SummaryCacheEntry",
    "SummaryRow",
    "SummaryStore",
    "SummaryStoreUnavailable",
    "hash_messages",
    "to_provider_messages",
]
