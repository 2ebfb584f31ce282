"""Two-tier summary cache keyed by conversation scope."""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from chatcompact.history.messages import ConversationScope
from chatcompact.history.store import SummaryRow, SummaryStore


class DurableStatus(str, Enum):
    """Outcome of a durable-tier operation."""
    disabled = "disabled"
    ok = "ok"
    missing = "missing"
    unavailable = "unavailable"


@dataclass(frozen=True)
class SummaryCacheEntry:
    """A summary plus the exact input it was computed from."""

    source_fingerprint: str
    source_message_count: int
    summary: str

    def matches(self, fingerprint: str, count: int) -> bool:
        """True only if both fingerprint and message count are equal."""
        return (
            self.source_fingerprint == fingerprint
            and self.source_message_count == count
        )

    @property
    def is_usable(self) -> bool:
        return bool(self.summary and self.summary.strip())


@dataclass
class CacheLookup:
    """Result of a cache read, with the tier that served it."""

    entry: SummaryCacheEntry | None
    source: str | None = None  # "memory", "durable" or None on miss
    durable_status: DurableStatus = DurableStatus.disabled

    @property
    def hit(self) -> bool:
        return self.entry is not None


class SummaryCache:
    """Content-addressed store mapping a conversation scope to its summary.

    The in-process tier lives for the process lifetime and is always
    consulted first. The optional durable tier survives restarts; its
    failures are reported as ``DurableStatus.unavailable`` and never raised.

    An entry is served only when its fingerprint and message count both
    match the caller's current old-message slice. Anything else is a miss,
    though the stale entry stays in place until the next write.

    There is no lock: concurrent writers for one scope are last-write-wins.
    """

    def __init__(self, store: SummaryStore | None = None):
        self.store = store
        self._memory: dict[str, SummaryCacheEntry] = {}

    async def read(
        self,
        scope: ConversationScope,
        expected_fingerprint: str,
        expected_count: int,
    ) -> SummaryCacheEntry | None:
        """Return the matching entry for ``scope`` or None."""
        result = await self.lookup(scope, expected_fingerprint, expected_count)
        return result.entry

    async def lookup(
        self,
        scope: ConversationScope,
        expected_fingerprint: str,
        expected_count: int,
    ) -> CacheLookup:
        """Read through both tiers and report which one answered."""
        cached = self._memory.get(scope.cache_key)
        if cached and cached.matches(expected_fingerprint, expected_count) and cached.is_usable:
            return CacheLookup(entry=cached, source="memory")

        if self.store is None:
            return CacheLookup(entry=None)

        try:
            row = await self.store.get(scope.owner_id, scope.conversation_key)
        except Exception as e:
            logger.warning(f"Summary store read failed for {scope.cache_key}: {e}")
            return CacheLookup(entry=None, durable_status=DurableStatus.unavailable)

        if row is None:
            return CacheLookup(entry=None, durable_status=DurableStatus.missing)

        entry = SummaryCacheEntry(
            source_fingerprint=row.source_hash,
            source_message_count=row.source_message_count,
            summary=row.summary,
        )
        if not entry.matches(expected_fingerprint, expected_count) or not entry.is_usable:
            return CacheLookup(entry=None, durable_status=DurableStatus.missing)

        # Promote so later reads in this process skip the store.
        self._memory[scope.cache_key] = entry
        return CacheLookup(entry=entry, source="durable", durable_status=DurableStatus.ok)

    async def write(self, scope: ConversationScope, entry: SummaryCacheEntry) -> DurableStatus:
        """Overwrite the in-process entry and best-effort upsert the durable row."""
        self._memory[scope.cache_key] = entry

        if self.store is None:
            return DurableStatus.disabled

        row = SummaryRow(
            owner_id=scope.owner_id,
            conversation_key=scope.conversation_key,
            source_hash=entry.source_fingerprint,
            source_message_count=entry.source_message_count,
            summary=entry.summary,
        )
        try:
            await self.store.upsert(row)
        except Exception as e:
            # In-process tier alone keeps this process correct.
            logger.warning(f"Summary store write failed for {scope.cache_key}: {e}")
            return DurableStatus.unavailable
        return DurableStatus.ok

    def peek(self, scope: ConversationScope) -> SummaryCacheEntry | None:
        """Raw in-process entry for ``scope``, matching or not."""
        return self._memory.get(scope.cache_key)

    def clear(self) -> None:
        """Drop the in-process tier."""
        self._memory.clear()

    def __len__(self) -> int:
        return len(self._memory)
