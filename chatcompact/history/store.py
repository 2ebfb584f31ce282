"""Durable summary store: survives process restarts."""

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from chatcompact.utils.helpers import safe_filename


class SummaryStoreUnavailable(Exception):
    """The durable store cannot serve requests right now.

    Raised for a missing backing directory, I/O errors and corrupt rows.
    Callers treat it as "durable tier unavailable", never as a hard failure.
    """


@dataclass
class SummaryRow:
    """One stored summary, unique per (owner_id, conversation_key)."""

    owner_id: str
    conversation_key: str
    source_hash: str
    source_message_count: int
    summary: str
    updated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class SummaryStore(ABC):
    """
    Abstract durable key-value store for conversation summaries.

    Implementations must raise SummaryStoreUnavailable for any backend
    failure so the cache can degrade to its in-process tier.
    """

    @abstractmethod
    async def get(self, owner_id: str, conversation_key: str) -> SummaryRow | None:
        """Fetch the row for a scope, or None if nothing is stored."""
        pass

    @abstractmethod
    async def upsert(self, row: SummaryRow) -> None:
        """Insert or replace the row for ``(row.owner_id, row.conversation_key)``."""
        pass

    @abstractmethod
    async def list_rows(self, owner_id: str | None = None) -> list[SummaryRow]:
        """List stored rows, optionally for one owner."""
        pass


class JsonSummaryStore(SummaryStore):
    """
    File-backed summary store.

    Directory layout:
        {root}/
        └── {owner_id}/
            └── {conversation_key}.json

    With ``auto_create=False`` a missing root means the store has not been
    provisioned yet; every call raises SummaryStoreUnavailable until
    ``migrate()`` runs. Disk I/O runs in a worker thread.
    """

    def __init__(self, root: Path, auto_create: bool = True):
        self.root = Path(root).expanduser()
        self.auto_create = auto_create

    def migrate(self) -> None:
        """Create the store root."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SummaryStoreUnavailable(f"Cannot create summary store at {self.root}: {e}") from e
        logger.info(f"Summary store ready at {self.root}")

    async def get(self, owner_id: str, conversation_key: str) -> SummaryRow | None:
        return await asyncio.to_thread(self._get, owner_id, conversation_key)

    async def upsert(self, row: SummaryRow) -> None:
        await asyncio.to_thread(self._upsert, row)

    async def list_rows(self, owner_id: str | None = None) -> list[SummaryRow]:
        return await asyncio.to_thread(self._list_rows, owner_id)

    # ── internal helpers ────────────────────────────────────────

    def _get(self, owner_id: str, conversation_key: str) -> SummaryRow | None:
        self._check_root()
        path = self._row_path(owner_id, conversation_key)
        if not path.exists():
            return None

        row = self._read_row(path)
        # Sanitized names can collide; the stored identity is authoritative.
        if row.owner_id != owner_id or row.conversation_key != conversation_key:
            return None
        return row

    def _upsert(self, row: SummaryRow) -> None:
        self._check_root()
        path = self._row_path(row.owner_id, row.conversation_key)
        payload = json.dumps(asdict(row), ensure_ascii=False, indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise SummaryStoreUnavailable(f"Failed to write {path}: {e}") from e

    def _list_rows(self, owner_id: str | None) -> list[SummaryRow]:
        self._check_root()
        try:
            if owner_id is not None:
                owner_dirs = [self.root / safe_filename(owner_id)]
            else:
                owner_dirs = [p for p in self.root.iterdir() if p.is_dir()]
        except OSError as e:
            raise SummaryStoreUnavailable(f"Failed to list {self.root}: {e}") from e

        rows = []
        for owner_dir in owner_dirs:
            if not owner_dir.is_dir():
                continue
            for path in owner_dir.glob("*.json"):
                try:
                    row = self._read_row(path)
                except SummaryStoreUnavailable as e:
                    logger.warning(f"Skipping unreadable summary row: {e}")
                    continue
                if owner_id is not None and row.owner_id != owner_id:
                    continue
                rows.append(row)

        return sorted(rows, key=lambda r: r.updated_at, reverse=True)

    def _check_root(self) -> None:
        if self.root.is_dir():
            return
        if self.auto_create:
            self.migrate()
            return
        raise SummaryStoreUnavailable(f"Summary store not provisioned at {self.root}")

    def _row_path(self, owner_id: str, conversation_key: str) -> Path:
        return self.root / safe_filename(owner_id) / f"{safe_filename(conversation_key)}.json"

    @staticmethod
    def _read_row(path: Path) -> SummaryRow:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return SummaryRow(
                owner_id=data["owner_id"],
                conversation_key=data["conversation_key"],
                source_hash=data["source_hash"],
                source_message_count=int(data["source_message_count"]),
                summary=data["summary"],
                updated_at=data.get("updated_at", ""),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise SummaryStoreUnavailable(f"Failed to read {path}: {e}") from e
