"""
In-Memory Storage

Dict-backed implementations of the storage interfaces. Used by tests and
by callers that already hold their records in memory (for example, a host
that re-invokes the engine on every live update from its own store).

Raw documents are normalized on every fetch, so each snapshot reflects the
documents as they were at that moment.
"""

import asyncio
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.records import RecordKind, RecordSnapshot
from src.normalization import RecordNormalizer
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    NotFoundError,
    RecordStoreInterface,
)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Raw documents per user and kind.

    Set `available = False` to simulate an unreachable store.
    """

    def __init__(self, normalizer: Optional[RecordNormalizer] = None):
        self._documents: dict[str, dict[RecordKind, list[dict]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._normalizer = normalizer or RecordNormalizer()
        self.available = True

    def add(self, user_id: str, kind: RecordKind, *documents: dict) -> None:
        """Add raw documents of one kind for a user."""
        self._documents[user_id][RecordKind(kind)].extend(dict(doc) for doc in documents)

    def load(self, user_id: str, documents: Mapping[RecordKind, Iterable[dict]]) -> None:
        """Add raw documents for several kinds at once."""
        for kind, docs in documents.items():
            self.add(user_id, kind, *docs)

    async def fetch_raw(self, user_id: str) -> dict[RecordKind, list[dict]]:
        if not self.available:
            raise ConnectionError("Record store is not reachable")
        if user_id not in self._documents:
            raise NotFoundError(f"No records stored for user {user_id}")
        # Yield once, like a real network fetch would
        await asyncio.sleep(0)
        return {
            kind: [dict(doc) for doc in docs]
            for kind, docs in self._documents[user_id].items()
        }

    async def fetch_snapshot(self, user_id: str) -> RecordSnapshot:
        raw = await self.fetch_raw(user_id)
        return self._normalizer.normalize_many(
            raw, taken_at=datetime.now(timezone.utc)
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
