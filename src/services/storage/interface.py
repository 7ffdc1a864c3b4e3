"""
Abstract Storage Interface

DESIGN DECISION: The engine never talks to a database directly.
The record store is an external collaborator behind this interface.
This allows us to:
1. Swap the backing store without touching report logic
2. Use in-memory storage for testing
3. Keep fetching (the only I/O, and the only suspension point) out of the engine

The interface is intentionally read-only for records. Creating, updating
and deleting records, live subscriptions and retries all belong to the
store itself.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.records import RecordKind, RecordSnapshot


class RecordStoreInterface(ABC):
    """
    Abstract interface for reading a user's financial records.

    Any store implementation must implement these methods.
    """

    @abstractmethod
    async def fetch_raw(self, user_id: str) -> Mapping[RecordKind, list[dict]]:
        """
        Fetch every raw document of a user, grouped by record kind.

        Args:
            user_id: Owner of the records

        Returns:
            Raw store documents per kind (kinds without documents may be absent)

        Raises:
            StorageError: If the store cannot be read
            NotFoundError: If the user is unknown to the store
        """
        pass

    @abstractmethod
    async def fetch_snapshot(self, user_id: str) -> RecordSnapshot:
        """
        Fetch and normalize every record of a user at one moment.

        Args:
            user_id: Owner of the records

        Returns:
            An immutable snapshot of normalized records

        Raises:
            StorageError: If the store cannot be read
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one report request).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
