"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and demos
3. Inject the store explicitly instead of reaching for a module-level global

The interface is intentionally simple - we're not building a full ORM.
Last write wins per entity id; there are no multi-entity transactions.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from finai.models.audit import AuditEvent
from finai.models.finance import Budget, Goal, Transaction


class RecordStoreInterface(ABC):
    """
    Abstract interface for the transaction/budget/goal store.

    Lifecycle: call init() once before use. reset() empties all three
    collections; it never removes them, so a later init() does not reseed.
    """

    @abstractmethod
    async def init(self) -> None:
        """Prepare the backing collections (idempotent)."""
        pass

    @abstractmethod
    async def reset(self) -> None:
        """Overwrite transactions, budgets and goals with empty collections."""
        pass

    # -- Transactions ------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """Return every stored transaction, in insertion order."""
        pass

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> None:
        """
        Append a transaction.

        Raises:
            DuplicateError: If a transaction with the same id exists
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> None:
        """
        Replace the transaction with the same id.

        Raises:
            NotFoundError: If no transaction has that id
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete by id. Returns False if nothing was deleted."""
        pass

    # -- Budgets -----------------------------------------------------------

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def add_budget(self, budget: Budget) -> None:
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> None:
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    # -- Goals -------------------------------------------------------------

    @abstractmethod
    async def list_goals(self) -> list[Goal]:
        pass

    @abstractmethod
    async def add_goal(self, goal: Goal) -> None:
        pass

    @abstractmethod
    async def update_goal(self, goal: Goal) -> None:
        pass

    @abstractmethod
    async def delete_goal(self, goal_id: str) -> bool:
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
        Get all events for a correlation ID (e.g., one conversation turn).

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


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
