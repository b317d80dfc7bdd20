"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and offline use
3. Keep the balance engine decoupled from storage entirely

The balance engine never talks to storage. It only needs a snapshot of
expenses, which the flows and the recomputer fetch through this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from homesplit.models.audit import AuditEvent
from homesplit.models.expense import Expense
from homesplit.models.shopping import ShoppingItem


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for the expense ledger.

    Expenses are never updated in place - only saved and deleted.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense.

        Args:
            expense: The validated expense to save

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If an expense with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """
        List every expense, newest first.

        Returns:
            A complete, consistent snapshot of the ledger

        Raises:
            StorageConnectionError: If the backend can't be reached
        """
        pass


class ShoppingStorageInterface(ABC):
    """Abstract interface for the shared shopping list."""

    @abstractmethod
    async def save_item(self, item: ShoppingItem) -> bool:
        """Save a new shopping item."""
        pass

    @abstractmethod
    async def get_item_by_id(self, item_id: UUID) -> Optional[ShoppingItem]:
        """Retrieve an item by its ID, or None."""
        pass

    @abstractmethod
    async def update_item(self, item: ShoppingItem) -> bool:
        """
        Replace a stored item with an updated copy.

        Raises:
            NotFoundError: If the item doesn't exist
        """
        pass

    @abstractmethod
    async def delete_item(self, item_id: UUID) -> bool:
        """Delete an item. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def list_items(self) -> list[ShoppingItem]:
        """List every item, newest first."""
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
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
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


class StorageConnectionError(StorageError):
    """
    Could not reach the storage backend.

    This is retryable, and the UI must show it differently from
    "no expenses yet".
    """
    pass
