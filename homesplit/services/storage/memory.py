"""
In-Memory Storage Implementation

Used by the test suite and as the offline fallback when Google Sheets is
not configured. Data lives only as long as the process.
"""

from typing import Optional
from uuid import UUID

from homesplit.models.audit import AuditEvent
from homesplit.models.expense import Expense
from homesplit.models.shopping import ShoppingItem
from homesplit.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ShoppingStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expense ledger held in a dict keyed by expense ID."""

    def __init__(self, expenses: Optional[list[Expense]] = None):
        self._expenses: dict[UUID, Expense] = {}
        for expense in expenses or []:
            self._expenses[expense.id] = expense

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._expenses:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._expenses[expense.id] = expense
        return True

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    async def delete_expense(self, expense_id: UUID) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    async def list_expenses(self) -> list[Expense]:
        return sorted(self._expenses.values(), key=lambda e: e.date, reverse=True)


class InMemoryShoppingStorage(ShoppingStorageInterface):
    """Shopping list held in a dict keyed by item ID."""

    def __init__(self, items: Optional[list[ShoppingItem]] = None):
        self._items: dict[UUID, ShoppingItem] = {}
        for item in items or []:
            self._items[item.id] = item

    async def save_item(self, item: ShoppingItem) -> bool:
        if item.id in self._items:
            raise DuplicateError(f"Shopping item already exists: {item.id}")
        self._items[item.id] = item
        return True

    async def get_item_by_id(self, item_id: UUID) -> Optional[ShoppingItem]:
        return self._items.get(item_id)

    async def update_item(self, item: ShoppingItem) -> bool:
        if item.id not in self._items:
            raise NotFoundError(f"Shopping item not found: {item.id}")
        self._items[item.id] = item
        return True

    async def delete_item(self, item_id: UUID) -> bool:
        return self._items.pop(item_id, None) is not None

    async def list_items(self) -> list[ShoppingItem]:
        return sorted(self._items.values(), key=lambda i: i.added_at, reverse=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
