"""
Main Orchestrator for HomeSplit

This module ties together all the components and defines the
end-to-end flows for:
1. Expenses (form → validate → save → audit → recompute balances)
2. Shopping list (add / tick off / edit / clear)
3. Balances (ledger → fold → who owes whom)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense is saved without passing validation
- Balances are always derived from the stored ledger, never patched
- Every write is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog

from homesplit.audit import AuditLogger, create_correlation_id
from homesplit.config import get_settings
from homesplit.models import (
    Balance,
    BalanceSheet,
    Expense,
    ItemPriority,
    Roster,
    ShoppingItem,
    UserId,
    ValidationResult,
)
from homesplit.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsShoppingStorage,
    InMemoryExpenseStorage,
    InMemoryShoppingStorage,
    NotFoundError,
    ShoppingStorageInterface,
    StorageConnectionError,
    StorageError,
)
from homesplit.settlement import compute_balances, resolve_split
from homesplit.sync import BalanceRecomputer
from homesplit.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class ExpenseRejectedError(Exception):
    """Raised when a proposed expense fails validation."""

    def __init__(self, validation_result: ValidationResult):
        self.validation_result = validation_result
        messages = "; ".join(validation_result.error_messages)
        super().__init__(f"Expense rejected: {messages}")


class ExpenseFlow:
    """
    Orchestrates recording and removing expenses.

    Flow:
    1. Preview → Show who would owe what (nothing saved)
    2. Validate → Two-stage validation
    3. Save → Persist to storage
    4. Audit → Record who did what
    5. Notify → Tell the recomputer the ledger changed

    An expense that fails validation is NEVER saved.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        roster: Roster,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        recomputer: Optional[BalanceRecomputer] = None,
    ):
        self._storage = storage
        self._roster = roster
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger
        self._recomputer = recomputer

    def preview_split(self, expense: Expense) -> dict[UserId, Decimal]:
        """Debts this expense would create, without saving it."""
        return resolve_split(expense)

    def validate_expense(self, expense: Expense) -> tuple[ValidationResult, str]:
        """
        Validate a proposed expense.

        Returns:
            (validation_result, user_message)
        """
        result = self._validator.validate(expense, self._roster)
        message = self._validator.get_user_friendly_summary(result)
        return result, message

    async def record_expense(
        self,
        expense: Expense,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate and save an expense.

        Raises:
            ExpenseRejectedError: If validation found errors
            StorageError: If the expense couldn't be saved
        """
        correlation_id = correlation_id or create_correlation_id()

        result, _ = self.validate_expense(expense)
        if not result.is_valid:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                    if i.severity == "error"
                ]
                await self._audit_logger.log_expense_rejected(
                    expense_id=expense.id,
                    paid_by=expense.paid_by,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            raise ExpenseRejectedError(result)

        try:
            await self._storage.save_expense(expense)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_recorded(
                expense_id=expense.id,
                paid_by=expense.paid_by,
                amount=str(expense.amount),
                split_type=expense.split_type.value,
                correlation_id=correlation_id,
            )

        if self._recomputer:
            self._recomputer.notify_changed()

        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        actor: Optional[UserId] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Remove an expense from the ledger.

        Returns True if the expense existed and was removed.
        """
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._storage.delete_expense(expense_id)
        if not deleted:
            return False

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                actor=actor,
                correlation_id=correlation_id,
            )

        if self._recomputer:
            self._recomputer.notify_changed()

        return True

    async def list_expenses(self) -> list[Expense]:
        """All stored expenses, newest first."""
        return await self._storage.list_expenses()


class ShoppingFlow:
    """
    Orchestrates the shared shopping list.

    Shopping items never affect balances; buying something off the list
    is recorded separately as an expense.
    """

    UPDATABLE_FIELDS = frozenset(
        {"name", "quantity", "assigned_to", "priority", "notes", "completed"}
    )

    def __init__(
        self,
        storage: ShoppingStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _get_or_raise(self, item_id: UUID) -> ShoppingItem:
        item = await self._storage.get_item_by_id(item_id)
        if item is None:
            raise NotFoundError(f"Shopping item not found: {item_id}")
        return item

    async def add_item(
        self,
        name: str,
        added_by: UserId,
        quantity: Optional[str] = None,
        assigned_to: Optional[UserId] = None,
        priority: ItemPriority = ItemPriority.MEDIUM,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ShoppingItem:
        """Add an item to the list."""
        item = ShoppingItem(
            name=name,
            added_by=added_by,
            quantity=quantity or None,
            assigned_to=assigned_to or None,
            priority=priority,
            notes=notes or None,
        )
        await self._storage.save_item(item)

        if self._audit_logger:
            await self._audit_logger.log_shopping_item_added(
                item_id=item.id,
                name=item.name,
                actor=added_by,
                correlation_id=correlation_id,
            )

        return item

    async def update_item(
        self,
        item_id: UUID,
        actor: Optional[UserId] = None,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> ShoppingItem:
        """
        Change fields of an existing item.

        Raises:
            NotFoundError: If the item doesn't exist
            ValueError: If a change names a field that can't be edited
        """
        unknown = set(changes) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        item = await self._get_or_raise(item_id)
        updated = ShoppingItem.model_validate({**item.model_dump(), **changes})
        await self._storage.update_item(updated)

        if self._audit_logger:
            await self._audit_logger.log_shopping_item_updated(
                item_id=item_id,
                name=updated.name,
                changes={k: str(v) for k, v in changes.items()},
                actor=actor,
                correlation_id=correlation_id,
            )

        return updated

    async def set_completed(
        self,
        item_id: UUID,
        completed: bool,
        actor: Optional[UserId] = None,
    ) -> ShoppingItem:
        return await self.update_item(item_id, actor=actor, completed=completed)

    async def toggle_item(
        self,
        item_id: UUID,
        actor: Optional[UserId] = None,
    ) -> ShoppingItem:
        """Flip an item between bought and not bought."""
        item = await self._get_or_raise(item_id)
        return await self.set_completed(item_id, not item.completed, actor=actor)

    async def delete_item(
        self,
        item_id: UUID,
        actor: Optional[UserId] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        item = await self._storage.get_item_by_id(item_id)
        if item is None:
            return False

        deleted = await self._storage.delete_item(item_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_shopping_item_deleted(
                item_id=item_id,
                name=item.name,
                actor=actor,
                correlation_id=correlation_id,
            )
        return deleted

    async def clear_completed(self, actor: Optional[UserId] = None) -> int:
        """
        Remove every bought item.

        Returns the number of items removed.
        """
        correlation_id = create_correlation_id()
        removed = 0
        for item in await self._storage.list_items():
            if item.completed and await self.delete_item(
                item.id, actor=actor, correlation_id=correlation_id
            ):
                removed += 1
        return removed

    async def list_items(self) -> list[ShoppingItem]:
        """Items still to buy first, then bought ones; newest first within each."""
        items = sorted(
            await self._storage.list_items(),
            key=lambda i: i.added_at,
            reverse=True,
        )
        return sorted(items, key=lambda i: i.completed)


class BalanceFlow:
    """
    Serves balances to the presentation layer.

    With a recomputer, the last published sheet is reused until the
    ledger changes. Without one, every call folds the ledger afresh.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        roster: Roster,
        recomputer: Optional[BalanceRecomputer] = None,
    ):
        self._storage = storage
        self._roster = roster
        self._recomputer = recomputer

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def last_error(self) -> Optional[StorageError]:
        """Set when the last refresh couldn't read the ledger."""
        return self._recomputer.last_error if self._recomputer else None

    async def get_balances(self) -> Optional[BalanceSheet]:
        """
        Current balance sheet.

        Returns None only when balances have never been computed and the
        ledger can't be read right now (see last_error).
        """
        if self._recomputer:
            return await self._recomputer.ensure_current()

        snapshot = tuple(await self._storage.list_expenses())
        return BalanceSheet(
            balances=compute_balances(snapshot, self._roster),
            expense_count=len(snapshot),
        )

    async def get_user_balance(self, user_id: UserId) -> Optional[Balance]:
        sheet = await self.get_balances()
        return sheet.get(user_id) if sheet else None


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseFlow, ShoppingFlow, BalanceFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (expense_flow, shopping_flow, balance_flow, sheets_client)
    """
    settings = get_settings()
    roster = settings.household.build_roster()

    sheets_client = None
    expense_storage: ExpenseStorageInterface = InMemoryExpenseStorage()
    shopping_storage: ShoppingStorageInterface = InMemoryShoppingStorage()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            if not settings.google_sheets.spreadsheet_id:
                raise StorageConnectionError("No spreadsheet configured")
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            sheets_client.get_spreadsheet()
            expense_storage = GoogleSheetsExpenseStorage(sheets_client)
            shopping_storage = GoogleSheetsShoppingStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    recomputer = BalanceRecomputer(
        expense_storage,
        roster,
        debounce_seconds=settings.app.recompute_debounce_seconds,
        audit_logger=audit_logger,
    )

    expense_flow = ExpenseFlow(
        storage=expense_storage,
        roster=roster,
        validator=ExpenseValidator(settings.app),
        audit_logger=audit_logger,
        recomputer=recomputer,
    )

    shopping_flow = ShoppingFlow(
        storage=shopping_storage,
        audit_logger=audit_logger,
    )

    balance_flow = BalanceFlow(
        storage=expense_storage,
        roster=roster,
        recomputer=recomputer,
    )

    return expense_flow, shopping_flow, balance_flow, sheets_client
