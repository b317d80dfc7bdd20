"""
Tests for storage backends.

The Google Sheets backend runs against an in-process fake worksheet;
no real API calls are made.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from homesplit.models import (
    AuditEventBuilder,
    CustomSplit,
    EqualSplit,
    Expense,
    FullPaymentSplit,
    ItemPriority,
    ShoppingItem,
)
from homesplit.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsExpenseStorage,
    GoogleSheetsShoppingStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryShoppingStorage,
    NotFoundError,
    StorageConnectionError,
)
from homesplit.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    EXPENSE_COLUMNS,
    SHOPPING_COLUMNS,
    expense_to_row,
    item_to_row,
    row_to_expense,
    row_to_item,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index):
        del self.rows[index - 1]

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)


class BrokenWorksheet:
    def get_all_values(self):
        raise OSError("network unreachable")

    def append_row(self, values, value_input_option=None):
        raise OSError("network unreachable")


class FakeSheetsClient:
    def __init__(self):
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS)
        self.shopping = FakeWorksheet(SHOPPING_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_expenses_sheet(self):
        return self.expenses

    def get_shopping_sheet(self):
        return self.shopping

    def get_audit_sheet(self):
        return self.audit


def make_expense(**overrides):
    data = dict(
        description="Groceries",
        amount=Decimal("300"),
        paid_by="sachin",
        split=EqualSplit(participants=["sachin", "sunny", "adarsh"]),
        date=datetime(2024, 3, 1, 10, 0),
        category="Groceries",
    )
    data.update(overrides)
    return Expense(**data)


class TestInMemoryExpenseStorage:
    """Tests for the in-memory expense ledger."""

    def test_save_and_get(self):
        storage = InMemoryExpenseStorage()
        expense = make_expense()
        assert asyncio.run(storage.save_expense(expense)) is True
        assert asyncio.run(storage.get_expense_by_id(expense.id)) == expense

    def test_duplicate_rejected(self):
        expense = make_expense()
        storage = InMemoryExpenseStorage([expense])
        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_expense(expense))

    def test_list_newest_first(self):
        old = make_expense(date=datetime(2024, 1, 1))
        new = make_expense(date=datetime(2024, 6, 1))
        storage = InMemoryExpenseStorage([old, new])
        assert asyncio.run(storage.list_expenses()) == [new, old]

    def test_delete(self):
        expense = make_expense()
        storage = InMemoryExpenseStorage([expense])
        assert asyncio.run(storage.delete_expense(expense.id)) is True
        assert asyncio.run(storage.delete_expense(expense.id)) is False
        assert asyncio.run(storage.list_expenses()) == []


class TestInMemoryShoppingStorage:
    """Tests for the in-memory shopping list."""

    def test_update_missing_item(self):
        storage = InMemoryShoppingStorage()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_item(ShoppingItem(name="Milk", added_by="sunny")))

    def test_crud(self):
        storage = InMemoryShoppingStorage()
        item = ShoppingItem(name="Milk", added_by="sunny")
        asyncio.run(storage.save_item(item))
        done = item.model_copy(update={"completed": True})
        asyncio.run(storage.update_item(done))
        assert asyncio.run(storage.get_item_by_id(item.id)).completed is True
        assert asyncio.run(storage.delete_item(item.id)) is True
        assert asyncio.run(storage.list_items()) == []


class TestInMemoryAuditStorage:
    """Tests for the in-memory audit trail."""

    def test_queries(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        expense_id = uuid4()
        asyncio.run(storage.append_event(AuditEventBuilder.expense_recorded(
            expense_id, "sachin", "300", "equal", correlation_id=correlation_id,
        )))
        asyncio.run(storage.append_event(AuditEventBuilder.expense_deleted(
            expense_id, "sunny",
        )))

        by_correlation = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(by_correlation) == 1

        by_entity = asyncio.run(storage.get_events_by_entity("expense", expense_id))
        assert len(by_entity) == 2

        assert len(asyncio.run(storage.get_recent_events(limit=1))) == 1


class TestRowMapping:
    """Tests for converting models to and from sheet rows."""

    def test_equal_expense_row(self):
        expense = make_expense(notes="weekly")
        row = expense_to_row(expense)
        assert len(row) == len(EXPENSE_COLUMNS)
        assert row[5] == "equal"
        assert row[7] == ""
        assert row_to_expense(row) == expense

    def test_custom_expense_row(self):
        expense = make_expense(
            split=CustomSplit(custom_splits={"sunny": Decimal("120.50"), "adarsh": Decimal("179.50")}),
        )
        restored = row_to_expense(expense_to_row(expense))
        assert restored.split == expense.split
        assert restored.split.custom_splits["sunny"] == Decimal("120.50")

    def test_loan_expense_row(self):
        expense = make_expense(split=FullPaymentSplit(loan_to=["adarsh"]), category=None)
        restored = row_to_expense(expense_to_row(expense))
        assert restored.split == FullPaymentSplit(loan_to=["adarsh"])
        assert restored.category is None

    def test_short_row_uses_defaults(self):
        expense_id = uuid4()
        row = [str(expense_id), "2024-03-01T10:00:00", "Tea", "40", "sunny"]
        expense = row_to_expense(row)
        assert expense.split == EqualSplit()
        assert expense.notes is None

    def test_item_row(self):
        item = ShoppingItem(
            name="Rice",
            quantity="5 kg",
            priority=ItemPriority.HIGH,
            completed=True,
            added_by="adarsh",
        )
        row = item_to_row(item)
        assert len(row) == len(SHOPPING_COLUMNS)
        assert row_to_item([str(v) for v in row]) == item


class TestGoogleSheetsExpenseStorage:
    """Tests for the Sheets ledger against a fake worksheet."""

    def test_save_list_delete(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsExpenseStorage(client)
        old = make_expense(date=datetime(2024, 1, 1))
        new = make_expense(date=datetime(2024, 2, 1), description="Rent")

        asyncio.run(storage.save_expense(old))
        asyncio.run(storage.save_expense(new))
        assert len(client.expenses.rows) == 3
        assert asyncio.run(storage.list_expenses()) == [new, old]
        assert asyncio.run(storage.get_expense_by_id(old.id)) == old

        assert asyncio.run(storage.delete_expense(old.id)) is True
        assert asyncio.run(storage.delete_expense(old.id)) is False
        assert asyncio.run(storage.list_expenses()) == [new]

    def test_duplicate_rejected(self):
        storage = GoogleSheetsExpenseStorage(FakeSheetsClient())
        expense = make_expense()
        asyncio.run(storage.save_expense(expense))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_expense(expense))

    def test_malformed_rows_skipped(self):
        client = FakeSheetsClient()
        good = make_expense()
        client.expenses.append_row(expense_to_row(good))
        client.expenses.append_row(["not-a-uuid", "yesterday", "?", "lots", "x"])
        client.expenses.append_row([])
        client.expenses.append_row([str(uuid4()), "2024-03-01T10:00:00", "Bad", "abc", "sunny"])

        storage = GoogleSheetsExpenseStorage(client)
        assert asyncio.run(storage.list_expenses()) == [good]

    def test_unreachable_sheet_is_connection_error(self):
        client = FakeSheetsClient()
        client.expenses = BrokenWorksheet()
        storage = GoogleSheetsExpenseStorage(client)
        with pytest.raises(StorageConnectionError):
            asyncio.run(storage.list_expenses())


class TestGoogleSheetsShoppingStorage:
    """Tests for the Sheets shopping list against a fake worksheet."""

    def test_update_rewrites_row(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsShoppingStorage(client)
        item = ShoppingItem(name="Milk", added_by="sunny")
        asyncio.run(storage.save_item(item))

        updated = item.model_copy(update={"completed": True, "quantity": "2 L"})
        asyncio.run(storage.update_item(updated))

        assert asyncio.run(storage.get_item_by_id(item.id)) == updated

    def test_update_missing(self):
        storage = GoogleSheetsShoppingStorage(FakeSheetsClient())
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_item(ShoppingItem(name="Milk", added_by="sunny")))

    def test_delete(self):
        storage = GoogleSheetsShoppingStorage(FakeSheetsClient())
        item = ShoppingItem(name="Milk", added_by="sunny")
        asyncio.run(storage.save_item(item))
        assert asyncio.run(storage.delete_item(item.id)) is True
        assert asyncio.run(storage.list_items()) == []


class TestGoogleSheetsAuditStorage:
    """Tests for the Sheets audit trail."""

    def test_append_and_query(self):
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        correlation_id = uuid4()
        item_id = uuid4()
        event = AuditEventBuilder.shopping_item_updated(
            item_id, "Milk", {"completed": "True"}, "sunny", correlation_id=correlation_id,
        )
        assert asyncio.run(storage.append_event(event)) is True

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details == {"name": "Milk", "changes": {"completed": "True"}}
        assert events[0].actor == "sunny"

        assert len(asyncio.run(storage.get_events_by_entity("shopping_item", item_id))) == 1

    def test_append_failure_does_not_raise(self):
        client = FakeSheetsClient()
        client.audit = BrokenWorksheet()
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.recompute_failed(error_message="boom")
        assert asyncio.run(storage.append_event(event)) is False
