"""Tests for reporting aggregations and CSV export."""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

from homesplit.models import EqualSplit, Expense, PeriodSummary
from homesplit.reports import (
    CSV_HEADERS,
    UNCATEGORIZED,
    average_per_day,
    categories_used,
    expenses_in_month,
    expenses_in_range,
    expenses_on_day,
    expenses_paid_by,
    expenses_to_csv,
    filter_expenses,
    group_by_category,
    group_by_day,
    group_by_month,
    total_expenses,
)


class TestGrouping:
    """Tests for day / month / category summaries."""

    def test_group_by_month(self, ledger):
        assert group_by_month(ledger) == {
            "2024-03": PeriodSummary(total=Decimal("1200"), count=2),
            "2024-04": PeriodSummary(total=Decimal("200"), count=1),
        }

    def test_group_by_day(self, ledger):
        summary = group_by_day(ledger)
        assert list(summary) == ["2024-03-01", "2024-03-05", "2024-04-02"]
        assert summary["2024-03-05"].total == Decimal("900")
        assert summary["2024-03-05"].count == 1

    def test_same_day_accumulates(self):
        expenses = [
            Expense(amount=Decimal("10"), paid_by="a", date=datetime(2024, 1, 1, 8)),
            Expense(amount=Decimal("15.5"), paid_by="b", date=datetime(2024, 1, 1, 23, 59)),
        ]
        assert group_by_day(expenses) == {
            "2024-01-01": PeriodSummary(total=Decimal("25.5"), count=2),
        }

    def test_grouping_is_order_independent(self, ledger):
        assert group_by_month(ledger) == group_by_month(list(reversed(ledger)))
        assert group_by_day(ledger) == group_by_day(list(reversed(ledger)))

    def test_group_by_category_uncategorized(self, ledger):
        extra = Expense(amount=Decimal("5"), paid_by="a", date=datetime(2024, 3, 2))
        summary = group_by_category(ledger + [extra])
        assert summary[UNCATEGORIZED] == PeriodSummary(total=Decimal("5"), count=1)
        assert summary["Utilities"].total == Decimal("900")

    def test_empty(self):
        assert group_by_month([]) == {}
        assert group_by_day([]) == {}


class TestFilters:
    """Tests for history filters and totals."""

    def test_total(self, ledger):
        assert total_expenses(ledger) == Decimal("1400")
        assert total_expenses([]) == Decimal("0")

    def test_paid_by(self, ledger):
        assert [e.description for e in expenses_paid_by(ledger, "sachin")] == [
            "Vegetables", "Cab for Adarsh",
        ]

    def test_range_is_inclusive(self, ledger):
        result = expenses_in_range(ledger, date(2024, 3, 1), date(2024, 3, 5))
        assert len(result) == 2

    def test_open_ended_range(self, ledger):
        assert len(expenses_in_range(ledger, date_from=date(2024, 3, 2))) == 2
        assert len(expenses_in_range(ledger, date_to=date(2024, 3, 1))) == 1

    def test_in_month(self, ledger):
        assert len(expenses_in_month(ledger, 2024, 3)) == 2
        assert expenses_in_month(ledger, 2024, 5) == []

    def test_on_day(self, ledger):
        assert [e.description for e in expenses_on_day(ledger, date(2024, 4, 2))] == [
            "Cab for Adarsh",
        ]

    def test_filter_expenses(self, ledger):
        assert len(filter_expenses(ledger)) == 3
        assert len(filter_expenses(ledger, paid_by="sachin", category="Groceries")) == 1
        assert filter_expenses(ledger, paid_by="sunny", category="Groceries") == []

    def test_categories_used(self, ledger):
        assert categories_used(ledger) == ["Groceries", "Transportation", "Utilities"]

    def test_average_per_day(self, ledger):
        # March 2024 has 31 days
        assert average_per_day(ledger, 2024, 3) == Decimal("1200") / 31


class TestCsvExport:
    """Tests for the history CSV download."""

    def test_headers_and_rows(self, ledger, roster):
        text = expenses_to_csv(ledger, roster)
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == CSV_HEADERS
        assert len(rows) == 4
        assert rows[1] == [
            "2024-03-01", "09:30:00", "Vegetables", "300", "Sachin",
            "Groceries", "equal", "Sachin; Sunny; Adarsh",
        ]

    def test_fields_quoted(self, roster):
        expense = Expense(
            description='Pizza, "large"',
            amount=Decimal("450"),
            paid_by="sunny",
            split=EqualSplit(participants=["sunny", "adarsh"]),
            date=datetime(2024, 2, 14, 20, 0),
        )
        text = expenses_to_csv([expense], roster)
        assert '"Pizza, ""large"""' in text
        assert text.splitlines()[1].startswith('"2024-02-14"')
        assert f'"{UNCATEGORIZED}"' in text

    def test_empty_export_has_header(self, roster):
        assert expenses_to_csv([], roster).strip() == ",".join(f'"{h}"' for h in CSV_HEADERS)
