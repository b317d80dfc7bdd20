"""
Reporting Aggregations

Trend data for the history screen: totals and counts grouped by calendar
day, month or category, plus the filters the history view needs.

Like the balance fold, these are deterministic and order-independent -
they only add things up. They never touch storage; callers pass in a
snapshot.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional

from homesplit.models.balance import PeriodSummary
from homesplit.models.expense import Expense
from homesplit.models.roster import UserId


UNCATEGORIZED = "Uncategorized"


def _group(
    expenses: Iterable[Expense],
    key_for: Callable[[Expense], str],
) -> dict[str, PeriodSummary]:
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}

    for expense in expenses:
        key = key_for(expense)
        totals[key] = totals.get(key, Decimal("0")) + expense.amount
        counts[key] = counts.get(key, 0) + 1

    return {
        key: PeriodSummary(total=totals[key], count=counts[key])
        for key in sorted(totals)
    }


def group_by_month(expenses: Iterable[Expense]) -> dict[str, PeriodSummary]:
    """Totals per calendar month, keyed "YYYY-MM"."""
    return _group(expenses, lambda e: e.date.strftime("%Y-%m"))


def group_by_day(expenses: Iterable[Expense]) -> dict[str, PeriodSummary]:
    """Totals per calendar day, keyed "YYYY-MM-DD"."""
    return _group(expenses, lambda e: e.date.strftime("%Y-%m-%d"))


def group_by_category(expenses: Iterable[Expense]) -> dict[str, PeriodSummary]:
    """Totals per category; expenses without one land in "Uncategorized"."""
    return _group(expenses, lambda e: e.category or UNCATEGORIZED)


def total_expenses(expenses: Iterable[Expense]) -> Decimal:
    return sum((expense.amount for expense in expenses), Decimal("0"))


def expenses_paid_by(expenses: Iterable[Expense], user_id: UserId) -> list[Expense]:
    return [expense for expense in expenses if expense.paid_by == user_id]


def expenses_in_range(
    expenses: Iterable[Expense],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[Expense]:
    """Expenses recorded between two calendar dates, both inclusive."""
    result = []
    for expense in expenses:
        day = expense.date.date()
        if date_from and day < date_from:
            continue
        if date_to and day > date_to:
            continue
        result.append(expense)
    return result


def expenses_in_month(expenses: Iterable[Expense], year: int, month: int) -> list[Expense]:
    last_day = calendar.monthrange(year, month)[1]
    return expenses_in_range(
        expenses,
        date_from=date(year, month, 1),
        date_to=date(year, month, last_day),
    )


def expenses_on_day(expenses: Iterable[Expense], day: date) -> list[Expense]:
    return expenses_in_range(expenses, date_from=day, date_to=day)


def filter_expenses(
    expenses: Iterable[Expense],
    paid_by: Optional[UserId] = None,
    category: Optional[str] = None,
) -> list[Expense]:
    """History-screen filters. None means "all"."""
    result = []
    for expense in expenses:
        if paid_by and expense.paid_by != paid_by:
            continue
        if category and expense.category != category:
            continue
        result.append(expense)
    return result


def categories_used(expenses: Iterable[Expense]) -> list[str]:
    """Distinct non-empty categories, sorted."""
    return sorted({expense.category for expense in expenses if expense.category})


def average_per_day(expenses: Iterable[Expense], year: int, month: int) -> Decimal:
    """Average daily spend over every day of the month, not just days with expenses."""
    days_in_month = calendar.monthrange(year, month)[1]
    total = total_expenses(expenses_in_month(expenses, year, month))
    return total / days_in_month
