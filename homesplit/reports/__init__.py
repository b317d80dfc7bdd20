"""Reporting package."""

from homesplit.reports.aggregations import (
    UNCATEGORIZED,
    average_per_day,
    categories_used,
    expenses_in_month,
    expenses_in_range,
    expenses_on_day,
    expenses_paid_by,
    filter_expenses,
    group_by_category,
    group_by_day,
    group_by_month,
    total_expenses,
)
from homesplit.reports.export import CSV_HEADERS, expenses_to_csv

__all__ = [
    "CSV_HEADERS",
    "UNCATEGORIZED",
    "average_per_day",
    "categories_used",
    "expenses_in_month",
    "expenses_in_range",
    "expenses_on_day",
    "expenses_paid_by",
    "expenses_to_csv",
    "filter_expenses",
    "group_by_category",
    "group_by_day",
    "group_by_month",
    "total_expenses",
]
