"""CSV export of expense history."""

import csv
import io
from typing import Iterable

from homesplit.models.expense import Expense
from homesplit.models.roster import Roster
from homesplit.reports.aggregations import UNCATEGORIZED


CSV_HEADERS = [
    "Date",
    "Time",
    "Description",
    "Amount",
    "Paid By",
    "Category",
    "Split Type",
    "Participants",
]


def expenses_to_csv(expenses: Iterable[Expense], roster: Roster) -> str:
    """Render expenses as CSV text, one row per expense, every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for expense in expenses:
        writer.writerow([
            expense.date.strftime("%Y-%m-%d"),
            expense.date.strftime("%H:%M:%S"),
            expense.description,
            str(expense.amount),
            roster.display_name(expense.paid_by),
            expense.category or UNCATEGORIZED,
            expense.split_type.value,
            "; ".join(roster.display_name(user_id) for user_id in expense.participants),
        ])

    return buffer.getvalue()
