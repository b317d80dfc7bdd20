"""Shared fixtures."""

from datetime import datetime
from decimal import Decimal

import pytest

from homesplit.config import AppSettings
from homesplit.models import (
    CustomSplit,
    EqualSplit,
    Expense,
    FullPaymentSplit,
    Member,
    Roster,
)


@pytest.fixture
def roster() -> Roster:
    return Roster(members=[
        Member(id="sachin", name="Sachin"),
        Member(id="sunny", name="Sunny"),
        Member(id="adarsh", name="Adarsh"),
    ])


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        custom_split_tolerance=Decimal("0.01"),
        max_expense_amount=Decimal("100000"),
        future_date_tolerance_days=1,
        recompute_debounce_seconds=0.0,
    )


@pytest.fixture
def ledger() -> list[Expense]:
    """A small mixed ledger with exact (non-repeating) shares."""
    return [
        Expense(
            description="Vegetables",
            amount=Decimal("300"),
            paid_by="sachin",
            split=EqualSplit(participants=["sachin", "sunny", "adarsh"]),
            date=datetime(2024, 3, 1, 9, 30),
            category="Groceries",
        ),
        Expense(
            description="Electricity",
            amount=Decimal("900"),
            paid_by="sunny",
            split=CustomSplit(custom_splits={
                "sachin": Decimal("300"),
                "sunny": Decimal("300"),
                "adarsh": Decimal("300"),
            }),
            date=datetime(2024, 3, 5, 18, 0),
            category="Utilities",
        ),
        Expense(
            description="Cab for Adarsh",
            amount=Decimal("200"),
            paid_by="sachin",
            split=FullPaymentSplit(loan_to=["adarsh"]),
            date=datetime(2024, 4, 2, 22, 15),
            category="Transportation",
        ),
    ]
