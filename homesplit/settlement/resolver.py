"""
Split Resolver

Turns ONE expense into "who owes the payer how much".

The payer never owes themselves: when they appear among the participants
their own slice is absorbed. Equal shares use plain Decimal division with
no penny redistribution, so a 100 split three ways leaves 33.33... each.

A degenerate expense (no participants, zero or negative amount) resolves
to an empty mapping instead of raising - the balance fold treats it as a
no-op.
"""

from decimal import Decimal

from homesplit.models.expense import (
    CustomSplit,
    EqualSplit,
    Expense,
    FullPaymentSplit,
)
from homesplit.models.roster import UserId


def _is_positive(value: Decimal) -> bool:
    return value.is_finite() and value > 0


def _divide_among(
    amount: Decimal,
    debtors: list[UserId],
    payer: UserId,
) -> dict[UserId, Decimal]:
    """Equal share of amount for every debtor except the payer."""
    if not debtors:
        return {}

    share = amount / len(debtors)
    return {user_id: share for user_id in debtors if user_id != payer}


def resolve_split(expense: Expense) -> dict[UserId, Decimal]:
    """
    Resolve an expense into the amount each debtor owes the payer.

    Returns:
        {user_id: amount_owed_to_payer}, never including the payer
    """
    amount = Decimal(expense.amount)
    if not _is_positive(amount):
        return {}

    payer = expense.paid_by
    split = expense.split

    if isinstance(split, EqualSplit):
        return _divide_among(amount, split.participants, payer)

    if isinstance(split, CustomSplit):
        # Stored splits are trusted as-is; sums are checked at creation time
        return {
            user_id: Decimal(owed)
            for user_id, owed in split.custom_splits.items()
            if user_id != payer and _is_positive(Decimal(owed))
        }

    if isinstance(split, FullPaymentSplit):
        return _divide_among(amount, split.loan_to, payer)

    raise TypeError(f"Unsupported split strategy: {type(split).__name__}")
