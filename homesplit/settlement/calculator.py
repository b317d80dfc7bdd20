"""
Balance Calculator

DESIGN DECISION: Balances are a pure fold over the WHOLE expense snapshot.
There is no incremental update and no cache. The fold:
- Starts every roster member at zero (the roster is never inferred from data)
- Adds each resolved debt to both mirror tables (owes / owed_by)
- Derives net_balance = total owed to the user - total the user owes

Each pair's contributions are summed in sorted order, so rounding of
repeating shares does not depend on the order of the expenses, and
folding the same snapshot twice gives the same sheet.

FAILURE POLICY:
- A malformed single expense is skipped (logged), never raised
- Users outside the roster are ignored
- Custom splits are trusted as stored
- Only a missing roster or ledger is a hard error
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from homesplit.models.balance import Balance
from homesplit.models.expense import Expense
from homesplit.models.roster import Roster, UserId
from homesplit.settlement.resolver import resolve_split


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


class BalanceComputationError(Exception):
    """The roster or ledger needed for a balance computation is unavailable."""
    pass


def _roster_ids(roster: Union[Roster, Iterable[UserId], None]) -> list[UserId]:
    if roster is None:
        raise BalanceComputationError("Cannot compute balances without a roster")

    if isinstance(roster, Roster):
        user_ids = roster.user_ids
    elif isinstance(roster, str):
        raise BalanceComputationError(
            f"Roster must be a list of user ids, not the string {roster!r}"
        )
    else:
        user_ids = list(dict.fromkeys(roster))

    if not user_ids:
        raise BalanceComputationError("Cannot compute balances for an empty roster")
    return user_ids


def _ordered_sum(amounts: Iterable[Decimal]) -> Decimal:
    """Sum in ascending order; Decimal addition rounds, so order matters."""
    return sum(sorted(amounts), ZERO)


def _debts_for(expense: Expense, members: set[UserId]) -> list[tuple[UserId, UserId, Decimal]]:
    """(debtor, creditor, amount) entries one expense contributes."""
    payer = expense.paid_by
    if payer not in members:
        logger.debug(
            "expense_payer_not_in_roster",
            expense_id=str(expense.id),
            paid_by=payer,
        )
        return []

    debts = []
    for debtor, amount in resolve_split(expense).items():
        if debtor == payer or amount <= 0:
            continue
        if debtor not in members:
            logger.debug(
                "expense_debtor_not_in_roster",
                expense_id=str(expense.id),
                debtor=debtor,
            )
            continue
        debts.append((debtor, payer, amount))
    return debts


def compute_balances(
    expenses: Optional[Iterable[Expense]],
    roster: Union[Roster, Iterable[UserId], None],
) -> dict[UserId, Balance]:
    """
    Fold an expense snapshot into a balance per roster member.

    Args:
        expenses: The ledger snapshot (any order)
        roster: A Roster, or the member ids directly

    Returns:
        {user_id: Balance} for every roster member, in roster order

    Raises:
        BalanceComputationError: If the roster or the ledger is missing
    """
    user_ids = _roster_ids(roster)
    if expenses is None:
        raise BalanceComputationError("Cannot compute balances without an expense ledger")

    # Freeze the snapshot so a ledger mutated mid-fold can't leak in
    snapshot = tuple(expenses)
    members = set(user_ids)

    contributions: dict[tuple[UserId, UserId], list[Decimal]] = {}

    for expense in snapshot:
        try:
            debts = _debts_for(expense, members)
        except Exception as e:
            logger.warning(
                "expense_skipped",
                expense_id=str(getattr(expense, "id", "unknown")),
                error=str(e),
            )
            continue

        for debtor, creditor, amount in debts:
            contributions.setdefault((debtor, creditor), []).append(amount)

    owes: dict[UserId, dict[UserId, Decimal]] = {user_id: {} for user_id in user_ids}
    owed_by: dict[UserId, dict[UserId, Decimal]] = {user_id: {} for user_id in user_ids}
    for debtor in user_ids:
        for creditor in user_ids:
            amounts = contributions.get((debtor, creditor))
            if amounts:
                total = _ordered_sum(amounts)
                owes[debtor][creditor] = total
                owed_by[creditor][debtor] = total

    balances = {}
    for user_id in user_ids:
        total_owed = _ordered_sum(owed_by[user_id].values())
        total_owes = _ordered_sum(owes[user_id].values())
        balances[user_id] = Balance(
            user_id=user_id,
            owes=owes[user_id],
            owed_by=owed_by[user_id],
            net_balance=total_owed - total_owes,
        )

    return balances


def net_balances(balances: dict[UserId, Balance]) -> dict[UserId, Decimal]:
    """Just the net position of each user."""
    return {user_id: balance.net_balance for user_id, balance in balances.items()}
