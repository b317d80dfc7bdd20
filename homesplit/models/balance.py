"""
Balance Models

Balances are DERIVED data. They are never persisted; every query folds the
full expense ledger again, so the ledger and the balances cannot drift
apart.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from homesplit.models.roster import UserId


class Balance(BaseModel):
    """
    One user's position against everyone else.

    owes and owed_by are mirror images across users: if A owes B 10, then
    B's owed_by has A: 10. Only non-zero pairs are present.
    """

    user_id: UserId
    owes: dict[UserId, Decimal] = Field(
        default_factory=dict,
        description="Creditor -> amount this user owes them"
    )
    owed_by: dict[UserId, Decimal] = Field(
        default_factory=dict,
        description="Debtor -> amount they owe this user"
    )
    net_balance: Decimal = Field(
        default=Decimal("0"),
        description="Total owed to this user minus total this user owes"
    )

    @property
    def total_owes(self) -> Decimal:
        return sum(self.owes.values(), Decimal("0"))

    @property
    def total_owed(self) -> Decimal:
        return sum(self.owed_by.values(), Decimal("0"))

    @property
    def is_settled(self) -> bool:
        return self.net_balance == 0


class BalanceSheet(BaseModel):
    """
    A balance computation over one ledger snapshot.

    This is what the recomputer publishes to the presentation layer.
    """

    balances: dict[UserId, Balance] = Field(default_factory=dict)
    expense_count: int = Field(
        default=0,
        ge=0,
        description="Number of expenses in the folded snapshot"
    )
    computed_at: datetime = Field(default_factory=datetime.now)

    def get(self, user_id: UserId) -> Optional[Balance]:
        return self.balances.get(user_id)

    def net_balances(self) -> dict[UserId, Decimal]:
        return {user_id: balance.net_balance for user_id, balance in self.balances.items()}


class PeriodSummary(BaseModel):
    """Total spent and number of expenses in one calendar day or month."""

    total: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)
