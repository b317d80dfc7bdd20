"""Balance settlement engine."""

from homesplit.settlement.calculator import (
    BalanceComputationError,
    compute_balances,
    net_balances,
)
from homesplit.settlement.resolver import resolve_split

__all__ = [
    "BalanceComputationError",
    "compute_balances",
    "net_balances",
    "resolve_split",
]
