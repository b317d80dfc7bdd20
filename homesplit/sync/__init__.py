"""Keeping published balances in step with the ledger."""

from homesplit.sync.recompute import BalanceListener, BalanceRecomputer

__all__ = ["BalanceListener", "BalanceRecomputer"]
