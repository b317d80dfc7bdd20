"""Validation package."""

from homesplit.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
