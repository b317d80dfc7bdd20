"""
Data Models Package

This package contains all Pydantic models used in HomeSplit.
All data flowing through the system must conform to these schemas.
"""

from homesplit.models.roster import Member, Roster, UserId
from homesplit.models.expense import (
    CustomSplit,
    EqualSplit,
    Expense,
    ExpenseCategory,
    FullPaymentSplit,
    SplitStrategy,
    SplitType,
)
from homesplit.models.balance import Balance, BalanceSheet, PeriodSummary
from homesplit.models.shopping import ItemPriority, ShoppingItem
from homesplit.models.validation import ValidationIssue, ValidationResult
from homesplit.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Roster
    "Member",
    "Roster",
    "UserId",
    # Expense models
    "CustomSplit",
    "EqualSplit",
    "Expense",
    "ExpenseCategory",
    "FullPaymentSplit",
    "SplitStrategy",
    "SplitType",
    # Derived models
    "Balance",
    "BalanceSheet",
    "PeriodSummary",
    # Shopping
    "ItemPriority",
    "ShoppingItem",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
