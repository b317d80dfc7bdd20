"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the shared backend; the in-memory backend serves tests
and offline use.
"""

from homesplit.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ShoppingStorageInterface,
    StorageConnectionError,
    StorageError,
)
from homesplit.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryShoppingStorage,
)
from homesplit.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsShoppingStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "ShoppingStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryShoppingStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsShoppingStorage",
]
