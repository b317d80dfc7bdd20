"""Services package."""

from homesplit.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsShoppingStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryShoppingStorage,
    NotFoundError,
    ShoppingStorageInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsShoppingStorage",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryShoppingStorage",
    "NotFoundError",
    "ShoppingStorageInterface",
    "StorageConnectionError",
    "StorageError",
]
