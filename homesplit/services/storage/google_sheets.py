"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared backend because:
1. Every housemate can open the sheet and see the raw ledger
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a household is fine)
- No transactions (each expense is one appended row)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing business logic.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from homesplit.config import GoogleSheetsSettings, get_settings
from homesplit.models.audit import AuditEvent, AuditEventType, AuditSeverity
from homesplit.models.expense import (
    CustomSplit,
    EqualSplit,
    Expense,
    FullPaymentSplit,
    SplitType,
)
from homesplit.models.shopping import ItemPriority, ShoppingItem
from homesplit.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    ShoppingStorageInterface,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column mappings for Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "date",
    "description",
    "amount",
    "paid_by",
    "split_type",
    "participants_json",
    "custom_splits_json",
    "category",
    "notes",
]

# Column mappings for Shopping sheet
SHOPPING_COLUMNS = [
    "id",
    "name",
    "quantity",
    "assigned_to",
    "priority",
    "notes",
    "completed",
    "added_by",
    "added_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "actor",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Errors that mean "couldn't talk to Google" rather than "bad data"
TRANSIENT_ERRORS = (gspread.exceptions.APIError, OSError)


def _cell(row: list, index: int, default: str = "") -> str:
    """Handle missing columns gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=1000
        )

    def get_shopping_sheet(self) -> gspread.Worksheet:
        """Get or create the Shopping worksheet."""
        return self._get_or_create_sheet(
            self._settings.shopping_sheet_name, SHOPPING_COLUMNS, rows=500
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def expense_to_row(expense: Expense) -> list:
    """Convert an Expense to a spreadsheet row."""
    split = expense.split
    participants: list[str] = []
    custom_splits: dict[str, str] = {}

    if isinstance(split, EqualSplit):
        participants = list(split.participants)
    elif isinstance(split, CustomSplit):
        custom_splits = {user_id: str(owed) for user_id, owed in split.custom_splits.items()}
    elif isinstance(split, FullPaymentSplit):
        participants = list(split.loan_to)

    return [
        str(expense.id),
        expense.date.isoformat(),
        expense.description,
        str(expense.amount),
        expense.paid_by,
        expense.split_type.value,
        json.dumps(participants),
        json.dumps(custom_splits) if custom_splits else "",
        expense.category or "",
        expense.notes or "",
    ]


def row_to_expense(row: list) -> Expense:
    """Convert a spreadsheet row to an Expense."""
    split_type = SplitType(_cell(row, 5, SplitType.EQUAL.value))
    participants = json.loads(_cell(row, 6, "[]"))

    if split_type == SplitType.EQUAL:
        split = EqualSplit(participants=participants)
    elif split_type == SplitType.CUSTOM:
        raw_splits = json.loads(_cell(row, 7, "{}"))
        split = CustomSplit(
            custom_splits={user_id: Decimal(str(owed)) for user_id, owed in raw_splits.items()}
        )
    else:
        split = FullPaymentSplit(loan_to=participants)

    return Expense(
        id=UUID(_cell(row, 0)),
        date=datetime.fromisoformat(_cell(row, 1)),
        description=_cell(row, 2),
        amount=Decimal(_cell(row, 3)),
        paid_by=_cell(row, 4),
        split=split,
        category=_cell(row, 8) or None,
        notes=_cell(row, 9) or None,
    )


def item_to_row(item: ShoppingItem) -> list:
    """Convert a ShoppingItem to a spreadsheet row."""
    return [
        str(item.id),
        item.name,
        item.quantity or "",
        item.assigned_to or "",
        item.priority.value,
        item.notes or "",
        str(item.completed),
        item.added_by,
        item.added_at.isoformat(),
    ]


def row_to_item(row: list) -> ShoppingItem:
    """Convert a spreadsheet row to a ShoppingItem."""
    return ShoppingItem(
        id=UUID(_cell(row, 0)),
        name=_cell(row, 1),
        quantity=_cell(row, 2) or None,
        assigned_to=_cell(row, 3) or None,
        priority=ItemPriority(_cell(row, 4, ItemPriority.MEDIUM.value)),
        notes=_cell(row, 5) or None,
        completed=_cell(row, 6).lower() == "true",
        added_by=_cell(row, 7),
        added_at=datetime.fromisoformat(_cell(row, 8)),
    )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of the expense ledger.

    One expense per row. Split parameters are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row_index(self, all_rows: list[list], expense_id: UUID) -> Optional[int]:
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == str(expense_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    async def save_expense(self, expense: Expense) -> bool:
        """Append an expense to the sheet."""
        try:
            sheet = self._client.get_expenses_sheet()
            if self._find_row_index(sheet.get_all_values(), expense.id) is not None:
                raise DuplicateError(f"Expense already exists: {expense.id}")
            sheet.append_row(expense_to_row(expense), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to save expense: {e}")
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        """Retrieve an expense by its ID."""
        try:
            sheet = self._client.get_expenses_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(expense_id):
                    return row_to_expense(row)
            return None
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to get expense: {e}")
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row_index(sheet.get_all_values(), expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to delete expense: {e}")
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(self) -> list[Expense]:
        """Read the whole ledger in one call, skipping malformed rows."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to list expenses: {e}")
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                expenses.append(row_to_expense(row))
            except Exception as e:
                logger.warning("malformed_expense_row", row_id=row[0], error=str(e))

        # Newest first
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses


class GoogleSheetsShoppingStorage(ShoppingStorageInterface):
    """Google Sheets implementation of the shopping list."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row_index(self, all_rows: list[list], item_id: UUID) -> Optional[int]:
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == str(item_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(StorageConnectionError),
        reraise=True,
    )
    async def save_item(self, item: ShoppingItem) -> bool:
        try:
            sheet = self._client.get_shopping_sheet()
            sheet.append_row(item_to_row(item), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to save shopping item: {e}")
        except Exception as e:
            raise StorageError(f"Failed to save shopping item: {e}")

    async def get_item_by_id(self, item_id: UUID) -> Optional[ShoppingItem]:
        try:
            sheet = self._client.get_shopping_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(item_id):
                    return row_to_item(row)
            return None
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to get shopping item: {e}")
        except Exception as e:
            raise StorageError(f"Failed to get shopping item: {e}")

    async def update_item(self, item: ShoppingItem) -> bool:
        try:
            sheet = self._client.get_shopping_sheet()
            idx = self._find_row_index(sheet.get_all_values(), item.id)
            if idx is None:
                raise NotFoundError(f"Shopping item not found: {item.id}")

            for col_idx, value in enumerate(item_to_row(item), start=1):
                sheet.update_cell(idx, col_idx, value)
            return True
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to update shopping item: {e}")
        except Exception as e:
            raise StorageError(f"Failed to update shopping item: {e}")

    async def delete_item(self, item_id: UUID) -> bool:
        try:
            sheet = self._client.get_shopping_sheet()
            idx = self._find_row_index(sheet.get_all_values(), item_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to delete shopping item: {e}")
        except Exception as e:
            raise StorageError(f"Failed to delete shopping item: {e}")

    async def list_items(self) -> list[ShoppingItem]:
        try:
            sheet = self._client.get_shopping_sheet()
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except TRANSIENT_ERRORS as e:
            raise StorageConnectionError(f"Failed to list shopping items: {e}")
        except Exception as e:
            raise StorageError(f"Failed to list shopping items: {e}")

        items = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                items.append(row_to_item(row))
            except Exception as e:
                logger.warning("malformed_shopping_row", row_id=row[0], error=str(e))

        items.sort(key=lambda i: i.added_at, reverse=True)
        return items


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
            actor=_cell(row, 6) or None,
            correlation_id=UUID(_cell(row, 7)) if _cell(row, 7) else None,
            description=_cell(row, 8),
            details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_cell(row, 11).lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception as e:
                    logger.warning("malformed_audit_row", row_id=row[0], error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_event_write_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._load_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
