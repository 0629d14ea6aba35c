"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the production record store because:
1. Users can view and correct their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (last write wins per row)
- Limited query capabilities (we read whole sheets and filter in Python)

Each collection lives in its own worksheet with a header row. reset()
clears a worksheet back to just its header, so the collection stays
present and empty.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Generic, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finai.config import get_settings
from finai.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finai.models.finance import (
    Budget,
    BudgetPeriod,
    Goal,
    Transaction,
    TransactionType,
)
from finai.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)


TRANSACTION_COLUMNS = [
    "id",
    "date",
    "type",
    "amount",
    "category",
    "description",
    "merchant",
    "payment_method",
]

BUDGET_COLUMNS = ["id", "category", "limit", "period"]

GOAL_COLUMNS = ["id", "name", "target_amount", "current_amount", "deadline"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell_reader(row: list) -> Callable[[int], str]:
    """Return a getter that tolerates short rows and blank cells."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_goals_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.goals_sheet_name, GOAL_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self.get_worksheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


Record = TypeVar("Record", Transaction, Budget, Goal)


class _SheetCollection(Generic[Record]):
    """One record type stored as one row per entity, id in column A."""

    def __init__(
        self,
        kind: str,
        columns: list[str],
        get_sheet: Callable[[], gspread.Worksheet],
        to_row: Callable[[Record], list],
        from_row: Callable[[list], Record],
    ):
        self._kind = kind
        self._columns = columns
        self._get_sheet = get_sheet
        self._to_row = to_row
        self._from_row = from_row

    def _find_row(self, all_rows: list[list], record_id: str) -> Optional[int]:
        """1-based sheet row index of the record, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    def read_all(self) -> list[Record]:
        try:
            all_rows = self._get_sheet().get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list {self._kind.lower()}s: {e}")

        records = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(self._from_row(row))
            except Exception:
                continue  # Skip malformed rows
        return records

    def add(self, record: Record) -> None:
        try:
            sheet = self._get_sheet()
            if self._find_row(sheet.get_all_values(), record.id) is not None:
                raise DuplicateError(f"{self._kind} already exists: {record.id}")
            sheet.append_row(self._to_row(record), value_input_option="RAW")
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {self._kind.lower()}: {e}")

    def update(self, record: Record) -> None:
        try:
            sheet = self._get_sheet()
            idx = self._find_row(sheet.get_all_values(), record.id)
            if idx is None:
                raise NotFoundError(f"{self._kind} not found: {record.id}")
            sheet.update(
                [self._to_row(record)],
                f"A{idx}",
                value_input_option="RAW",
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self._kind.lower()}: {e}")

    def delete(self, record_id: str) -> bool:
        try:
            sheet = self._get_sheet()
            idx = self._find_row(sheet.get_all_values(), record_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {self._kind.lower()}: {e}")

    def clear(self) -> None:
        """Empty the collection, keeping the worksheet and its header."""
        try:
            sheet = self._get_sheet()
            sheet.clear()
            sheet.append_row(self._columns)
        except Exception as e:
            raise StorageError(f"Failed to reset {self._kind.lower()}s: {e}")


def _transaction_to_row(tx: Transaction) -> list:
    return [
        tx.id,
        tx.date.isoformat(),
        tx.type.value,
        str(tx.amount),
        tx.category,
        tx.description,
        tx.merchant or "",
        tx.payment_method or "",
    ]


def _row_to_transaction(row: list) -> Transaction:
    safe_get = _cell_reader(row)
    return Transaction(
        id=safe_get(0),
        date=datetime.fromisoformat(safe_get(1)),
        type=TransactionType(safe_get(2)),
        amount=Decimal(safe_get(3)),
        category=safe_get(4),
        description=safe_get(5),
        merchant=safe_get(6) or None,
        payment_method=safe_get(7) or None,
    )


def _budget_to_row(budget: Budget) -> list:
    return [budget.id, budget.category, str(budget.limit), budget.period.value]


def _row_to_budget(row: list) -> Budget:
    safe_get = _cell_reader(row)
    return Budget(
        id=safe_get(0),
        category=safe_get(1),
        limit=Decimal(safe_get(2)),
        period=BudgetPeriod(safe_get(3, BudgetPeriod.MONTHLY.value)),
    )


def _goal_to_row(goal: Goal) -> list:
    return [
        goal.id,
        goal.name,
        str(goal.target_amount),
        str(goal.current_amount),
        goal.deadline.isoformat() if goal.deadline else "",
    ]


def _row_to_goal(row: list) -> Goal:
    safe_get = _cell_reader(row)
    return Goal(
        id=safe_get(0),
        name=safe_get(1),
        target_amount=Decimal(safe_get(2)),
        current_amount=Decimal(safe_get(3, "0")),
        deadline=date.fromisoformat(safe_get(4)) if safe_get(4) else None,
    )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    Transactions, budgets and goals each get their own worksheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._transactions = _SheetCollection(
            "Transaction",
            TRANSACTION_COLUMNS,
            self._client.get_transactions_sheet,
            _transaction_to_row,
            _row_to_transaction,
        )
        self._budgets = _SheetCollection(
            "Budget",
            BUDGET_COLUMNS,
            self._client.get_budgets_sheet,
            _budget_to_row,
            _row_to_budget,
        )
        self._goals = _SheetCollection(
            "Goal",
            GOAL_COLUMNS,
            self._client.get_goals_sheet,
            _goal_to_row,
            _row_to_goal,
        )

    async def init(self) -> None:
        """Create any missing worksheets. Existing data is left untouched."""
        try:
            self._client.get_transactions_sheet()
            self._client.get_budgets_sheet()
            self._client.get_goals_sheet()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to initialize worksheets: {e}")

    async def reset(self) -> None:
        self._transactions.clear()
        self._budgets.clear()
        self._goals.clear()

    async def list_transactions(self) -> list[Transaction]:
        return self._transactions.read_all()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def add_transaction(self, transaction: Transaction) -> None:
        self._transactions.add(transaction)

    async def update_transaction(self, transaction: Transaction) -> None:
        self._transactions.update(transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._transactions.delete(transaction_id)

    async def list_budgets(self) -> list[Budget]:
        return self._budgets.read_all()

    async def add_budget(self, budget: Budget) -> None:
        self._budgets.add(budget)

    async def update_budget(self, budget: Budget) -> None:
        self._budgets.update(budget)

    async def delete_budget(self, budget_id: str) -> bool:
        return self._budgets.delete(budget_id)

    async def list_goals(self) -> list[Goal]:
        return self._goals.read_all()

    async def add_goal(self, goal: Goal) -> None:
        self._goals.add(goal)

    async def update_goal(self, goal: Goal) -> None:
        self._goals.update(goal)

    async def delete_goal(self, goal_id: str) -> bool:
        return self._goals.delete(goal_id)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _cell_reader(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID, oldest first."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
