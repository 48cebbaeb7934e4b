"""
Google Sheets Storage Implementation (bot channels)

DESIGN DECISION: Google Sheets is the remote document store because:
1. Users can open their transactions directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each transaction is one appended row - an independent document with the
parsed fields, the originating channel and the processing time. The bots
never read this sheet back.

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- No transactions, no deduplication across channels
"""

import asyncio
import threading
from datetime import datetime
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_pro.config import GoogleSheetsSettings, get_settings
from finance_pro.models.audit import AuditEvent
from finance_pro.models.transaction import Transaction, TransactionSource
from finance_pro.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    RemoteTransactionStoreInterface,
    StorageError,
    ensure_storable,
)

logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "valor",
    "categoria",
    "descricao",
    "tipo",
    "timestamp",
    "user_id",
    "source",
    "processed_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "channel",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    Worksheets are resolved once and cached; appends run in worker
    threads, so resolution is serialized by a lock.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._lock = threading.Lock()
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

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        with self._lock:
            if title in self._worksheets:
                return self._worksheets[title]
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
            self._worksheets[title] = sheet
            return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsTransactionStore(RemoteTransactionStoreInterface):
    """
    Google Sheets implementation of the remote transaction store.

    One row per transaction. Amounts are written as plain numbers so
    the sheet can sum them.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def verify(self) -> None:
        """
        Open (or create) the worksheet once.

        Called at bot startup to decide between normal and simulation mode.

        Raises:
            ConnectionError: if the spreadsheet can't be reached
        """
        self._client.get_transactions_sheet()

    @staticmethod
    def transaction_to_row(
        transaction: Transaction,
        source: TransactionSource,
        received_at: datetime,
        user_id: Optional[str] = None,
    ) -> list:
        """Convert a Transaction plus channel metadata to a spreadsheet row."""
        record = transaction.to_record()
        return [
            record["id"],
            record["valor"],
            record["categoria"],
            record["descricao"],
            record["tipo"],
            record["timestamp"],
            user_id or "",
            source.value,
            received_at.isoformat(),
        ]

    async def append(
        self,
        transaction: Transaction,
        source: TransactionSource,
        received_at: datetime,
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Append one transaction row. A single request, no retry.

        gspread is blocking, so the request runs in a worker thread and
        other chats keep being served meanwhile.
        """
        ensure_storable(transaction)
        row = self.transaction_to_row(transaction, source, received_at, user_id)

        def _write() -> None:
            sheet = self._client.get_transactions_sheet()
            sheet.append_row(row, value_input_option="RAW")

        try:
            await asyncio.to_thread(_write)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event from a worker thread."""
        row = event.to_sheets_row()

        def _write() -> None:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(row, value_input_option="RAW")

        try:
            await asyncio.to_thread(_write)
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

