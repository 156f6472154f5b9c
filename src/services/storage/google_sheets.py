"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an optional storage backend because:
1. The ledger survives a lost or wiped device
2. No database setup required
3. The user can open the sheet and see that their data is there

TRADEOFFS:
- Slow compared to a local file (every save is a network round trip)
- A cell holds at most 50,000 characters, which caps the ledger size
- No transactions (a save is a single cell update, so this is fine)

Slots are stored as rows of a "KeyValue" worksheet:
    key | value_json | updated_at
"""

import json
from datetime import datetime
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.services.storage.interface import (
    ConnectionError,
    CorruptRecordError,
    KeyValueStorageInterface,
    StorageError,
)


# Column mappings for the KeyValue sheet
KV_COLUMNS = [
    "key",
    "value_json",
    "updated_at",
]

# Google Sheets hard limit on characters per cell
MAX_CELL_CHARS = 50000

# Suffix of the slot an undecodable value is moved to
CORRUPT_SUFFIX = ".corrupt"

logger = structlog.get_logger(__name__)


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

    def get_kv_sheet(self) -> gspread.Worksheet:
        """Get or create the KeyValue worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.kv_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.kv_sheet_name,
                rows=100,
                cols=len(KV_COLUMNS),
            )
            sheet.append_row(KV_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStorage(KeyValueStorageInterface):
    """
    Google Sheets implementation of key-value storage.

    One slot per row. Values are JSON-serialized into the second column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, key: str) -> tuple[Optional[int], list]:
        """Return (1-based row number, row values) for a key, or (None, [])."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == key:
                return idx, row
        return None, []

    def get(self, key: str) -> Optional[Any]:
        """Read a slot. An undecodable cell is moved to "<key>.corrupt" first."""
        try:
            sheet = self._client.get_kv_sheet()
            row_idx, row = self._find_row(sheet, key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}': {e}")

        if len(row) < 2 or not row[1]:
            return None

        try:
            return json.loads(row[1])
        except json.JSONDecodeError as e:
            backup_key = self._quarantine(sheet, key, row_idx, row[1])
            raise CorruptRecordError(
                f"Slot '{key}' does not hold valid JSON: {e}",
                backup_key=backup_key,
            )

    def _quarantine(
        self,
        sheet: gspread.Worksheet,
        key: str,
        row_idx: int,
        text: str,
    ) -> Optional[str]:
        """Keep the raw cell text under the backup key and clear the slot."""
        backup_key = f"{key}{CORRUPT_SUFFIX}"
        try:
            self._write_row(backup_key, json.dumps(text, ensure_ascii=False))
            # Appending the backup row never shifts rows above it
            sheet.delete_rows(row_idx)
        except (StorageError, gspread.exceptions.GSpreadException) as e:
            logger.error("sheet_slot_quarantine_failed", key=key, error=str(e))
            return None

        logger.error("sheet_slot_corrupt", key=key, backup_key=backup_key)
        return backup_key

    def set(self, key: str, value: Any) -> None:
        """Write a slot, replacing the previous value."""
        try:
            payload = json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Slot '{key}' is not JSON-serializable: {e}")
        if len(payload) > MAX_CELL_CHARS:
            raise StorageError(
                f"Slot '{key}' is {len(payload)} characters, "
                f"over the {MAX_CELL_CHARS} character cell limit"
            )
        self._write_row(key, payload)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, payload: str) -> None:
        try:
            sheet = self._client.get_kv_sheet()
            row_idx, _ = self._find_row(sheet, key)
            updated_at = datetime.now().isoformat()

            if row_idx is None:
                sheet.append_row([key, payload, updated_at], value_input_option="RAW")
            else:
                sheet.update_cell(row_idx, 2, payload)
                sheet.update_cell(row_idx, 3, updated_at)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write '{key}': {e}")

    def delete(self, key: str) -> bool:
        """Delete a slot."""
        try:
            sheet = self._client.get_kv_sheet()
            row_idx, _ = self._find_row(sheet, key)
            if row_idx is None:
                return False
            sheet.delete_rows(row_idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete '{key}': {e}")
