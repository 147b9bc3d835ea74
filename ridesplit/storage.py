"""
storage.py - row store backends and header-driven table access

A row store holds named tables as lists of rows, the first row being the
header. Three backends share one interface:
 - GoogleSheetsRowStore: one worksheet per table (preferred, durable)
 - JsonFileRowStore: local JSON file fallback, written atomically
 - InMemoryRowStore: tests and throwaway sessions

Every backend failure is logged and re-raised as StoreError so callers see a
single "operation failed" condition they can retry.

Table sits on top of a store and works with records (dicts keyed by lowercased
header name). It tolerates sheets created by older versions: missing columns
are appended to the right of the header and existing rows are padded, but
columns are never reordered or dropped.
"""

import ast
import copy
import json
import logging
import os
import shutil
import tempfile
import threading
from typing import Any, Dict, List, Optional, Tuple

import google.auth
import gspread
from google.oauth2.service_account import Credentials

from ridesplit.config import Settings
from ridesplit.errors import StoreError

logger = logging.getLogger(__name__)

Row = List[str]


class RowStore:
    """Interface: get_rows / set_rows (full overwrite) / append_rows."""

    name = "abstract"

    def get_rows(self, table: str) -> List[Row]:
        try:
            return self._get_rows(table)
        except Exception as exc:
            logger.exception("Failed to read table %s from %s", table, self.name)
            raise StoreError("read", table) from exc

    def set_rows(self, table: str, rows: List[Row]) -> None:
        try:
            self._set_rows(table, [[str(c) for c in r] for r in rows])
        except Exception as exc:
            logger.exception("Failed to write table %s to %s", table, self.name)
            raise StoreError("write", table) from exc

    def append_rows(self, table: str, rows: List[Row]) -> None:
        if not rows:
            return
        try:
            self._append_rows(table, [[str(c) for c in r] for r in rows])
        except Exception as exc:
            logger.exception("Failed to append to table %s in %s", table, self.name)
            raise StoreError("append", table) from exc

    def _get_rows(self, table: str) -> List[Row]:
        raise NotImplementedError

    def _set_rows(self, table: str, rows: List[Row]) -> None:
        raise NotImplementedError

    def _append_rows(self, table: str, rows: List[Row]) -> None:
        self._set_rows(table, self._get_rows(table) + rows)


class InMemoryRowStore(RowStore):
    name = "memory"

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None):
        self._tables: Dict[str, List[Row]] = copy.deepcopy(tables or {})
        self._lock = threading.RLock()

    def _get_rows(self, table: str) -> List[Row]:
        with self._lock:
            return copy.deepcopy(self._tables.get(table, []))

    def _set_rows(self, table: str, rows: List[Row]) -> None:
        with self._lock:
            self._tables[table] = copy.deepcopy(rows)

    def _append_rows(self, table: str, rows: List[Row]) -> None:
        with self._lock:
            self._tables.setdefault(table, []).extend(copy.deepcopy(rows))


class JsonFileRowStore(RowStore):
    """
    All tables in one JSON document: {"tables": {name: [[...], ...]}}.
    Writes go to a temp file in the same directory which then replaces the
    target, so a crash never leaves a half-written file.
    """

    name = "local_json"

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._lock = threading.RLock()

    def _load(self) -> Dict[str, List[Row]]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return dict(data.get("tables", {}) or {})

    def _save(self, tables: Dict[str, List[Row]]) -> None:
        dirn = os.path.dirname(self.path)
        os.makedirs(dirn, exist_ok=True)
        logger.info("Saving data to %s", self.path)
        fd, tmp_path = tempfile.mkstemp(prefix="tmp_ridesplit_", dir=dirn, text=True)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"tables": tables}, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            shutil.move(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _get_rows(self, table: str) -> List[Row]:
        with self._lock:
            return list(self._load().get(table, []))

    def _set_rows(self, table: str, rows: List[Row]) -> None:
        with self._lock:
            tables = self._load()
            tables[table] = rows
            self._save(tables)

    def _append_rows(self, table: str, rows: List[Row]) -> None:
        with self._lock:
            tables = self._load()
            tables.setdefault(table, []).extend(rows)
            self._save(tables)


class GoogleSheetsRowStore(RowStore):
    """
    Google Sheets backend: each table is a worksheet of the same name in the
    spreadsheet GOOGLE_SHEET_ID. Values are written RAW so user text (notes,
    names) is never interpreted as a formula.

    Construction never raises; check `available` and `reason`.
    """

    name = "google_sheets"
    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

    def __init__(self, sheet_id: str, service_account_json: str = "", service_account_file: str = ""):
        self.available = False
        self.reason = ""
        self.sheet_id = (sheet_id or "").strip()
        self._service_account_json = service_account_json
        self._service_account_file = service_account_file
        self._spreadsheet = None
        self._worksheets: Dict[str, Any] = {}

        if not self.sheet_id:
            self.reason = "GOOGLE_SHEET_ID is not set"
            return

        try:
            client = gspread.authorize(self._build_credentials())
            self._spreadsheet = client.open_by_key(self.sheet_id)
            self.available = True
        except Exception as exc:
            self.reason = f"Google Sheets init failed ({exc.__class__.__name__})"
            logger.warning("Google Sheets backend unavailable: %s", self.reason)

    def _build_credentials(self):
        if self._service_account_json:
            try:
                info = json.loads(self._service_account_json)
            except ValueError:
                # tolerate Python-dict style strings often pasted into env vars
                info = ast.literal_eval(self._service_account_json)
            if not isinstance(info, dict):
                raise ValueError("GOOGLE_SERVICE_ACCOUNT_JSON must decode to an object")
            return Credentials.from_service_account_info(info, scopes=self.SCOPES)

        if self._service_account_file:
            return Credentials.from_service_account_file(self._service_account_file, scopes=self.SCOPES)

        creds, _ = google.auth.default(scopes=self.SCOPES)
        return creds

    def _worksheet(self, title: str):
        ws = self._worksheets.get(title)
        if ws is None:
            try:
                ws = self._spreadsheet.worksheet(title)
            except gspread.WorksheetNotFound:
                ws = self._spreadsheet.add_worksheet(title=title, rows=200, cols=12)
            self._worksheets[title] = ws
        return ws

    @staticmethod
    def _ensure_sheet_size(ws, min_rows: int, min_cols: int):
        new_rows = max(ws.row_count, min_rows)
        new_cols = max(ws.col_count, min_cols)
        if new_rows != ws.row_count or new_cols != ws.col_count:
            ws.resize(rows=new_rows, cols=new_cols)

    def _get_rows(self, table: str) -> List[Row]:
        return self._worksheet(table).get_all_values() or []

    def _set_rows(self, table: str, rows: List[Row]) -> None:
        ws = self._worksheet(table)
        width = max((len(r) for r in rows), default=1)
        self._ensure_sheet_size(ws, len(rows) + 10, width)
        ws.clear()
        if rows:
            ws.update(range_name="A1", values=rows, value_input_option="RAW")

    def _append_rows(self, table: str, rows: List[Row]) -> None:
        self._worksheet(table).append_rows(rows, value_input_option="RAW")


def open_store(settings: Settings) -> RowStore:
    """Google Sheets when configured and reachable, otherwise the local JSON file."""
    if settings.google_sheet_id:
        sheets = GoogleSheetsRowStore(
            settings.google_sheet_id,
            service_account_json=settings.service_account_json,
            service_account_file=settings.service_account_file,
        )
        if sheets.available:
            logger.info("Using Google Sheets storage")
            return sheets
        logger.warning("Falling back to local JSON storage: %s", sheets.reason)
    return JsonFileRowStore(settings.data_file)


def _norm(header: Any) -> str:
    return str(header).strip().lower()


class Table:
    """Header-driven view of one table in a row store."""

    def __init__(self, store: RowStore, name: str, headers: List[str]):
        self.store = store
        self.name = name
        self.headers = list(headers)

    def ensure_columns(self) -> Tuple[Row, List[Row]]:
        """
        Make sure every known column exists. Returns (header, data_rows) as
        stored after any backfill.
        """
        rows = self.store.get_rows(self.name)
        if not rows or not any(str(c).strip() for c in rows[0]):
            header = list(self.headers)
            data = rows[1:] if rows else []
            self.store.set_rows(self.name, [header] + data)
            return header, data

        header = [str(h) for h in rows[0]]
        present = {_norm(h) for h in header}
        missing = [h for h in self.headers if h not in present]
        data = rows[1:]
        if missing:
            logger.info("Adding columns %s to table %s", missing, self.name)
            header = header + missing
            data = [r + [""] * (len(header) - len(r)) for r in data]
            self.store.set_rows(self.name, [header] + data)
        return header, data

    def records(self) -> List[Dict[str, str]]:
        """Rows as dicts keyed by normalized header; blank rows skipped, missing cells ''."""
        rows = self.store.get_rows(self.name)
        if not rows:
            return []
        headers = [_norm(h) for h in rows[0]]
        out = []
        for row in rows[1:]:
            if not any(str(c).strip() for c in row):
                continue
            record = {}
            for idx, header in enumerate(headers):
                if header:
                    record[header] = row[idx] if idx < len(row) else ""
            out.append(record)
        return out

    def record(self, row: Row) -> Dict[str, str]:
        """Turn a row in canonical header order into a record."""
        return dict(zip(self.headers, row))

    def rewrite(self, records: List[Dict[str, Any]]) -> None:
        """Replace all data rows, laid out in the table's current column order."""
        header, _ = self.ensure_columns()
        keys = [_norm(h) for h in header]
        rows = [header] + [[str(rec.get(k, "") or "") for k in keys] for rec in records]
        self.store.set_rows(self.name, rows)

    def append(self, records: List[Dict[str, Any]]) -> None:
        header, _ = self.ensure_columns()
        keys = [_norm(h) for h in header]
        self.store.append_rows(self.name, [[str(rec.get(k, "") or "") for k in keys] for rec in records])
