"""Pytest configuration and fixtures."""

import os
import re
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("KIOTVIET_CLIENT_ID", "test-client-id")
os.environ.setdefault("KIOTVIET_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("KIOTVIET_RETAILER", "testshop")
os.environ.setdefault("SPREADSHEET_ID", "test-spreadsheet-id")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("TELEGRAM_CHAT_ID", "-1001234567890")
os.environ.setdefault("TELEGRAM_DAILY_REPORT_TOPIC_ID", "42")

TZ = ZoneInfo("Asia/Ho_Chi_Minh")

_CELL = re.compile(r"^([A-Z]+)(\d*)$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def _parse_range(range_: str) -> tuple[str, int, int | None, int, int]:
    """Split ``'Tab'!A2:L3`` into (tab, start_col, start_row, end_col, end_row)."""
    tab, _, cells = range_.rpartition("!")
    tab = tab.strip("'").replace("''", "'")
    start, _, end = cells.partition(":")
    start_match = _CELL.match(start)
    end_match = _CELL.match(end or start)
    assert start_match and end_match, f"bad range {range_!r}"
    start_row = int(start_match.group(2)) if start_match.group(2) else None
    end_row = int(end_match.group(2)) if end_match.group(2) else -1
    return (
        tab,
        _column_index(start_match.group(1)),
        start_row,
        _column_index(end_match.group(1)),
        end_row,
    )


class FakeSheetClient:
    """In-memory spreadsheet with a single tab, speaking the ``SheetClient`` protocol.

    Mirrors the Sheets API quirks the board code relies on: trailing empty
    cells are dropped on read, and USER_ENTERED input loses a leading
    apostrophe.
    """

    def __init__(self, title: str | None = "Công việc", rows: list[list[str]] | None = None):
        self.sheets: dict[str, int] = {}
        if title is not None:
            self.sheets[title] = 0
        self.rows: list[list[str]] = [list(r) for r in rows or []]
        self.rules: list[dict[str, Any]] = []
        self.validations: list[dict[str, Any]] = []
        self.requests: list[dict[str, Any]] = []
        self.value_writes: list[tuple[str, bool]] = []

    def get_values(self, range_: str) -> list[list[str]]:
        _, start_col, _, end_col, _ = _parse_range(range_)
        result = []
        for row in self.rows:
            cells = row[start_col : end_col + 1]
            while cells and cells[-1] == "":
                cells.pop()
            result.append(cells)
        while result and not result[-1]:
            result.pop()
        return result

    def update_values(self, range_: str, rows: list[list[str]], raw: bool = False) -> None:
        self.value_writes.append((range_, raw))
        _, start_col, start_row, _, _ = _parse_range(range_)
        assert start_row is not None
        for offset, values in enumerate(rows):
            index = start_row - 1 + offset
            while len(self.rows) <= index:
                self.rows.append([])
            row = self.rows[index]
            for col_offset, value in enumerate(values):
                col = start_col + col_offset
                while len(row) <= col:
                    row.append("")
                if not raw and isinstance(value, str) and value.startswith("'"):
                    value = value[1:]
                row[col] = value

    def batch_update_values(self, data: list[dict[str, Any]], raw: bool = False) -> None:
        for entry in data:
            self.update_values(entry["range"], entry["values"], raw=raw)

    def batch_format(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        replies: list[dict[str, Any]] = []
        for request in requests:
            self.requests.append(request)
            reply: dict[str, Any] = {}
            if "insertDimension" in request:
                span = request["insertDimension"]["range"]
                for _ in range(span["endIndex"] - span["startIndex"]):
                    self.rows.insert(span["startIndex"], [])
            elif "addSheet" in request:
                sheet_id = max(self.sheets.values(), default=-1) + 1
                self.sheets[request["addSheet"]["properties"]["title"]] = sheet_id
                reply = {"addSheet": {"properties": {"sheetId": sheet_id}}}
            elif "addConditionalFormatRule" in request:
                body = request["addConditionalFormatRule"]
                self.rules.insert(body.get("index", 0), body["rule"])
            elif "deleteConditionalFormatRule" in request:
                self.rules.pop(request["deleteConditionalFormatRule"]["index"])
            elif "setDataValidation" in request:
                self.validations.append(request["setDataValidation"])
            replies.append(reply)
        return replies

    def get_sheet_id(self, title: str) -> int | None:
        return self.sheets.get(title)

    def add_sheet(self, title: str) -> int:
        replies = self.batch_format([{"addSheet": {"properties": {"title": title}}}])
        return int(replies[0]["addSheet"]["properties"]["sheetId"])

    def get_conditional_format_rules(self, sheet_id: int) -> list[dict[str, Any]]:
        return list(self.rules)

    def requests_of(self, kind: str) -> list[dict[str, Any]]:
        return [r[kind] for r in self.requests if kind in r]


@pytest.fixture
def board_headers():
    from kiot_board.sheets.layout import HEADERS

    return list(HEADERS)


@pytest.fixture
def fake_sheet(board_headers):
    """A board that already has its header row."""
    return FakeSheetClient(rows=[board_headers])


@pytest.fixture
def make_sheet(board_headers):
    """Factory for a board holding the given data rows under the header."""

    def _make(rows: list[list[str]] | None = None) -> FakeSheetClient:
        return FakeSheetClient(rows=[board_headers] + [list(r) for r in rows or []])

    return _make


@pytest.fixture
def empty_spreadsheet():
    """A spreadsheet without the board tab."""
    return FakeSheetClient(title=None)


@pytest.fixture
def mock_notifier():
    """Notifier whose ``send`` records calls."""
    notifier = MagicMock()
    notifier.send = AsyncMock()
    return notifier


@pytest.fixture
def fixed_clock():
    """Clock pinned to 10 March 2025, 08:30 shop time."""
    return lambda: datetime(2025, 3, 10, 8, 30, tzinfo=TZ)


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.post = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_invoices_response():
    """Mock KiotViet /invoices page."""
    return {
        "total": 2,
        "pageSize": 200,
        "data": [
            {
                "id": 1001,
                "code": "HD001",
                "purchaseDate": "2025-03-10T09:15:30.1234567",
                "description": "1. Áo sơ mi + giặt ủi\n2. Quần tây + ủi\nĐTT\nHẹn trả: 15/3",
                "status": 1,
            },
            {
                "id": 1002,
                "code": "HD002",
                "purchaseDate": "2025-03-10T10:00:00",
                "description": None,
                "status": 3,
            },
        ],
    }
