"""Google Sheets transport built on gspread."""

import contextlib
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

import gspread
import structlog
from google.oauth2.service_account import Credentials

from kiot_board.errors import SheetAccessError

logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class SheetClient(Protocol):
    """Read/write access to one spreadsheet.

    Ranges are A1 notation (``"Công việc!A:A"``); structural requests use the
    Sheets API ``batchUpdate`` request shapes with zero-indexed spans.
    """

    def get_values(self, range_: str) -> list[list[str]]: ...

    def update_values(self, range_: str, rows: list[list[str]], raw: bool = False) -> None: ...

    def batch_update_values(self, data: list[dict[str, Any]], raw: bool = False) -> None: ...

    def batch_format(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]: ...

    def get_sheet_id(self, title: str) -> int | None: ...

    def add_sheet(self, title: str) -> int: ...

    def get_conditional_format_rules(self, sheet_id: int) -> list[dict[str, Any]]: ...


@contextlib.contextmanager
def _sheets_errors(action: str) -> Iterator[None]:
    try:
        yield
    except gspread.exceptions.APIError as e:
        raise SheetAccessError(
            f"Sheets API error while trying to {action}: {e}",
            status_code=getattr(e.response, "status_code", None),
        ) from e
    except gspread.exceptions.GSpreadException as e:
        raise SheetAccessError(f"Cannot {action}: {e}") from e


def _input_option(raw: bool) -> str:
    return "RAW" if raw else "USER_ENTERED"


class GspreadSheetClient:
    """``SheetClient`` implementation over a gspread ``Spreadsheet``."""

    def __init__(self, spreadsheet: gspread.Spreadsheet):
        self._spreadsheet = spreadsheet

    @classmethod
    def from_service_account(
        cls,
        spreadsheet_id: str,
        credentials_json: str | None = None,
        credentials_file: Path | None = None,
    ) -> "GspreadSheetClient":
        """Authorize with a service account and open the spreadsheet by key.

        Inline JSON credentials win over a credentials file.
        """
        try:
            if credentials_json:
                info = json.loads(credentials_json)
                creds = Credentials.from_service_account_info(info, scopes=SCOPES)
            elif credentials_file:
                creds = Credentials.from_service_account_file(str(credentials_file), scopes=SCOPES)
            else:
                raise SheetAccessError("Google service account credentials are not configured")
        except (ValueError, OSError) as e:
            raise SheetAccessError(f"Invalid Google service account credentials: {e}") from e

        with _sheets_errors("open spreadsheet"):
            spreadsheet = gspread.authorize(creds).open_by_key(spreadsheet_id)

        logger.info("spreadsheet_connected", spreadsheet_id=spreadsheet_id)
        return cls(spreadsheet)

    def get_values(self, range_: str) -> list[list[str]]:
        with _sheets_errors(f"read {range_}"):
            result = self._spreadsheet.values_get(range_)
        return [[str(cell) for cell in row] for row in result.get("values", [])]

    def update_values(self, range_: str, rows: list[list[str]], raw: bool = False) -> None:
        with _sheets_errors(f"write {range_}"):
            self._spreadsheet.values_update(
                range_,
                params={"valueInputOption": _input_option(raw)},
                body={"values": rows},
            )

    def batch_update_values(self, data: list[dict[str, Any]], raw: bool = False) -> None:
        if not data:
            return
        with _sheets_errors("batch write values"):
            self._spreadsheet.values_batch_update(
                {"valueInputOption": _input_option(raw), "data": data}
            )

    def batch_format(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not requests:
            return []
        with _sheets_errors("apply batch update"):
            response = self._spreadsheet.batch_update({"requests": requests})
        replies = response.get("replies", []) if isinstance(response, dict) else []
        return replies

    def get_sheet_id(self, title: str) -> int | None:
        with _sheets_errors("list worksheets"):
            worksheets = self._spreadsheet.worksheets()
        for worksheet in worksheets:
            if worksheet.title == title:
                return int(worksheet.id)
        return None

    def add_sheet(self, title: str) -> int:
        replies = self.batch_format([{"addSheet": {"properties": {"title": title}}}])
        try:
            return int(replies[0]["addSheet"]["properties"]["sheetId"])
        except (IndexError, KeyError, TypeError) as e:
            raise SheetAccessError(f"Could not create sheet {title!r}") from e

    def get_conditional_format_rules(self, sheet_id: int) -> list[dict[str, Any]]:
        with _sheets_errors("read conditional formats"):
            metadata = self._spreadsheet.fetch_sheet_metadata(
                params={"fields": "sheets(properties.sheetId,conditionalFormats)"}
            )
        for sheet in metadata.get("sheets", []):
            if sheet.get("properties", {}).get("sheetId") == sheet_id:
                return list(sheet.get("conditionalFormats", []))
        return []
