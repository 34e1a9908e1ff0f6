"""Board layout and the Sheets API requests that style it.

Domain enums stay free of presentation; the colors shown for each dropdown
value live in the tables below.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from kiot_board.models import Assignee, DelayCount, WorkStatus

HEADERS: list[str] = [
    "Hoá đơn",
    "Ngày nhận",
    "Ngày trả",
    "Tên đồ dùng",
    "Công việc",
    "Trạng thái",
    "Thời gian",
    "Người làm",
    "Trạng thái thanh toán",
    "Ghi chú",
    "Lần Delay",
    "Ngày trả mới",
]

COL_CODE = 0
COL_RECEIVE_DATE = 1
COL_RETURN_DATE = 2
COL_PRODUCT = 3
COL_WORK = 4
COL_STATUS = 5
COL_ELAPSED = 6
COL_ASSIGNEE = 7
COL_PAYMENT = 8
COL_NOTE = 9
COL_DELAY = 10
COL_RESCHEDULED = 11

LAST_COLUMN = "L"
RECEIVE_DATE_PATTERN = "dd/MM/yyyy HH:mm"

RGB = tuple[int, int, int]

STATUS_COLORS: dict[WorkStatus, RGB] = {
    WorkStatus.NOT_STARTED: (230, 230, 230),  # grey
    WorkStatus.IN_PROGRESS: (66, 133, 244),  # blue
    WorkStatus.FLAGGED: (234, 67, 53),  # red
    WorkStatus.DONE: (251, 188, 4),  # yellow
    WorkStatus.CLOSED: (52, 168, 83),  # green
    WorkStatus.CANCELLED: (117, 117, 117),  # dark grey
}

ASSIGNEE_COLORS: dict[Assignee, RGB] = {
    Assignee.UNASSIGNED: (230, 230, 230),
    Assignee.MINH: (100, 181, 246),
    Assignee.HUY: (255, 138, 128),
    Assignee.VUON_DAO: (124, 179, 66),
    Assignee.HA_NOI: (255, 183, 77),
    Assignee.NAM_DINH: (186, 104, 200),
}

DELAY_COLORS: dict[DelayCount, RGB] = {
    DelayCount.NONE: (230, 230, 230),
    DelayCount.ONCE: (255, 235, 59),
    DelayCount.TWICE: (255, 152, 0),
    DelayCount.THREE_OR_MORE: (211, 47, 47),
}

DROPDOWN_SHADE = {"red": 0.95, "green": 0.95, "blue": 0.95}


@dataclass(frozen=True)
class EnumColumn:
    """A dropdown-backed column of the board."""

    index: int
    letter: str
    values: type[Enum]
    colors: dict[Any, RGB]
    input_message: str

    @property
    def default(self) -> str:
        return str(self.values.default().value)  # type: ignore[attr-defined]


ENUM_COLUMNS: tuple[EnumColumn, ...] = (
    EnumColumn(COL_STATUS, "F", WorkStatus, STATUS_COLORS, "Chọn trạng thái công việc"),
    EnumColumn(COL_ASSIGNEE, "H", Assignee, ASSIGNEE_COLORS, "Chọn người thực hiện"),
    EnumColumn(COL_DELAY, "K", DelayCount, DELAY_COLORS, "Chọn lần delay"),
)


def grid_range(
    sheet_id: int,
    start_row: int,
    end_row: int,
    start_col: int,
    end_col: int,
) -> dict[str, int]:
    """Zero-indexed, end-exclusive grid range."""
    return {
        "sheetId": sheet_id,
        "startRowIndex": start_row,
        "endRowIndex": end_row,
        "startColumnIndex": start_col,
        "endColumnIndex": end_col,
    }


def to_color(rgb: RGB) -> dict[str, float]:
    r, g, b = rgb
    return {"red": r / 255, "green": g / 255, "blue": b / 255}


def text_color_for(rgb: RGB) -> dict[str, int]:
    """White text on dark backgrounds, black otherwise."""
    channel = 1 if all(c < 128 for c in rgb) else 0
    return {"red": channel, "green": channel, "blue": channel}


def insert_rows_request(sheet_id: int, start_index: int, count: int) -> dict[str, Any]:
    return {
        "insertDimension": {
            "range": {
                "sheetId": sheet_id,
                "dimension": "ROWS",
                "startIndex": start_index,
                "endIndex": start_index + count,
            },
            "inheritFromBefore": False,
        }
    }


def _repeat_cell(
    sheet_id: int, start_row: int, end_row: int, col: int, fmt: dict[str, Any], fields: str
) -> dict[str, Any]:
    return {
        "repeatCell": {
            "range": grid_range(sheet_id, start_row, end_row, col, col + 1),
            "cell": {"userEnteredFormat": fmt},
            "fields": fields,
        }
    }


def new_rows_format_requests(sheet_id: int, start_row: int, end_row: int) -> list[dict[str, Any]]:
    """Formatting for freshly inserted rows ``[start_row, end_row)`` only."""
    width = len(HEADERS)
    row_count = end_row - start_row
    requests: list[dict[str, Any]] = [
        # Drop anything inherited so the baseline below applies cleanly
        {
            "updateCells": {
                "range": grid_range(sheet_id, start_row, end_row, 0, width),
                "fields": "userEnteredFormat",
                "rows": [
                    {"values": [{"userEnteredFormat": {}} for _ in range(width)]}
                    for _ in range(row_count)
                ],
            }
        },
        {
            "repeatCell": {
                "range": grid_range(sheet_id, start_row, end_row, 0, width),
                "cell": {
                    "userEnteredFormat": {
                        "textFormat": {
                            "bold": False,
                            "italic": False,
                            "fontSize": 10,
                            "fontFamily": "Arial",
                        },
                        "backgroundColor": {"red": 1, "green": 1, "blue": 1},
                        "horizontalAlignment": "LEFT",
                        "verticalAlignment": "MIDDLE",
                        "wrapStrategy": "WRAP",
                    }
                },
                "fields": "userEnteredFormat",
            }
        },
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_RECEIVE_DATE,
            {"numberFormat": {"type": "DATE_TIME", "pattern": RECEIVE_DATE_PATTERN}},
            "userEnteredFormat.numberFormat",
        ),
        # Return dates are free text; TEXT stops Sheets from turning "15/3" into a date
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_RETURN_DATE,
            {"numberFormat": {"type": "TEXT"}, "textFormat": {"bold": True, "fontSize": 24}},
            "userEnteredFormat.numberFormat,userEnteredFormat.textFormat",
        ),
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_STATUS,
            {"backgroundColor": DROPDOWN_SHADE},
            "userEnteredFormat.backgroundColor",
        ),
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_ASSIGNEE,
            {"backgroundColor": DROPDOWN_SHADE, "horizontalAlignment": "LEFT"},
            "userEnteredFormat.backgroundColor,userEnteredFormat.horizontalAlignment",
        ),
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_DELAY,
            {"backgroundColor": DROPDOWN_SHADE, "horizontalAlignment": "LEFT"},
            "userEnteredFormat.backgroundColor,userEnteredFormat.horizontalAlignment",
        ),
        _repeat_cell(
            sheet_id,
            start_row,
            end_row,
            COL_RESCHEDULED,
            {"numberFormat": {"type": "TEXT"}},
            "userEnteredFormat.numberFormat",
        ),
    ]
    return requests


def validation_requests(sheet_id: int, row_ceiling: int) -> list[dict[str, Any]]:
    """Dropdown rules for every enum column, from row 2 down to the ceiling."""
    return [
        {
            "setDataValidation": {
                "range": grid_range(sheet_id, 1, row_ceiling, column.index, column.index + 1),
                "rule": {
                    "condition": {
                        "type": "ONE_OF_LIST",
                        "values": [{"userEnteredValue": member.value} for member in column.values],
                    },
                    "strict": True,
                    "showCustomUi": True,
                    "inputMessage": column.input_message,
                },
            }
        }
        for column in ENUM_COLUMNS
    ]


def conditional_format_requests(sheet_id: int, row_ceiling: int) -> list[dict[str, Any]]:
    """One background-color rule per dropdown value."""
    requests: list[dict[str, Any]] = []
    for column in ENUM_COLUMNS:
        for member, rgb in column.colors.items():
            requests.append(
                {
                    "addConditionalFormatRule": {
                        "rule": {
                            "ranges": [
                                grid_range(sheet_id, 1, row_ceiling, column.index, column.index + 1)
                            ],
                            "booleanRule": {
                                "condition": {
                                    "type": "TEXT_EQ",
                                    "values": [{"userEnteredValue": member.value}],
                                },
                                "format": {
                                    "backgroundColor": to_color(rgb),
                                    "textFormat": {"foregroundColor": text_color_for(rgb)},
                                },
                            },
                        },
                        "index": 0,
                    }
                }
            )
    return requests


def _targets_enum_column(rule: dict[str, Any]) -> bool:
    enum_indexes = {column.index for column in ENUM_COLUMNS}
    for rng in rule.get("ranges", []):
        start = rng.get("startColumnIndex", 0)
        end = rng.get("endColumnIndex", start + 1)
        if end - start == 1 and start in enum_indexes:
            return True
    return False


def delete_enum_rule_requests(sheet_id: int, rules: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Delete the existing rules that color the enum columns.

    Indexes are emitted highest first so earlier deletions do not shift the
    ones still to run.
    """
    indexes = [i for i, rule in enumerate(rules) if _targets_enum_column(rule)]
    return [
        {"deleteConditionalFormatRule": {"sheetId": sheet_id, "index": i}}
        for i in sorted(indexes, reverse=True)
    ]
