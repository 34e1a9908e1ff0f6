"""Work board spreadsheet: layout, upsert and repair."""

from kiot_board.sheets.layout import ENUM_COLUMNS, HEADERS
from kiot_board.sheets.synchronizer import SheetSynchronizer, SyncResult, expand_rows

__all__ = [
    "ENUM_COLUMNS",
    "HEADERS",
    "SheetSynchronizer",
    "SyncResult",
    "expand_rows",
]
