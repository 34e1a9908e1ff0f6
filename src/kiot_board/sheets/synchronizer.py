"""Idempotent upsert of invoices into the work board.

The sheet is the system of record. An invoice code that already appears in
column A is never written again, so an invoice is either fully on the board or
not at all. New rows go directly under the header so the newest work sits on
top.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from kiot_board.clients.sheets import SheetClient
from kiot_board.dates import format_for_sheet
from kiot_board.models import (
    Assignee,
    DelayCount,
    InvoiceRecord,
    SheetRow,
    WorkItem,
    WorkStatus,
)
from kiot_board.sheets import layout

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync run, counted per invoice."""

    inserted: int
    skipped: int
    rows_written: int = 0


def a1(sheet_name: str, cells: str) -> str:
    """Quote a sheet name for A1 notation (``'Công việc'!A:A``)."""
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


def expand_rows(record: InvoiceRecord) -> list[SheetRow]:
    """One row per work item, or a single placeholder row when there are none."""
    receive_date = format_for_sheet(record.purchase_date, with_time=True)
    # Leading apostrophe keeps USER_ENTERED input from reading "15/3" as a date
    return_date = f"'{record.return_date}" if record.return_date else ""
    items = record.items or (WorkItem(product_name="", work=""),)
    return [
        SheetRow(
            invoice_code=record.code,
            receive_date=receive_date,
            return_date=return_date,
            product_name=item.product_name,
            work=item.work,
            status=WorkStatus.default().value,
            elapsed_time="",
            assignee=Assignee.default().value,
            payment_status=record.payment_status.value,
            note="",
            delay_count=DelayCount.default().value,
            rescheduled_return_date="",
        )
        for item in items
    ]


class SheetSynchronizer:
    """Writes new invoices to the board and keeps its dropdowns in shape.

    Runs must not overlap: the existing-code check and the insert are separate
    calls with no locking between them.
    """

    def __init__(self, client: SheetClient, sheet_name: str, row_ceiling: int = 1000):
        self._client = client
        self._sheet_name = sheet_name
        self._row_ceiling = row_ceiling
        self._logger = logger.bind(sheet=sheet_name)

    @property
    def sheet_name(self) -> str:
        return self._sheet_name

    def ensure_sheet(self) -> int:
        """Return the tab's sheet id, creating it with a header row if missing."""
        sheet_id = self._client.get_sheet_id(self._sheet_name)
        if sheet_id is not None:
            return sheet_id

        sheet_id = self._client.add_sheet(self._sheet_name)
        self._client.update_values(
            a1(self._sheet_name, f"A1:{layout.LAST_COLUMN}1"), [list(layout.HEADERS)], raw=True
        )
        self._logger.info("sheet_created", sheet_id=sheet_id)
        return sheet_id

    def existing_codes(self) -> set[str]:
        """Invoice codes already present below the header."""
        values = self._client.get_values(a1(self._sheet_name, "A:A"))
        return {row[0] for row in values[1:] if row and row[0]}

    def sync(self, records: Iterable[InvoiceRecord]) -> SyncResult:
        """Insert every invoice whose code is not on the board yet."""
        records = list(records)
        sheet_id = self.ensure_sheet()
        existing = self.existing_codes()
        self._logger.info("existing_codes_loaded", count=len(existing))

        new_records: list[InvoiceRecord] = []
        seen = set(existing)
        for record in records:
            if not record.code:
                self._logger.warning("invoice_without_code_skipped")
                continue
            if record.code in seen:
                continue
            seen.add(record.code)
            new_records.append(record)

        skipped = len(records) - len(new_records)
        if not new_records:
            self._logger.info("no_new_invoices", skipped=skipped)
            return SyncResult(inserted=0, skipped=skipped)

        rows = [row for record in new_records for row in expand_rows(record)]
        self.insert_rows(sheet_id, rows)
        self.format_new_rows(sheet_id, len(rows))
        self.repair(sheet_id)

        self._logger.info(
            "invoices_synced",
            inserted=len(new_records),
            skipped=skipped,
            rows=len(rows),
        )
        return SyncResult(inserted=len(new_records), skipped=skipped, rows_written=len(rows))

    def insert_rows(self, sheet_id: int, rows: list[SheetRow]) -> None:
        """Open a block of rows under the header and fill it."""
        count = len(rows)
        self._client.batch_format([layout.insert_rows_request(sheet_id, 1, count)])
        self._client.update_values(
            a1(self._sheet_name, f"A2:{layout.LAST_COLUMN}{1 + count}"),
            [row.to_values() for row in rows],
        )

    def format_new_rows(self, sheet_id: int, count: int) -> None:
        """Style only the ``count`` rows just inserted under the header."""
        start_row, end_row = 1, 1 + count
        self._client.batch_format(layout.new_rows_format_requests(sheet_id, start_row, end_row))
        self._logger.debug("rows_formatted", first_row=start_row + 1, last_row=end_row)

    def apply_rules(self, sheet_id: int) -> None:
        """Re-assert dropdown validation and color rules down to the row ceiling.

        Existing color rules on the enum columns are replaced rather than
        stacked, so repeated calls leave the same rule set behind.
        """
        existing_rules = self._client.get_conditional_format_rules(sheet_id)
        requests = layout.validation_requests(sheet_id, self._row_ceiling)
        requests += layout.delete_enum_rule_requests(sheet_id, existing_rules)
        requests += layout.conditional_format_requests(sheet_id, self._row_ceiling)
        self._client.batch_format(requests)

    def backfill_defaults(self) -> int:
        """Fill empty status/assignee/delay cells of coded rows with defaults.

        Returns:
            Number of cells written.
        """
        values = self._client.get_values(a1(self._sheet_name, f"A:{layout.LAST_COLUMN}"))
        updates = []
        for row_number, row in enumerate(values[1:], start=2):
            if not row or not row[0]:
                continue
            for column in layout.ENUM_COLUMNS:
                cell = row[column.index] if len(row) > column.index else ""
                if not cell.strip():
                    updates.append(
                        {
                            "range": a1(self._sheet_name, f"{column.letter}{row_number}"),
                            "values": [[column.default]],
                        }
                    )

        self._client.batch_update_values(updates)
        if updates:
            self._logger.info("defaults_backfilled", cells=len(updates))
        return len(updates)

    def repair(self, sheet_id: int | None = None) -> int:
        """Re-apply rules and backfill defaults; safe to run any number of times."""
        if sheet_id is None:
            sheet_id = self.ensure_sheet()
        self.apply_rules(sheet_id)
        return self.backfill_defaults()
