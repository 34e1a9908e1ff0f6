"""Daily digests built from the work board.

Classification is pure: it takes rows already read from the sheet and a
reference day, and returns report data. Only ``ReportEngine`` touches the
sheet and the notifier.
"""

from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from zoneinfo import ZoneInfo

import structlog

from kiot_board.clients.sheets import SheetClient
from kiot_board.clients.telegram import Notifier
from kiot_board.dates import (
    extract_day_month,
    format_for_message,
    format_for_sheet,
    receive_date_key,
    yesterday_of,
)
from kiot_board.models import SheetRow, WorkItem, WorkStatus
from kiot_board.sheets import layout
from kiot_board.sheets.synchronizer import a1

logger = structlog.get_logger(__name__)

DEFAULT_UNESTIMATED_EXCLUDED = frozenset({WorkStatus.FLAGGED, WorkStatus.CANCELLED})
DEFAULT_CLOSED_STATUSES = frozenset({WorkStatus.CLOSED, WorkStatus.CANCELLED})


class ReportBucket(str, Enum):
    """Where a row lands at report time."""

    UNESTIMATED = "unestimated"
    DUE_TODAY = "due_today"
    OVERDUE = "overdue"
    FLAGGED = "flagged"


@dataclass(frozen=True)
class UnestimatedReport:
    codes: list[str]
    rows_on_day: int
    total_rows: int


@dataclass(frozen=True)
class DueItem:
    code: str
    due_date: str


@dataclass(frozen=True)
class DueReport:
    due_today: list[DueItem] = field(default_factory=list)
    overdue: list[DueItem] = field(default_factory=list)


@dataclass(frozen=True)
class FlaggedInvoice:
    code: str
    items: list[WorkItem] = field(default_factory=list)


def _status_in(row: SheetRow, statuses: Collection[WorkStatus]) -> bool:
    return row.status.strip() in {status.value for status in statuses}


def find_unestimated(
    rows: Sequence[SheetRow],
    target_day: date,
    excluded_statuses: Collection[WorkStatus] = DEFAULT_UNESTIMATED_EXCLUDED,
) -> UnestimatedReport:
    """Invoices received on ``target_day`` that still have no time estimate."""
    target = format_for_sheet(target_day)
    codes: dict[str, None] = {}
    rows_on_day = 0

    for row in rows:
        if receive_date_key(row.receive_date) != target:
            continue
        rows_on_day += 1
        if not row.invoice_code:
            continue
        if row.elapsed_time.strip():
            continue
        if _status_in(row, excluded_statuses):
            continue
        codes.setdefault(row.invoice_code, None)

    return UnestimatedReport(codes=list(codes), rows_on_day=rows_on_day, total_rows=len(rows))


def effective_due_text(row: SheetRow) -> str:
    """The rescheduled return date when one was typed in, else the original."""
    return row.rescheduled_return_date.strip() or row.return_date.strip()


def classify_row(
    row: SheetRow,
    today: date,
    closed_statuses: Collection[WorkStatus] = DEFAULT_CLOSED_STATUSES,
) -> ReportBucket | None:
    """Due-today / overdue bucket of a single row, or ``None`` (future, closed, no date)."""
    if not row.invoice_code:
        return None
    due = extract_day_month(effective_due_text(row))
    if due is None:
        return None
    if _status_in(row, closed_statuses):
        return None
    if due.is_same_day(today):
        return ReportBucket.DUE_TODAY
    if due.is_before(today):
        return ReportBucket.OVERDUE
    return None


def classify_due(
    rows: Sequence[SheetRow],
    today: date,
    closed_statuses: Collection[WorkStatus] = DEFAULT_CLOSED_STATUSES,
) -> DueReport:
    """Split invoices into due today and overdue, one entry per code.

    A code with any row due today is reported only as due today, whatever the
    order of its rows.
    """
    due_rows: list[SheetRow] = []
    overdue_rows: list[SheetRow] = []
    for row in rows:
        bucket = classify_row(row, today, closed_statuses)
        if bucket is ReportBucket.DUE_TODAY:
            due_rows.append(row)
        elif bucket is ReportBucket.OVERDUE:
            overdue_rows.append(row)

    by_code: dict[str, tuple[ReportBucket, str]] = {}
    for bucket, bucket_rows in (
        (ReportBucket.DUE_TODAY, due_rows),
        (ReportBucket.OVERDUE, overdue_rows),
    ):
        for row in bucket_rows:
            by_code.setdefault(row.invoice_code, (bucket, effective_due_text(row)))

    report = DueReport()
    for code, (bucket, due_text) in by_code.items():
        target = report.due_today if bucket is ReportBucket.DUE_TODAY else report.overdue
        target.append(DueItem(code=code, due_date=due_text))
    return report


def collect_flagged(rows: Sequence[SheetRow]) -> list[FlaggedInvoice]:
    """Group "Phát sinh" rows by invoice code, keeping first-seen order."""
    grouped: dict[str, list[WorkItem]] = {}
    for row in rows:
        if not row.invoice_code or row.status.strip() != WorkStatus.FLAGGED.value:
            continue
        items = grouped.setdefault(row.invoice_code, [])
        product, work = row.product_name.strip(), row.work.strip()
        if product or work:
            items.append(WorkItem(product_name=product, work=work))
    return [FlaggedInvoice(code=code, items=items) for code, items in grouped.items()]


# === Message formatting ===


def format_unestimated_message(codes: Sequence[str], report_day: date, generated_on: date) -> str:
    lines = [
        f"⚠️ BÁO CÁO CÔNG VIỆC CHƯA CÓ ESTIMATE NGÀY {format_for_message(report_day)} ⚠️",
        f"🕒 Báo cáo được tạo vào ngày {format_for_message(generated_on)}",
        "",
        f"📋 Các mã hóa đơn chưa nhập thời gian estimate ({len(codes)}):",
        "",
    ]
    lines += [f"{i}. {code}" for i, code in enumerate(codes, start=1)]
    lines += ["", "⏰ Vui lòng cập nhật thời gian estimate cho các mã đơn trên."]
    return "\n".join(lines)


def format_due_today_message(items: Sequence[DueItem], today: date) -> str:
    lines = [
        f"📅 BÁO CÁO ĐẾN HẠN TRẢ NGÀY {format_for_message(today)} 📅",
        "",
        f"📦 Các mã hóa đơn cần trả HÔM NAY ({len(items)}):",
        "",
    ]
    lines += [f"{i}. {item.code} - {item.due_date}" for i, item in enumerate(items, start=1)]
    lines += ["", "📦 Vui lòng kiểm tra và trả đúng hạn các mã đơn trên."]
    return "\n".join(lines)


def format_overdue_message(items: Sequence[DueItem]) -> str:
    lines = [
        "🚨 BÁO CÁO QUÁ HẠN TRẢ 🚨",
        "",
        f"⚠️ Các mã hóa đơn ĐÃ QUÁ HẠN ({len(items)}):",
        "",
    ]
    lines += [f"{i}. {item.code} - {item.due_date}" for i, item in enumerate(items, start=1)]
    lines += ["", "⚠️ Các mã đơn trên đã quá hạn trả, cần xử lý NGAY!"]
    return "\n".join(lines)


def _item_label(item: WorkItem) -> str:
    if item.product_name and item.work:
        return f"{item.product_name} - {item.work}"
    return item.product_name or item.work


def format_flagged_message(invoices: Sequence[FlaggedInvoice], today: date) -> str:
    lines = [
        f"🔔 BÁO CÁO CÔNG VIỆC PHÁT SINH NGÀY {format_for_message(today)} 🔔",
        "",
        f"📌 Các mã hóa đơn có công việc phát sinh ({len(invoices)}):",
        "",
    ]
    for i, invoice in enumerate(invoices, start=1):
        lines.append(f"{i}. {invoice.code}")
        lines += [f"   • {_item_label(item)}" for item in invoice.items]
    lines += ["", "🛠️ Vui lòng kiểm tra và xử lý các công việc phát sinh trên."]
    return "\n".join(lines)


class ReportEngine:
    """Reads the board, classifies rows and sends one message per non-empty bucket."""

    def __init__(
        self,
        sheet_client: SheetClient,
        notifier: Notifier,
        sheet_name: str,
        topic_id: str,
        tz: ZoneInfo,
        clock: Callable[[], datetime] | None = None,
        unestimated_excluded: Collection[WorkStatus] = DEFAULT_UNESTIMATED_EXCLUDED,
        closed_statuses: Collection[WorkStatus] = DEFAULT_CLOSED_STATUSES,
    ):
        self._sheet_client = sheet_client
        self._notifier = notifier
        self._sheet_name = sheet_name
        self._topic_id = topic_id
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(tz))
        self._unestimated_excluded = unestimated_excluded
        self._closed_statuses = closed_statuses
        self._logger = logger.bind(component="report_engine")

    def today(self) -> date:
        return self._clock().date()

    def read_rows(self) -> list[SheetRow]:
        """All data rows of the board (header excluded)."""
        values = self._sheet_client.get_values(a1(self._sheet_name, f"A:{layout.LAST_COLUMN}"))
        return [SheetRow.from_values(row) for row in values[1:]]

    async def _notify(self, text: str) -> None:
        await self._notifier.send(self._topic_id, text)

    async def run_unestimated_report(
        self, use_yesterday: bool = True, rows: list[SheetRow] | None = None
    ) -> int:
        """Report invoices without a time estimate. Returns the number of messages sent."""
        rows = self.read_rows() if rows is None else rows
        today = self.today()
        report_day = yesterday_of(today) if use_yesterday else today
        report = find_unestimated(rows, report_day, self._unestimated_excluded)
        self._logger.info(
            "unestimated_found",
            day=report_day.isoformat(),
            invoices=len(report.codes),
            rows_on_day=report.rows_on_day,
            total_rows=report.total_rows,
        )
        if not report.codes:
            self._logger.info("unestimated_report_skipped")
            return 0
        await self._notify(format_unestimated_message(report.codes, report_day, today))
        self._logger.info("unestimated_report_sent")
        return 1

    async def run_due_report(self, rows: list[SheetRow] | None = None) -> int:
        """Send the due-today and overdue messages. Returns the number sent."""
        rows = self.read_rows() if rows is None else rows
        today = self.today()
        report = classify_due(rows, today, self._closed_statuses)
        self._logger.info(
            "due_items_found",
            due_today=len(report.due_today),
            overdue=len(report.overdue),
        )
        sent = 0
        if report.due_today:
            await self._notify(format_due_today_message(report.due_today, today))
            sent += 1
        if report.overdue:
            await self._notify(format_overdue_message(report.overdue))
            sent += 1
        self._logger.info("due_report_completed", messages=sent)
        return sent

    async def run_flagged_report(self, rows: list[SheetRow] | None = None) -> int:
        """Send the "phát sinh" digest. Returns the number of messages sent."""
        rows = self.read_rows() if rows is None else rows
        invoices = collect_flagged(rows)
        self._logger.info("flagged_found", invoices=len(invoices))
        if not invoices:
            return 0
        await self._notify(format_flagged_message(invoices, self.today()))
        self._logger.info("flagged_report_sent")
        return 1

    async def run_all(self, use_yesterday: bool = True) -> dict[ReportBucket, bool]:
        """Run every report off one sheet read; a failing report does not stop the rest.

        Returns:
            Success flag per report (due-today and overdue share one entry,
            keyed ``DUE_TODAY``).
        """
        results: dict[ReportBucket, bool] = {
            ReportBucket.UNESTIMATED: False,
            ReportBucket.DUE_TODAY: False,
            ReportBucket.FLAGGED: False,
        }
        try:
            rows = self.read_rows()
        except Exception as e:
            self._logger.error("report_read_failed", error=str(e))
            return results

        runners = {
            ReportBucket.UNESTIMATED: lambda: self.run_unestimated_report(use_yesterday, rows),
            ReportBucket.DUE_TODAY: lambda: self.run_due_report(rows),
            ReportBucket.FLAGGED: lambda: self.run_flagged_report(rows),
        }
        for bucket, runner in runners.items():
            try:
                await runner()
                results[bucket] = True
            except Exception as e:
                self._logger.error("report_failed", report=bucket.value, error=str(e))
        return results
