"""Tests for report classification, messages and the report engine."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from kiot_board.errors import NotifyError, SheetAccessError
from kiot_board.models import SheetRow, WorkItem, WorkStatus
from kiot_board.reports import (
    DueItem,
    FlaggedInvoice,
    ReportBucket,
    ReportEngine,
    classify_due,
    classify_row,
    collect_flagged,
    effective_due_text,
    find_unestimated,
    format_due_today_message,
    format_flagged_message,
    format_overdue_message,
    format_unestimated_message,
)

TODAY = date(2025, 3, 10)


def sheet_row(
    code,
    receive="03/09/2025 10:00",
    return_date="",
    status="Chưa làm",
    elapsed="",
    rescheduled="",
    product="Giày",
    work="vệ sinh",
):
    return SheetRow(
        invoice_code=code,
        receive_date=receive,
        return_date=return_date,
        product_name=product,
        work=work,
        status=status,
        elapsed_time=elapsed,
        rescheduled_return_date=rescheduled,
    )


def as_values(row: SheetRow) -> list[str]:
    return row.to_values()


class TestFindUnestimated:
    """Tests for the missing-estimate report."""

    def test_lists_each_code_once(self):
        """Test that each code is listed once."""
        rows = [
            sheet_row("HD001"),
            sheet_row("HD001", product="Túi"),
            sheet_row("HD002", elapsed="2h"),
            sheet_row("HD003", receive="03/10/2025 08:00"),
        ]

        report = find_unestimated(rows, date(2025, 3, 9))

        assert report.codes == ["HD001"]
        assert report.rows_on_day == 3
        assert report.total_rows == 4

    def test_day_first_receive_date_matches(self):
        """Test that a day-first receive date matches."""
        rows = [sheet_row("HD001", receive="15/03/2025 10:00")]

        assert find_unestimated(rows, date(2025, 3, 15)).codes == ["HD001"]

    def test_flagged_and_cancelled_are_excluded(self):
        """Test that flagged and cancelled rows are excluded."""
        rows = [
            sheet_row("HD001", status=WorkStatus.FLAGGED.value),
            sheet_row("HD002", status=WorkStatus.CANCELLED.value),
            sheet_row("HD003", status=WorkStatus.IN_PROGRESS.value),
        ]

        assert find_unestimated(rows, date(2025, 3, 9)).codes == ["HD003"]

    def test_exclusions_are_configurable(self):
        """Test that exclusions are configurable."""
        rows = [sheet_row("HD001", status=WorkStatus.FLAGGED.value)]

        report = find_unestimated(rows, date(2025, 3, 9), excluded_statuses=())

        assert report.codes == ["HD001"]

    def test_rows_without_code_are_ignored(self):
        """Test that rows without a code are ignored."""
        assert find_unestimated([sheet_row("")], date(2025, 3, 9)).codes == []


class TestClassifyDue:
    """Tests for due-today and overdue classification."""

    def test_overdue_with_prefix_text(self):
        """Test an overdue date with prefix text."""
        assert classify_row(sheet_row("HD001", return_date="quá 7/3"), TODAY) is ReportBucket.OVERDUE

    def test_due_today(self):
        """Test a row due today."""
        assert classify_row(sheet_row("HD002", return_date="10/3"), TODAY) is ReportBucket.DUE_TODAY

    def test_future_is_not_reported(self):
        """Test that a future date is not reported."""
        assert classify_row(sheet_row("HD003", return_date="15/3"), TODAY) is None

    def test_closed_invoice_is_not_reported(self):
        """Test that a closed invoice is not reported."""
        row = sheet_row("HD004", return_date="7/3", status=WorkStatus.CLOSED.value)

        assert classify_row(row, TODAY) is None

    def test_cancelled_invoice_is_not_reported(self):
        """Test that a cancelled invoice is not reported."""
        row = sheet_row("HD005", return_date="7/3", status=WorkStatus.CANCELLED.value)

        assert classify_row(row, TODAY) is None

    @pytest.mark.parametrize("text", ["", "0", "chiều mai"])
    def test_no_date_is_not_reported(self, text):
        """Test that a row without a date is not reported."""
        assert classify_row(sheet_row("HD006", return_date=text), TODAY) is None

    def test_rescheduled_date_wins(self):
        """Test that the rescheduled date wins."""
        row = sheet_row("HD007", return_date="5/3", rescheduled="12/3")

        assert effective_due_text(row) == "12/3"
        assert classify_row(row, TODAY) is None

    def test_example_board(self):
        """Test classifying an example board."""
        rows = [
            sheet_row("HD001", return_date="quá 7/3"),
            sheet_row("HD002", return_date="10/3"),
            sheet_row("HD003", return_date="15/3"),
            sheet_row("HD004", return_date="7/3", status=WorkStatus.CLOSED.value),
        ]

        report = classify_due(rows, TODAY)

        assert report.due_today == [DueItem("HD002", "10/3")]
        assert report.overdue == [DueItem("HD001", "quá 7/3")]

    def test_due_today_beats_overdue_for_same_code(self):
        """Test that due today beats overdue for the same code."""
        rows = [
            sheet_row("HD001", return_date="7/3"),
            sheet_row("HD001", return_date="10/3"),
        ]

        report = classify_due(rows, TODAY)

        assert [item.code for item in report.due_today] == ["HD001"]
        assert report.overdue == []

    def test_each_code_listed_once(self):
        """Test that each code is listed once per bucket."""
        rows = [sheet_row("HD001", return_date="7/3"), sheet_row("HD001", return_date="8/3")]

        assert len(classify_due(rows, TODAY).overdue) == 1

    def test_earlier_month_is_overdue(self):
        """Test that an earlier month is overdue."""
        assert classify_row(sheet_row("HD001", return_date="28/2"), TODAY) is ReportBucket.OVERDUE


class TestCollectFlagged:
    """Tests for the "Phát sinh" digest."""

    def test_groups_items_by_code(self):
        """Test grouping items by code."""
        rows = [
            sheet_row("HD001", status="Phát sinh", product="Giày", work="sơn đế"),
            sheet_row("HD002", status="Đang làm"),
            sheet_row("HD001", status="Phát sinh", product="Túi", work=""),
        ]

        flagged = collect_flagged(rows)

        assert flagged == [
            FlaggedInvoice("HD001", [WorkItem("Giày", "sơn đế"), WorkItem("Túi", "")])
        ]

    def test_invoice_without_items_is_still_listed(self):
        """Test that an invoice without items is still listed."""
        rows = [sheet_row("HD009", status="Phát sinh", product="", work="")]

        assert collect_flagged(rows) == [FlaggedInvoice("HD009", [])]


class TestMessages:
    """Tests for message text."""

    def test_unestimated_message(self):
        """Test the unestimated message."""
        text = format_unestimated_message(["HD001", "HD002"], date(2025, 3, 9), TODAY)

        assert "NGÀY 09/03/2025" in text
        assert "10/03/2025" in text
        assert "(2)" in text
        assert "1. HD001\n2. HD002" in text

    def test_due_today_message(self):
        """Test the due today message."""
        text = format_due_today_message([DueItem("HD002", "10/3")], TODAY)

        assert "10/03/2025" in text
        assert "1. HD002 - 10/3" in text

    def test_overdue_message(self):
        """Test the overdue message."""
        text = format_overdue_message([DueItem("HD001", "quá 7/3")])

        assert "QUÁ HẠN" in text
        assert "1. HD001 - quá 7/3" in text

    def test_flagged_message(self):
        """Test the flagged message."""
        text = format_flagged_message(
            [FlaggedInvoice("HD001", [WorkItem("Giày", "sơn đế")]), FlaggedInvoice("HD009", [])],
            TODAY,
        )

        assert "1. HD001" in text
        assert "Giày - sơn đế" in text
        assert "2. HD009" in text


class TestReportEngine:
    """Tests for ReportEngine."""

    @pytest.fixture
    def engine_for(self, make_sheet, mock_notifier, fixed_clock, tz):
        def _build(rows):
            sheet = make_sheet([as_values(r) for r in rows])
            return ReportEngine(sheet, mock_notifier, "Công việc", "42", tz, clock=fixed_clock)

        return _build

    @pytest.mark.asyncio
    async def test_due_report_sends_two_messages(self, engine_for, mock_notifier):
        """Test that the due report sends two messages."""
        engine = engine_for(
            [sheet_row("HD001", return_date="quá 7/3"), sheet_row("HD002", return_date="10/3")]
        )

        sent = await engine.run_due_report()

        assert sent == 2
        assert mock_notifier.send.await_count == 2
        topic, first = mock_notifier.send.await_args_list[0].args
        assert topic == "42"
        assert "HD002" in first
        assert "HD001" in mock_notifier.send.await_args_list[1].args[1]

    @pytest.mark.asyncio
    async def test_empty_buckets_send_nothing(self, engine_for, mock_notifier):
        """Test that empty buckets send nothing."""
        engine = engine_for([sheet_row("HD003", return_date="15/3", elapsed="1h")])

        assert await engine.run_due_report() == 0
        assert await engine.run_unestimated_report() == 0
        assert await engine.run_flagged_report() == 0
        mock_notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unestimated_uses_yesterday_by_default(self, engine_for, mock_notifier):
        """Test that the unestimated report uses yesterday by default."""
        engine = engine_for(
            [sheet_row("HD001", receive="03/09/2025 10:00"), sheet_row("HD002", receive="03/10/2025 10:00")]
        )

        await engine.run_unestimated_report()
        yesterday_text = mock_notifier.send.await_args.args[1]
        await engine.run_unestimated_report(use_yesterday=False)
        today_text = mock_notifier.send.await_args.args[1]

        assert "HD001" in yesterday_text and "HD002" not in yesterday_text
        assert "HD002" in today_text and "HD001" not in today_text

    @pytest.mark.asyncio
    async def test_read_board_skips_header(self, engine_for):
        """Test that reading the board skips the header."""
        engine = engine_for([sheet_row("HD001")])

        rows = engine.read_rows()

        assert [r.invoice_code for r in rows] == ["HD001"]

    @pytest.mark.asyncio
    async def test_run_all_isolates_failures(self, engine_for, mock_notifier):
        """Test that run_all isolates failures."""
        engine = engine_for(
            [
                sheet_row("HD001", receive="03/09/2025 10:00", return_date="10/3"),
                sheet_row("HD002", status="Phát sinh"),
            ]
        )
        calls = []

        async def send(topic_id, text):
            calls.append(text)
            if "ĐẾN HẠN" in text:
                raise NotifyError("boom", status_code=500)

        mock_notifier.send.side_effect = send

        results = await engine.run_all()

        assert results == {
            ReportBucket.UNESTIMATED: True,
            ReportBucket.DUE_TODAY: False,
            ReportBucket.FLAGGED: True,
        }
        assert any("PHÁT SINH" in text for text in calls)

    @pytest.mark.asyncio
    async def test_run_all_when_board_unreadable(self, mock_notifier, fixed_clock, tz):
        """Test run_all when the board is unreadable."""
        sheet = MagicMock()
        sheet.get_values.side_effect = SheetAccessError("denied", status_code=403)
        engine = ReportEngine(sheet, mock_notifier, "Công việc", "42", tz, clock=fixed_clock)

        results = await engine.run_all()

        assert not any(results.values())
        mock_notifier.send.assert_not_awaited()
