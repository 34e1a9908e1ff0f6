"""Domain types for invoices, work items and board rows."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class WorkStatus(str, Enum):
    """Status dropdown values of the work board."""

    NOT_STARTED = "Chưa làm"
    IN_PROGRESS = "Đang làm"
    FLAGGED = "Phát sinh"
    DONE = "Hoàn thành"
    CLOSED = "Đóng đơn"
    CANCELLED = "Huỷ đơn"

    @classmethod
    def default(cls) -> "WorkStatus":
        return cls.NOT_STARTED


class Assignee(str, Enum):
    """People (or branches) a work item can be assigned to."""

    UNASSIGNED = "Chọn người làm"
    MINH = "Minh"
    HUY = "Huy"
    VUON_DAO = "Vườn Đào"
    HA_NOI = "Hà Nội"
    NAM_DINH = "Nam Định"

    @classmethod
    def default(cls) -> "Assignee":
        return cls.UNASSIGNED


class DelayCount(str, Enum):
    """How many times the return date has been pushed back."""

    NONE = "0 lần"
    ONCE = "1 lần"
    TWICE = "2 lần"
    THREE_OR_MORE = "3 lần trở lên"

    @classmethod
    def default(cls) -> "DelayCount":
        return cls.NONE


class PaymentStatus(str, Enum):
    """Payment state taken from the ĐTT/CTT marker line of an invoice note."""

    UNKNOWN = ""
    PAID = "Đã thanh toán"
    UNPAID = "Chưa thanh toán"


@dataclass(frozen=True)
class WorkItem:
    """One product + task pair listed in an invoice note."""

    product_name: str
    work: str = ""


@dataclass(frozen=True)
class ParsedDescription:
    """Structured result of parsing an invoice description."""

    items: tuple[WorkItem, ...] = ()
    payment_status: PaymentStatus = PaymentStatus.UNKNOWN
    return_date: str = ""


@dataclass(frozen=True)
class InvoiceRecord:
    """A normalized KiotViet invoice, ready to be written to the board."""

    code: str
    purchase_date: datetime | None
    items: tuple[WorkItem, ...] = ()
    payment_status: PaymentStatus = PaymentStatus.UNKNOWN
    return_date: str = ""


# Column order of the board, A through L.
SHEET_COLUMN_COUNT = 12


@dataclass
class SheetRow:
    """One persisted line of the board.

    Enum-backed cells are kept as plain text because humans edit them in the
    sheet and may leave values outside the dropdown lists.
    """

    invoice_code: str
    receive_date: str = ""
    return_date: str = ""
    product_name: str = ""
    work: str = ""
    status: str = WorkStatus.NOT_STARTED.value
    elapsed_time: str = ""
    assignee: str = Assignee.UNASSIGNED.value
    payment_status: str = ""
    note: str = ""
    delay_count: str = DelayCount.NONE.value
    rescheduled_return_date: str = ""
    extra: list[str] = field(default_factory=list, repr=False)

    def to_values(self) -> list[str]:
        """Return the 12 cell values in column order."""
        return [
            self.invoice_code,
            self.receive_date,
            self.return_date,
            self.product_name,
            self.work,
            self.status,
            self.elapsed_time,
            self.assignee,
            self.payment_status,
            self.note,
            self.delay_count,
            self.rescheduled_return_date,
        ]

    @classmethod
    def from_values(cls, values: list[str]) -> "SheetRow":
        """Build a row from sheet cells; short rows are padded with empty text."""
        cells = [str(v) if v is not None else "" for v in values]
        cells += [""] * (SHEET_COLUMN_COUNT - len(cells))
        return cls(*cells[:SHEET_COLUMN_COUNT], extra=cells[SHEET_COLUMN_COUNT:])
