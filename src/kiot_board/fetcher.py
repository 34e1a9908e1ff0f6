"""Turns raw KiotViet invoices into normalized ``InvoiceRecord`` values."""

from datetime import date
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from kiot_board.clients.kiotviet import KiotVietClient
from kiot_board.dates import parse_kiotviet_timestamp
from kiot_board.models import InvoiceRecord
from kiot_board.parsing import parse_description

logger = structlog.get_logger(__name__)


def to_invoice_record(raw: dict[str, Any], tz: ZoneInfo | None = None) -> InvoiceRecord:
    """Map one raw invoice object, parsing its free-text description."""
    parsed = parse_description(raw.get("description") or "")
    return InvoiceRecord(
        code=str(raw.get("code") or ""),
        purchase_date=parse_kiotviet_timestamp(raw.get("purchaseDate"), tz),
        items=parsed.items,
        payment_status=parsed.payment_status,
        return_date=parsed.return_date,
    )


class InvoiceFetcher:
    """Fetches one window of invoices. Does not retry; errors surface as ``UpstreamError``."""

    def __init__(
        self,
        client: KiotVietClient,
        page_size: int = 200,
        tz: ZoneInfo | None = None,
    ):
        self._client = client
        self._page_size = page_size
        self._tz = tz

    async def fetch(
        self,
        window_start: date,
        window_end: date,
        status_filter: str = "[1,3]",
    ) -> list[InvoiceRecord]:
        logger.info(
            "invoices_fetch_started",
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
            status=status_filter,
        )
        raw_invoices = await self._client.list_invoices(
            window_start,
            window_end,
            status=status_filter,
            page_size=self._page_size,
        )
        records = [to_invoice_record(raw, self._tz) for raw in raw_invoices]
        logger.info("invoices_fetched", count=len(records))
        return records
