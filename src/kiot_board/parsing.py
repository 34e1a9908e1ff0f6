"""Parser for the free-text notes staff type into KiotViet invoices.

A note looks like::

    1. Áo sơ mi + giặt ủi
    2. Quần tây + ủi
    ĐTT
    Hẹn trả: 15/3

Numbered lines become work items, ``ĐTT``/``CTT`` mark the payment state and
``Hẹn trả:`` carries the promised return date. Anything else is ignored.
"""

import re

from kiot_board.models import ParsedDescription, PaymentStatus, WorkItem

NUMBERED_ITEM = re.compile(r"^\d+\.")
ITEM_NUMBER_PREFIX = re.compile(r"^\d+\.\s*")
RETURN_DATE_MARKER = "hẹn trả:"
RETURN_DATE_PREFIX = re.compile(r"hẹn trả:", re.IGNORECASE)

PAYMENT_MARKERS: dict[str, PaymentStatus] = {
    "ĐTT": PaymentStatus.PAID,
    "CTT": PaymentStatus.UNPAID,
}


def parse_item_line(line: str) -> WorkItem:
    """Split a numbered line on ``+`` into product name and work.

    Only the first two ``+`` segments are kept; anything after a second ``+``
    is dropped.
    """
    parts = [part.strip() for part in line.split("+")]
    product_name = ITEM_NUMBER_PREFIX.sub("", parts[0]).strip()
    work = parts[1] if len(parts) > 1 else ""
    return WorkItem(product_name=product_name, work=work)


def parse_description(description: str | None) -> ParsedDescription:
    """Parse an invoice note into work items, payment status and return date.

    Never raises: unrecognised lines are skipped and an empty or missing note
    yields an empty result.
    """
    if not description:
        return ParsedDescription()

    items: list[WorkItem] = []
    payment_status = PaymentStatus.UNKNOWN
    return_date = ""

    for line in description.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        if NUMBERED_ITEM.match(stripped):
            items.append(parse_item_line(stripped))
        elif stripped in PAYMENT_MARKERS:
            payment_status = PAYMENT_MARKERS[stripped]
        elif stripped.lower().startswith(RETURN_DATE_MARKER):
            return_date = RETURN_DATE_PREFIX.sub("", stripped, count=1).strip()

    return ParsedDescription(
        items=tuple(items),
        payment_status=payment_status,
        return_date=return_date,
    )
