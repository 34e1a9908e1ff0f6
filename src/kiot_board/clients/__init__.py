"""Transport clients for KiotViet, Google Sheets and Telegram."""

from kiot_board.clients.kiotviet import (
    PRODUCT_TYPE_GOODS,
    PRODUCT_TYPE_SERVICE,
    KiotVietClient,
    KiotVietTokenProvider,
    TokenProvider,
)
from kiot_board.clients.sheets import GspreadSheetClient, SheetClient
from kiot_board.clients.telegram import Notifier, TelegramNotifier

__all__ = [
    "PRODUCT_TYPE_GOODS",
    "PRODUCT_TYPE_SERVICE",
    "KiotVietClient",
    "KiotVietTokenProvider",
    "TokenProvider",
    "GspreadSheetClient",
    "SheetClient",
    "Notifier",
    "TelegramNotifier",
]
