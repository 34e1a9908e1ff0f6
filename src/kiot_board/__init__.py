"""KiotViet invoices to a Google Sheets work board, with Telegram daily reports."""

__version__ = "0.1.0"
