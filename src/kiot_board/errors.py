"""Exception hierarchy shared by the work board components."""

from typing import Any


class BoardError(Exception):
    """Base exception for work board errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class UpstreamError(BoardError):
    """Token retrieval or KiotViet data fetch failed."""

    pass


class AuthenticationError(UpstreamError):
    """KiotViet refused the client credentials or returned no token."""

    pass


class SheetAccessError(BoardError):
    """Spreadsheet unreachable, or the target tab is missing and could not be created."""

    pass


class NotifyError(BoardError):
    """Telegram dispatch failed."""

    pass


class RecordStoreError(BoardError):
    """Catalog store query or insert failed."""

    pass
