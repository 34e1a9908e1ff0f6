"""Configuration settings for the KiotViet work board."""

from datetime import time
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # KiotViet API
    kiotviet_client_id: str = Field(..., validation_alias="KIOTVIET_CLIENT_ID")
    kiotviet_client_secret: SecretStr = Field(..., validation_alias="KIOTVIET_CLIENT_SECRET")
    kiotviet_retailer: str = Field(..., validation_alias="KIOTVIET_RETAILER")
    kiotviet_token_url: str = Field(
        default="https://id.kiotviet.vn/connect/token",
        validation_alias="KIOTVIET_TOKEN_URL",
    )
    kiotviet_api_url: str = Field(
        default="https://public.kiotapi.com", validation_alias="KIOTVIET_API_URL"
    )
    kiotviet_timeout: float = Field(default=30.0, validation_alias="KIOTVIET_TIMEOUT")
    invoice_page_size: int = Field(default=200, validation_alias="INVOICE_PAGE_SIZE")
    invoice_status_filter: str = Field(default="[1,3]", validation_alias="INVOICE_STATUS_FILTER")

    # Google Sheets
    spreadsheet_id: str = Field(..., validation_alias="SPREADSHEET_ID")
    sheet_name: str = Field(default="Công việc", validation_alias="SHEET_NAME")
    google_service_account_credentials: SecretStr | None = Field(
        default=None, validation_alias="GOOGLE_SERVICE_ACCOUNT_CREDENTIALS"
    )
    google_service_account_file: Path | None = Field(
        default=None, validation_alias="GOOGLE_SERVICE_ACCOUNT_FILE"
    )
    sheet_row_ceiling: int = Field(default=1000, validation_alias="SHEET_ROW_CEILING")

    # Telegram
    telegram_bot_token: SecretStr = Field(..., validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field(..., validation_alias="TELEGRAM_CHAT_ID")
    telegram_daily_report_topic_id: str = Field(
        ..., validation_alias="TELEGRAM_DAILY_REPORT_TOPIC_ID"
    )
    telegram_feedback_topic_id: str | None = Field(
        default=None, validation_alias="TELEGRAM_FEEDBACK_TOPIC_ID"
    )
    telegram_api_url: str = Field(
        default="https://api.telegram.org", validation_alias="TELEGRAM_API_URL"
    )

    # Scheduling
    timezone: str = Field(default="Asia/Ho_Chi_Minh", validation_alias="TIMEZONE")
    sync_interval_minutes: int = Field(default=15, validation_alias="SYNC_INTERVAL_MINUTES")
    report_due_time: time = Field(default=time(8, 30), validation_alias="REPORT_DUE_TIME")
    report_unestimated_time: time = Field(
        default=time(9, 0), validation_alias="REPORT_UNESTIMATED_TIME"
    )
    report_flagged_time: time = Field(default=time(9, 0), validation_alias="REPORT_FLAGGED_TIME")

    # Catalog store
    database_path: Path = Field(default=Path("data/kiot_board.db"), validation_alias="DATABASE_PATH")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(default="console", validation_alias="LOG_FORMAT")
    log_dir: Path | None = Field(default=None, validation_alias="LOG_DIR")


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
