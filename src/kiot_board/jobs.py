"""Sync job and component wiring from settings."""

from zoneinfo import ZoneInfo

import structlog

from kiot_board.clients.kiotviet import KiotVietClient, KiotVietTokenProvider
from kiot_board.clients.sheets import GspreadSheetClient, SheetClient
from kiot_board.clients.telegram import TelegramNotifier
from kiot_board.config.settings import FlatSettings
from kiot_board.dates import today_in
from kiot_board.fetcher import InvoiceFetcher
from kiot_board.reports import ReportEngine
from kiot_board.seeder import CatalogSync
from kiot_board.sheets import SheetSynchronizer, SyncResult
from kiot_board.store import RecordStore, SQLiteRecordStore

logger = structlog.get_logger(__name__)


class SyncJob:
    """Fetches today's completed and processing invoices and puts them on the board."""

    def __init__(
        self,
        fetcher: InvoiceFetcher,
        synchronizer: SheetSynchronizer,
        tz: ZoneInfo,
        status_filter: str = "[1,3]",
    ):
        self._fetcher = fetcher
        self._synchronizer = synchronizer
        self._tz = tz
        self._status_filter = status_filter
        self._logger = logger.bind(component="sync_job")

    async def run(self) -> SyncResult:
        today = today_in(self._tz)
        self._logger.info("sync_started", day=today.isoformat())
        records = await self._fetcher.fetch(today, today, status_filter=self._status_filter)
        result = self._synchronizer.sync(records)
        self._logger.info(
            "sync_completed",
            inserted=result.inserted,
            skipped=result.skipped,
            rows=result.rows_written,
        )
        return result


def build_kiotviet_client(settings: FlatSettings) -> KiotVietClient:
    token_provider = KiotVietTokenProvider(
        client_id=settings.kiotviet_client_id,
        client_secret=settings.kiotviet_client_secret.get_secret_value(),
        token_url=settings.kiotviet_token_url,
        timeout=settings.kiotviet_timeout,
    )
    return KiotVietClient(
        token_provider,
        retailer=settings.kiotviet_retailer,
        base_url=settings.kiotviet_api_url,
        timeout=settings.kiotviet_timeout,
    )


def build_sheet_client(settings: FlatSettings) -> SheetClient:
    credentials = settings.google_service_account_credentials
    return GspreadSheetClient.from_service_account(
        settings.spreadsheet_id,
        credentials_json=credentials.get_secret_value() if credentials else None,
        credentials_file=settings.google_service_account_file,
    )


def build_notifier(settings: FlatSettings) -> TelegramNotifier:
    return TelegramNotifier(
        bot_token=settings.telegram_bot_token.get_secret_value(),
        chat_id=settings.telegram_chat_id,
        daily_report_topic_id=settings.telegram_daily_report_topic_id,
        feedback_topic_id=settings.telegram_feedback_topic_id,
        base_url=settings.telegram_api_url,
    )


def build_sync_job(
    settings: FlatSettings, client: KiotVietClient, sheet_client: SheetClient
) -> SyncJob:
    tz = ZoneInfo(settings.timezone)
    fetcher = InvoiceFetcher(client, page_size=settings.invoice_page_size, tz=tz)
    synchronizer = SheetSynchronizer(
        sheet_client, settings.sheet_name, row_ceiling=settings.sheet_row_ceiling
    )
    return SyncJob(fetcher, synchronizer, tz, status_filter=settings.invoice_status_filter)


def build_report_engine(
    settings: FlatSettings, sheet_client: SheetClient, notifier: TelegramNotifier
) -> ReportEngine:
    return ReportEngine(
        sheet_client,
        notifier,
        sheet_name=settings.sheet_name,
        topic_id=settings.telegram_daily_report_topic_id,
        tz=ZoneInfo(settings.timezone),
    )


def build_record_store(settings: FlatSettings) -> SQLiteRecordStore:
    return SQLiteRecordStore(settings.database_path)


def build_catalog_sync(client: KiotVietClient, store: RecordStore) -> CatalogSync:
    return CatalogSync(client, store)
