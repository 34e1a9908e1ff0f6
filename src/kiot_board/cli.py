"""Command line entry point: ``kiot-board``.

Usage:
    kiot-board sync                   # Push today's invoices to the board
    kiot-board report due             # Due-today and overdue messages
    kiot-board report unestimated     # Yesterday's invoices without an estimate
    kiot-board report all --today     # Every report, unestimated for today
    kiot-board seed goods             # Copy KiotViet goods into the catalog store
    kiot-board serve                  # Sync every N minutes, reports daily
    kiot-board check-bot              # Telegram connectivity check
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from zoneinfo import ZoneInfo

import structlog
from pydantic import ValidationError

from kiot_board import __version__
from kiot_board.config import FlatSettings, configure_logging, get_settings
from kiot_board.errors import BoardError
from kiot_board.jobs import (
    build_catalog_sync,
    build_kiotviet_client,
    build_notifier,
    build_record_store,
    build_report_engine,
    build_sheet_client,
    build_sync_job,
)
from kiot_board.reports import ReportEngine
from kiot_board.scheduler import Scheduler
from kiot_board.sheets import SheetSynchronizer

logger = structlog.get_logger(__name__)

REPORT_KINDS = ("unestimated", "due", "flagged", "all")
SEED_KINDS = ("customers", "goods", "services")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kiot-board",
        description="KiotViet invoices to a Google Sheets work board, with Telegram reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Sync today's invoices to the board")

    report = subparsers.add_parser("report", help="Send a daily report to Telegram")
    report.add_argument("kind", choices=REPORT_KINDS)
    report.add_argument(
        "--today",
        action="store_true",
        help="Report unestimated invoices received today instead of yesterday",
    )

    seed = subparsers.add_parser("seed", help="Copy a KiotViet catalog into the local store")
    seed.add_argument("kind", choices=SEED_KINDS)

    subparsers.add_parser("serve", help="Run the sync and report scheduler")
    subparsers.add_parser("check-bot", help="Check the Telegram bot connection")
    subparsers.add_parser("repair", help="Re-apply dropdowns and colors, backfill defaults")
    return parser


async def run_sync(settings: FlatSettings) -> int:
    sheet_client = build_sheet_client(settings)
    async with build_kiotviet_client(settings) as client:
        job = build_sync_job(settings, client, sheet_client)
        result = await job.run()
    print(f"Inserted {result.inserted} invoice(s), skipped {result.skipped}.")
    return 0


async def run_report(settings: FlatSettings, kind: str, use_today: bool = False) -> int:
    notifier = build_notifier(settings)
    try:
        engine = build_report_engine(settings, build_sheet_client(settings), notifier)
        if kind == "all":
            results = await engine.run_all(use_yesterday=not use_today)
            return 0 if all(results.values()) else 1
        await _run_single_report(engine, kind, use_today)
        return 0
    finally:
        await notifier.close()


async def _run_single_report(engine: ReportEngine, kind: str, use_today: bool) -> int:
    if kind == "unestimated":
        return await engine.run_unestimated_report(use_yesterday=not use_today)
    if kind == "due":
        return await engine.run_due_report()
    if kind == "flagged":
        return await engine.run_flagged_report()
    raise ValueError(f"Unknown report kind: {kind!r}")


async def run_seed(settings: FlatSettings, kind: str) -> int:
    with build_record_store(settings) as store:
        async with build_kiotviet_client(settings) as client:
            inserted = await build_catalog_sync(client, store).run(kind)  # type: ignore[arg-type]
    print(f"Inserted {inserted} new {kind} record(s).")
    return 0


async def run_check_bot(settings: FlatSettings) -> int:
    notifier = build_notifier(settings)
    try:
        updates = await notifier.get_updates()
    finally:
        await notifier.close()
    logger.info("bot_connected", pending_updates=len(updates))
    print(f"Telegram bot reachable, {len(updates)} pending update(s).")
    return 0


def run_repair(settings: FlatSettings) -> int:
    synchronizer = SheetSynchronizer(
        build_sheet_client(settings), settings.sheet_name, row_ceiling=settings.sheet_row_ceiling
    )
    cells = synchronizer.repair()
    print(f"Board repaired, {cells} default value(s) filled in.")
    return 0


def build_scheduler(settings: FlatSettings) -> Scheduler:
    """Wire the sync and report tasks onto a scheduler.

    Each sync run opens its own KiotViet session so a fresh token is requested
    per run.
    """
    scheduler = Scheduler(ZoneInfo(settings.timezone))
    sheet_client = build_sheet_client(settings)
    notifier = build_notifier(settings)
    engine = build_report_engine(settings, sheet_client, notifier)

    async def sync() -> None:
        async with build_kiotviet_client(settings) as client:
            await build_sync_job(settings, client, sheet_client).run()

    scheduler.schedule_interval("sync", sync, settings.sync_interval_minutes)
    scheduler.schedule_daily("due_report", engine.run_due_report, settings.report_due_time)
    scheduler.schedule_daily(
        "unestimated_report", engine.run_unestimated_report, settings.report_unestimated_time
    )
    scheduler.schedule_daily(
        "flagged_report", engine.run_flagged_report, settings.report_flagged_time
    )
    return scheduler


async def run_serve(settings: FlatSettings) -> int:
    scheduler = build_scheduler(settings)
    try:
        await scheduler.run_forever()
    finally:
        scheduler.stop()
    return 0


async def dispatch(args: argparse.Namespace, settings: FlatSettings) -> int:
    if args.command == "sync":
        return await run_sync(settings)
    if args.command == "report":
        return await run_report(settings, args.kind, use_today=args.today)
    if args.command == "seed":
        return await run_seed(settings, args.kind)
    if args.command == "serve":
        return await run_serve(settings)
    if args.command == "check-bot":
        return await run_check_bot(settings)
    if args.command == "repair":
        return run_repair(settings)
    raise ValueError(f"Unknown command: {args.command!r}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.error("invalid_configuration", error=str(e))
        return 1

    configure_logging(level=settings.log_level, format=settings.log_format, log_dir=settings.log_dir)
    logger.info("command_starting", command=args.command)

    try:
        exit_code = asyncio.run(dispatch(args, settings))
    except KeyboardInterrupt:
        logger.info("command_interrupted", command=args.command)
        return 0
    except BoardError as e:
        logger.error(
            "command_failed",
            command=args.command,
            error=str(e),
            status_code=e.status_code,
            details=e.details,
        )
        return 1
    except Exception as e:
        logger.exception("command_error", command=args.command, error=str(e))
        return 1

    logger.info("command_completed", command=args.command, exit_code=exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
