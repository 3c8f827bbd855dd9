#!/usr/bin/env python3
"""
Stock Screener - ETL CLI

Ejemplos:
    stock-screener-etl symbols --exchange US
    stock-screener-etl fundamentals
    stock-screener-etl prices 30
    stock-screener-etl full
    stock-screener-etl seed
"""

import argparse
import asyncio
import sys
from typing import Optional

from shared.config.settings import settings
from shared.utils.db_client import DatabaseClient
from shared.utils.logger import configure_logging, get_logger

from .etl_service import ETLService, PipelineResult
from .http_clients import http_clients
from .repository import StockRepository
from .scheduler import ETLScheduler
from .seed import seed_sample_data

logger = get_logger(__name__)


def print_summary(result: Optional[PipelineResult]):
    if result is None:
        print("⚠️  ETL already running, nothing done")
        return

    for stats in result.stages:
        print(f"\n[{stats.stage}]")
        print(f"  symbols processed:      {stats.symbols_processed}")
        print(f"  symbols created:        {stats.symbols_created}")
        print(f"  fundamentals processed: {stats.fundamentals_processed}")
        print(f"  prices processed:       {stats.prices_processed}")
        print(f"  errors:                 {stats.errors}")
        print(f"  duration:               {stats.duration_seconds:.1f}s")

    print(f"\n✅ ETL finished ({result.total_errors} errors, {result.duration_seconds:.1f}s)")


async def run_command(args) -> None:
    db = DatabaseClient()
    await db.connect()

    try:
        repository = StockRepository(db)
        await repository.ensure_schema()

        if args.command == "seed":
            count = await seed_sample_data(repository)
            print(f"\n✅ Seeded {count} sample stocks")
            return

        await http_clients.initialize()
        scheduler = ETLScheduler(ETLService(repository, http_clients.finnhub))

        if args.command == "symbols":
            result = await scheduler.run_symbols_only(args.exchange)
        elif args.command == "fundamentals":
            result = await scheduler.run_fundamentals_only()
        elif args.command == "prices":
            result = await scheduler.run_prices_only(args.days)
        else:
            result = await scheduler.run_full_pipeline(args.days, exchange=args.exchange)

        print_summary(result)
    finally:
        await http_clients.close()
        await db.disconnect()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stock-screener-etl",
        description="Stock Screener ETL CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    symbols_parser = subparsers.add_parser("symbols", help="Fetch exchange symbols")
    symbols_parser.add_argument("--exchange", default=settings.etl_exchange, help="Exchange code")

    subparsers.add_parser("fundamentals", help="Fetch P/E and market cap")

    prices_parser = subparsers.add_parser("prices", help="Fetch daily candles")
    prices_parser.add_argument("days", type=int, nargs="?", default=settings.etl_price_days)

    full_parser = subparsers.add_parser("full", help="Symbols, fundamentals and prices")
    full_parser.add_argument("days", type=int, nargs="?", default=settings.etl_price_days)
    full_parser.add_argument("--exchange", default=settings.etl_exchange, help="Exchange code")

    subparsers.add_parser("seed", help="Insert sample data for local development")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(service_name="stock-screener-etl")

    try:
        asyncio.run(run_command(args))
    except Exception as e:
        logger.error("etl_command_failed", command=args.command, error=str(e), exc_info=True)
        print(f"\n❌ {args.command} failed: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
