#!/usr/bin/env python3
"""
Generate Forecast Script.

Runs the daily cash flow forecast against the configured database, stores
it, and prints a summary (or the full result as JSON).

Usage:
    # 90-day forecast, served from cache if fresh
    python -m scripts.generate_forecast --days 90

    # Discard stored forecasts from today on and recompute
    python -m scripts.generate_forecast --days 90 --regenerate

    # Machine-readable output
    python -m scripts.generate_forecast --days 30 --json
"""
import asyncio
import argparse
import json
import logging
import sys

from ledgercast.config import settings
from ledgercast.database import AsyncSessionLocal, engine as db_engine
from ledgercast.forecast.engine import ForecastRunResult, build_engine
from ledgercast.forecast.errors import InvalidHorizonError
from ledgercast.forecast.routes import summarize


def print_summary(result: ForecastRunResult) -> None:
    summary = summarize(result.days)
    symbol = settings.CURRENCY_SYMBOL

    print("\n" + "=" * 60)
    print(f"CASH FLOW FORECAST ({summary.days} days)")
    print("=" * 60)

    if result.days:
        first, last = result.days[0], result.days[-1]
        print(f"\n  Opening balance ({first.date}): {symbol}{first.opening_balance:,.2f}")
        print(f"  Closing balance ({last.date}): {symbol}{last.closing_balance:,.2f}")
    print(f"  Lowest balance ({summary.lowest_balance_date}): {symbol}{summary.lowest_balance:,.2f}")
    print(f"  Total inflows: {symbol}{summary.total_inflows:,.2f}")
    print(f"  Total outflows: {symbol}{summary.total_outflows:,.2f}")
    print(f"  Average confidence: {summary.average_confidence}")
    print(f"  Critical alerts: {summary.critical_alerts}")

    print("\n" + "-" * 40)
    print(f"  Position: {result.position_precision.value}")
    if result.degraded_sources:
        print(f"  ⚠️  Degraded sources: {', '.join(result.degraded_sources)}")
    if result.from_cache:
        print("  Served from cache")
    elif result.persisted:
        print("  ✓ Stored")
    else:
        print(f"  ✗ Not stored: {result.persistence_error}")
    print("=" * 60 + "\n")


async def run(days: int, regenerate: bool) -> ForecastRunResult:
    engine = build_engine(AsyncSessionLocal)
    try:
        if regenerate:
            return await engine.regenerate(days)
        return await engine.get_or_compute(days)
    finally:
        await db_engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate the daily cash flow forecast")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.FORECAST_DEFAULT_DAYS,
        help="Number of days to forecast"
    )
    parser.add_argument(
        "--regenerate",
        action="store_true",
        help="Discard cached and stored forecasts before computing"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON"
    )

    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL)

    try:
        result = asyncio.run(run(args.days, args.regenerate))
    except InvalidHorizonError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_summary(result)
    return 0 if result.persisted or result.from_cache else 1


if __name__ == "__main__":
    sys.exit(main())
