# datasources/__main__.py
"""Command-line smoke tool for the market data layer: python -m datasources <command>."""
from __future__ import annotations

import sys
import json
import asyncio
import logging
import argparse
from typing import Any

from datasources.errors import MarketDataError
from datasources.market_data import MarketDataService
from datasources.models import to_dict
from datasources.provider import DegradePolicy
from datasources.timeframes import TIMEFRAMES
from infrastructure.logging import configure_from_settings
from infrastructure.metrics import format_metrics_summary
from utils.config import load_settings
from utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(prog="python -m datasources", description="Fetch market data and print JSON")
    parser.add_argument("--dev", action="store_true", help="Substitute mock data when providers fail")
    parser.add_argument("--metrics", action="store_true", help="Print provider call metrics afterwards")
    parser.add_argument("--verbose", action="store_true", help="Show HTTP client debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    quote = commands.add_parser("quote", help="Latest quote")
    quote.add_argument("symbol")

    overview = commands.add_parser("overview", help="Company overview and ratios")
    overview.add_argument("symbol")

    series = commands.add_parser("series", help="Price history")
    series.add_argument("symbol")
    series.add_argument("--timeframe", default="1M", choices=[t.value for t in TIMEFRAMES])

    commands.add_parser("indices", help="Major market indices")
    commands.add_parser("top", help="Top stocks watch-list")

    commodity = commands.add_parser("commodity", help="Latest commodity price")
    commodity.add_argument("symbol", help="e.g. WTI, BRENT, COPPER")

    treasury = commands.add_parser("treasury", help="Latest treasury yield")
    treasury.add_argument("maturity", help="e.g. 3month, 10year")

    metrics = commands.add_parser("metrics", help="Ratio history")
    metrics.add_argument("symbol")
    metrics.add_argument("names", nargs="+", help="Metric keys, e.g. pe eps evToEbitda")
    return parser


async def run_command(service: MarketDataService, args: argparse.Namespace) -> Any:
    if args.command == "quote":
        return await service.get_quote(args.symbol)
    if args.command == "overview":
        return await service.get_overview(args.symbol)
    if args.command == "series":
        return await service.get_time_series(args.symbol, args.timeframe)
    if args.command == "indices":
        return await service.get_indices()
    if args.command == "top":
        return await service.get_top_stocks()
    if args.command == "commodity":
        return await service.get_commodity_quote(args.symbol)
    if args.command == "treasury":
        return await service.get_treasury_quote(args.maturity)
    return await service.get_metric_history(args.symbol, args.names)


async def _main(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_from_settings(settings)
    policy = DegradePolicy.SUBSTITUTE_MOCK if args.dev else None
    async with MarketDataService.from_settings(settings, policy=policy) as service:
        try:
            result = await run_command(service, args)
        except MarketDataError as e:
            print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
            return 1
    print(json.dumps(to_dict(result), indent=2))
    return 0


def main() -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args()
    setup_logging(logging.WARNING, http_level=logging.DEBUG if args.verbose else None)

    code = asyncio.run(_main(args))
    if args.metrics:
        print(format_metrics_summary(), file=sys.stderr)
    return code


if __name__ == "__main__":
    sys.exit(main())
