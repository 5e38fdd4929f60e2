"""
Polycell CLI - Polygon.io market data and technical indicators.

Usage:
    polycell indicator AAPL RSI [--period N] [--from YYYY-MM-DD] [--to YYYY-MM-DD]
    polycell batch MACD [--tickers AAPL,MSFT]
    polycell compute SMA 1 2 3 4 5 --period 3
    polycell details AAPL [PROPERTY]
    polycell news AAPL [--limit N]
    polycell price AAPL [PROPERTY]
    polycell market-status [MARKET]
    polycell earnings AAPL [--limit N]
    polycell dividends AAPL [--limit N]
    polycell set-key KEY

Global options: --format table|json|csv, --api-key KEY, --config FILE, -v
"""

import argparse
import json
import logging
import sys
from typing import Any

from domain import compute_from_values, is_failure, IndicatorParams
from adapters import PolygonAdapter
from config import ConfigError, CredentialStore, Settings, get_config, load_config
from orchestration import IndicatorService, batch_indicators, render_error
from ports import AdapterError, FetchError
from presentation import (
    Table,
    batch_table,
    batch_to_response,
    details_summary,
    dividends_table,
    earnings_table,
    earnings_unavailable,
    export_indicator_csv,
    export_json,
    format_currency,
    indicator_table,
    lookup_property,
    market_status_text,
    news_table,
    outcome_to_response,
    previous_close_value,
    render_text,
    table_to_csv,
    table_to_response,
    to_json,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Helpers
# ============================================================================

def _settings(args: argparse.Namespace) -> Settings:
    config = load_config(args.config) if args.config else get_config()
    return Settings.from_config(config)


def _adapter(args: argparse.Namespace, settings: Settings) -> PolygonAdapter:
    """Adapter with the key from --api-key, else the configured one."""
    api_key = args.api_key or settings.config.api_keys.polygon
    return PolygonAdapter(api_key=api_key, settings=settings)


def _emit_table(args: argparse.Namespace, table: Table, payload: Any = None) -> None:
    if args.format == "json":
        data = to_json(payload if payload is not None else table_to_response(table))
        print(json.dumps(data, indent=2, default=str))
    elif args.format == "csv":
        sys.stdout.write(table_to_csv(table))
    else:
        print(render_text(table))


def _emit_value(args: argparse.Namespace, value: Any, payload: Any = None) -> None:
    if args.format == "json":
        print(json.dumps(to_json(payload if payload is not None else {"value": value}), indent=2, default=str))
    else:
        print(value)


# ============================================================================
# Commands
# ============================================================================

def cmd_indicator(args: argparse.Namespace) -> int:
    """Compute one indicator for one ticker."""
    settings = _settings(args)
    service = IndicatorService(_adapter(args, settings), settings)

    outcome = service.technical_indicator(
        args.ticker,
        args.indicator,
        period=args.period,
        from_date=args.from_date,
        to_date=args.to_date,
        std_dev_multiplier=args.multiplier,
    )
    if is_failure(outcome):
        print(outcome.render(), file=sys.stderr)
        return 1

    if args.output:
        if args.format == "json":
            path = export_json(outcome, args.output)
        else:
            path = export_indicator_csv(outcome, args.output)
        print(f"Written to {path}", file=sys.stderr)
        return 0

    output = settings.config.output
    table = indicator_table(outcome, decimals=output.decimals, date_format=output.date_format)
    _emit_table(args, table, outcome_to_response(outcome))
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Latest indicator value for several tickers."""
    settings = _settings(args)
    service = IndicatorService(_adapter(args, settings), settings)

    if args.tickers:
        tickers = [t.strip().upper() for t in args.tickers.split(",") if t.strip()]
    else:
        tickers = settings.config.watchlist

    outcomes = batch_indicators(
        service,
        tickers,
        args.indicator,
        period=args.period,
        from_date=args.from_date,
        to_date=args.to_date,
    )

    output = settings.config.output
    table = batch_table(outcomes, decimals=output.decimals, date_format=output.date_format)
    _emit_table(args, table, batch_to_response(args.indicator, outcomes))
    return 0 if any(o.ok for o in outcomes) else 1


def cmd_compute(args: argparse.Namespace) -> int:
    """Compute an indicator over values given on the command line."""
    params = IndicatorParams(
        period=args.period,
        std_dev_multiplier=args.multiplier if args.multiplier is not None else 2.0,
    )
    outcome = compute_from_values(args.indicator, args.values, params)
    if is_failure(outcome):
        print(outcome.render(), file=sys.stderr)
        return 1

    _emit_table(args, indicator_table(outcome), outcome_to_response(outcome))
    return 0


def cmd_details(args: argparse.Namespace) -> int:
    """Ticker reference details, or one property of them."""
    settings = _settings(args)
    details = _adapter(args, settings).get_ticker_details(args.ticker)

    value = lookup_property(details, args.property) if args.property else details_summary(details)
    _emit_value(args, value, details if not args.property else None)
    return 0


def cmd_news(args: argparse.Namespace) -> int:
    """Recent news articles."""
    settings = _settings(args)
    articles = _adapter(args, settings).get_news(args.ticker, limit=args.limit)

    missing = settings.config.output.missing_value
    _emit_table(args, news_table(articles, missing), articles if args.format == "json" else None)
    return 0


def cmd_price(args: argparse.Namespace) -> int:
    """Previous-day close, or another field of the previous-day bar."""
    settings = _settings(args)
    bar = _adapter(args, settings).get_previous_close(args.ticker)

    value = previous_close_value(bar, args.property)
    if args.format == "table" and not args.property:
        value = format_currency(value)
    _emit_value(args, value, bar if not args.property else None)
    return 0


def cmd_market_status(args: argparse.Namespace) -> int:
    """Current market status."""
    settings = _settings(args)
    status = _adapter(args, settings).get_market_status()
    _emit_value(args, market_status_text(status, args.market))
    return 0


def cmd_earnings(args: argparse.Namespace) -> int:
    """Reported vs. estimated earnings."""
    settings = _settings(args)
    try:
        quarters = _adapter(args, settings).get_earnings(args.ticker, limit=args.limit)
    except FetchError as e:
        if e.status_code is None:
            raise
        _emit_table(args, earnings_unavailable(e.status_code))
        return 0

    missing = settings.config.output.missing_value
    _emit_table(args, earnings_table(quarters, missing), quarters if args.format == "json" else None)
    return 0


def cmd_dividends(args: argparse.Namespace) -> int:
    """Dividend history."""
    settings = _settings(args)
    dividends = _adapter(args, settings).get_dividends(args.ticker, limit=args.limit)

    missing = settings.config.output.missing_value
    _emit_table(args, dividends_table(dividends, missing), dividends if args.format == "json" else None)
    return 0


def cmd_set_key(args: argparse.Namespace) -> int:
    """Store the Polygon API key for later runs."""
    store = CredentialStore()
    try:
        store.set(args.key or "")
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error setting API key: {e}", file=sys.stderr)
        return 1

    print("API key set successfully.")
    return 0


# ============================================================================
# Entry point
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polycell",
        description="Polygon.io market data and technical indicators",
    )
    parser.add_argument(
        "-f", "--format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format",
    )
    parser.add_argument("--api-key", help="Polygon.io API key (overrides config)")
    parser.add_argument("--config", help="Path to a polycell.toml config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_window(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-p", "--period", type=int, help="Window length")
        sub.add_argument("--from", dest="from_date", help="Start date (YYYY-MM-DD)")
        sub.add_argument("--to", dest="to_date", help="End date (YYYY-MM-DD)")

    # Indicator command
    indicator_parser = subparsers.add_parser("indicator", help="Technical indicator for a ticker")
    indicator_parser.add_argument("ticker", help="Ticker symbol")
    indicator_parser.add_argument("indicator", help="SMA, EMA, RSI, MACD, BOLLINGER or ATR")
    add_window(indicator_parser)
    indicator_parser.add_argument("--multiplier", type=float, help="Bollinger band width")
    indicator_parser.add_argument("-o", "--output", help="Write to file instead of stdout")
    indicator_parser.set_defaults(func=cmd_indicator, subject="price data")

    # Batch command
    batch_parser = subparsers.add_parser("batch", help="Latest indicator value for many tickers")
    batch_parser.add_argument("indicator", help="SMA, EMA, RSI, MACD, BOLLINGER or ATR")
    batch_parser.add_argument("-t", "--tickers", help="Comma-separated tickers (default: watchlist)")
    add_window(batch_parser)
    batch_parser.set_defaults(func=cmd_batch, subject="price data")

    # Compute command
    compute_parser = subparsers.add_parser("compute", help="Indicator over literal values")
    compute_parser.add_argument("indicator", help="SMA, EMA, RSI, MACD or BOLLINGER")
    compute_parser.add_argument("values", nargs="+", help="Prices, oldest first")
    compute_parser.add_argument("-p", "--period", type=int, default=14, help="Window length")
    compute_parser.add_argument("--multiplier", type=float, help="Bollinger band width")
    compute_parser.set_defaults(func=cmd_compute)

    # Reference data commands
    details_parser = subparsers.add_parser("details", help="Ticker reference details")
    details_parser.add_argument("ticker")
    details_parser.add_argument("property", nargs="?", help="Single property, e.g. name")
    details_parser.set_defaults(func=cmd_details, subject="ticker details")

    news_parser = subparsers.add_parser("news", help="Recent news")
    news_parser.add_argument("ticker")
    news_parser.add_argument("-n", "--limit", type=int, default=10, help="Number of articles")
    news_parser.set_defaults(func=cmd_news, subject="news")

    price_parser = subparsers.add_parser("price", help="Previous-day close")
    price_parser.add_argument("ticker")
    price_parser.add_argument("property", nargs="?", help="Bar field, e.g. h, l, o, v")
    price_parser.set_defaults(func=cmd_price, subject="price data")

    status_parser = subparsers.add_parser("market-status", help="Current market status")
    status_parser.add_argument("market", nargs="?", default="us", help="us, nyse, nasdaq, fx...")
    status_parser.set_defaults(func=cmd_market_status, subject="market status")

    earnings_parser = subparsers.add_parser("earnings", help="Earnings results")
    earnings_parser.add_argument("ticker")
    earnings_parser.add_argument("-n", "--limit", type=int, default=4, help="Number of quarters")
    earnings_parser.set_defaults(func=cmd_earnings, subject="earnings data")

    dividends_parser = subparsers.add_parser("dividends", help="Dividend history")
    dividends_parser.add_argument("ticker")
    dividends_parser.add_argument("-n", "--limit", type=int, default=4, help="Number of dividends")
    dividends_parser.set_defaults(func=cmd_dividends, subject="dividend data")

    # Credentials
    key_parser = subparsers.add_parser("set-key", help="Store the Polygon.io API key")
    key_parser.add_argument("key", nargs="?", default="")
    key_parser.set_defaults(func=cmd_set_key)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        return args.func(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except AdapterError as e:
        logger.debug(f"{args.command} failed", extra={"error": e.to_dict()})
        print(render_error(e, subject=getattr(args, "subject", "data")), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
