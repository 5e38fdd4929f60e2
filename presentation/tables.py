"""
Tabular rendering.

Turns domain models and indicator results into spreadsheet-style tables:
a header row followed by data rows, every cell a string or number. Missing
values render as "N/A"; empty result sets render as a single-cell table
carrying a message.
"""

from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

from domain import (
    Dividend,
    EarningsQuarter,
    IndicatorResult,
    MarketStatus,
    NewsArticle,
    PreviousClose,
    TickerDetails,
)

Table = list[list[Any]]

MISSING = "N/A"

NEWS_HEADER = ["Title", "Description", "URL"]
EARNINGS_HEADER = [
    "Quarter", "Date", "EPS Actual", "EPS Estimate", "Revenue Actual", "Revenue Estimate",
]
DIVIDENDS_HEADER = [
    "Ex-Dividend Date", "Payment Date", "Record Date",
    "Cash Amount", "Declaration Date", "Frequency",
]
BATCH_HEADER = ["Ticker", "Date"]

CHANNEL_TITLES = {
    "sma": "SMA",
    "ema": "EMA",
    "rsi": "RSI",
    "atr": "ATR",
    "macd": "MACD",
    "signal": "Signal",
    "histogram": "Histogram",
    "middle": "Middle Band",
    "upper": "Upper Band",
    "lower": "Lower Band",
}


# ============================================================================
# Cell formatting
# ============================================================================

def cell(value: Any, missing: str = MISSING) -> Any:
    """Value as-is, or the missing marker for None/blank."""
    if value is None or value == "":
        return missing
    return value


def format_currency(value: float | None, decimals: int = 2, missing: str = MISSING) -> str:
    if value is None:
        return missing
    return f"${value:,.{decimals}f}"


def format_percent(value: float | None, decimals: int = 2, missing: str = MISSING) -> str:
    """Percent string from a value already in percent units."""
    if value is None:
        return missing
    return f"{value:.{decimals}f}%"


def format_date(value: Any, date_format: str = "%Y-%m-%d") -> Any:
    if isinstance(value, (date, datetime)):
        return value.strftime(date_format)
    return value


def message_table(message: str) -> Table:
    return [[message]]


# ============================================================================
# Reference data
# ============================================================================

def details_summary(details: TickerDetails) -> str:
    """e.g. "AAPL - Apple Inc. (stocks)"."""
    return details.summary()


def lookup_property(record: Any, name: str | None, default_field: str | None = None) -> Any:
    """
    One field of a provider record by name.

    With no name, returns ``default_field`` when given. Absent or blank
    fields return "Property not found.".
    """
    name = name or default_field
    if not name:
        return None
    value = record.get_property(name)
    if value is None or value == "":
        return "Property not found."
    return value


def previous_close_value(bar: PreviousClose, name: str | None = None) -> Any:
    """Previous-day bar field by provider key (c, h, l, o, v...); close by default."""
    return lookup_property(bar, name, default_field="c")


def market_status_text(status: MarketStatus, market: str = "us") -> str:
    key = (market or "us").lower()
    value = status.status_for(key)
    if value:
        return value
    if key == "us":
        return "Status unknown"
    return "Market not found or status unknown"


def news_table(articles: Sequence[NewsArticle], missing: str = MISSING) -> Table:
    if not articles:
        return message_table("No news articles found.")
    return [NEWS_HEADER] + [
        [cell(a.title, missing), cell(a.description, missing), cell(a.article_url, missing)]
        for a in articles
    ]


def earnings_table(quarters: Sequence[EarningsQuarter], missing: str = MISSING) -> Table:
    if not quarters:
        return message_table("No earnings data found.")
    return [EARNINGS_HEADER] + [
        [
            cell(q.period, missing),
            cell(q.date, missing),
            cell(q.eps, missing),
            cell(q.eps_estimate, missing),
            cell(q.revenue, missing),
            cell(q.revenue_estimate, missing),
        ]
        for q in quarters
    ]


def earnings_unavailable(status_code: int | None) -> Table:
    """Single-row table for an earnings request the plan does not cover."""
    return [[
        "Earnings data unavailable",
        f"HTTP status: {status_code}",
        "This endpoint might require a premium subscription",
    ]]


def dividends_table(dividends: Sequence[Dividend], missing: str = MISSING) -> Table:
    if not dividends:
        return message_table("No dividend data found.")
    return [DIVIDENDS_HEADER] + [
        [
            cell(d.ex_dividend_date, missing),
            cell(d.pay_date, missing),
            cell(d.record_date, missing),
            cell(d.cash_amount, missing),
            cell(d.declaration_date, missing),
            cell(d.frequency, missing),
        ]
        for d in dividends
    ]


# ============================================================================
# Indicators
# ============================================================================

def channel_title(channel: str) -> str:
    return CHANNEL_TITLES.get(channel, channel.title())


def indicator_table(
    result: IndicatorResult,
    decimals: int | None = 4,
    date_format: str = "%Y-%m-%d",
) -> Table:
    """Date column plus one column per channel, warm-up dates omitted."""
    header = ["Date"] + [channel_title(name) for name in result.channel_names]
    rows = []
    for day, *values in result.rows():
        if decimals is not None:
            values = [round(v, decimals) for v in values]
        rows.append([format_date(day, date_format), *values])
    return [header] + rows


def batch_table(outcomes: Sequence[Any], decimals: int | None = 4, date_format: str = "%Y-%m-%d") -> Table:
    """
    Latest value per ticker.

    Takes BatchOutcome-like objects (``ticker``, ``value``, ``message``).
    Failed tickers carry their diagnostic in the Date column.
    """
    channels: list[str] = []
    for outcome in outcomes:
        if isinstance(outcome.value, IndicatorResult):
            channels = outcome.value.channel_names
            break

    header = BATCH_HEADER + [channel_title(name) for name in channels]
    rows = []
    for outcome in outcomes:
        result = outcome.value
        if outcome.message is not None or not isinstance(result, IndicatorResult):
            rows.append([outcome.ticker, outcome.message])
            continue

        dates = result.output_dates
        if not dates:
            rows.append([outcome.ticker, "No values"])
            continue

        latest = result.latest()
        values = [latest[name] for name in result.channel_names]
        if decimals is not None:
            values = [round(v, decimals) for v in values]
        rows.append([outcome.ticker, format_date(dates[-1], date_format), *values])
    return [header] + rows


# ============================================================================
# Plain-text output
# ============================================================================

def render_text(table: Table) -> str:
    """Left-aligned columns separated by two spaces."""
    if not table:
        return ""
    text_rows = [[str(value) for value in row] for row in table]
    width = max(len(row) for row in text_rows)
    widths = [
        max((len(row[i]) for row in text_rows if i < len(row)), default=0)
        for i in range(width)
    ]
    lines = []
    for row in text_rows:
        padded = [value.ljust(widths[i]) for i, value in enumerate(row)]
        lines.append("  ".join(padded).rstrip())
    return "\n".join(lines)
