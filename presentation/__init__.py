from .tables import (
    Table,
    MISSING,
    cell,
    format_currency,
    format_percent,
    details_summary,
    lookup_property,
    previous_close_value,
    market_status_text,
    news_table,
    earnings_table,
    earnings_unavailable,
    dividends_table,
    indicator_table,
    batch_table,
    render_text,
)
from .json_api import (
    IndicatorResponse,
    FailureResponse,
    ErrorResponse,
    BatchResponse,
    TableResponse,
    batch_to_response,
    outcome_to_response,
    table_to_response,
    to_json,
)
from .export import (
    table_to_csv,
    export_table_csv,
    export_indicator_csv,
    export_json,
)

__all__ = [
    # Tables
    "Table",
    "MISSING",
    "cell",
    "format_currency",
    "format_percent",
    "details_summary",
    "lookup_property",
    "previous_close_value",
    "market_status_text",
    "news_table",
    "earnings_table",
    "earnings_unavailable",
    "dividends_table",
    "indicator_table",
    "batch_table",
    "render_text",
    # JSON API
    "IndicatorResponse",
    "FailureResponse",
    "ErrorResponse",
    "BatchResponse",
    "TableResponse",
    "batch_to_response",
    "outcome_to_response",
    "table_to_response",
    "to_json",
    # Export
    "table_to_csv",
    "export_table_csv",
    "export_indicator_csv",
    "export_json",
]
