"""
JSON API response types.

Structured responses for machine consumption (``--format json``).
Can be used with FastAPI, Flask, or any web framework.
"""

import datetime
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel

from domain import IndicatorFailure, IndicatorResult, is_failure


# ============================================================================
# Response Models
# ============================================================================

class IndicatorPointResponse(BaseModel):
    """One aligned row: the input date and each channel's value."""
    date: datetime.date | int
    values: dict[str, float]


class IndicatorResponse(BaseModel):
    """API response for a computed indicator."""
    indicator: str
    ticker: str | None = None
    params: dict[str, Any]
    offset: int
    channels: list[str]
    points: list[IndicatorPointResponse]


class FailureResponse(BaseModel):
    """API response for an indicator that could not be computed."""
    kind: str
    message: str
    context: dict[str, Any] = {}


class ErrorResponse(BaseModel):
    """API response for a fetch or validation error."""
    error: str
    code: str | None = None


class BatchItemResponse(BaseModel):
    """One ticker of a batch request."""
    ticker: str
    result: IndicatorResponse | None = None
    failure: FailureResponse | None = None
    error: str | None = None


class BatchResponse(BaseModel):
    """API response for a batch request."""
    indicator: str
    items: list[BatchItemResponse]
    succeeded: int
    failed: int


class TableResponse(BaseModel):
    """Any tabular output: header row plus data rows."""
    header: list[str]
    rows: list[list[Any]]


# ============================================================================
# Conversion Functions
# ============================================================================

def indicator_to_response(result: IndicatorResult) -> IndicatorResponse:
    names = result.channel_names
    return IndicatorResponse(
        indicator=result.name,
        ticker=result.ticker,
        params=result.params.to_dict(),
        offset=result.offset,
        channels=names,
        points=[
            IndicatorPointResponse(date=day, values=dict(zip(names, values)))
            for day, *values in result.rows()
        ],
    )


def failure_to_response(failure: IndicatorFailure) -> FailureResponse:
    return FailureResponse(
        kind=failure.kind.value,
        message=failure.message,
        context={k: v for k, v in failure.context},
    )


def outcome_to_response(outcome: IndicatorResult | IndicatorFailure) -> IndicatorResponse | FailureResponse:
    if is_failure(outcome):
        return failure_to_response(outcome)
    return indicator_to_response(outcome)


def batch_to_response(indicator: str, outcomes: Sequence[Any]) -> BatchResponse:
    """
    Convert BatchOutcome-like objects (``ticker``, ``value``, ``error``).
    """
    items = []
    for outcome in outcomes:
        item = BatchItemResponse(ticker=outcome.ticker, error=outcome.error)
        if isinstance(outcome.value, IndicatorResult):
            item.result = indicator_to_response(outcome.value)
        elif is_failure(outcome.value):
            item.failure = failure_to_response(outcome.value)
        items.append(item)

    succeeded = sum(1 for item in items if item.result is not None)
    return BatchResponse(
        indicator=indicator.upper(),
        items=items,
        succeeded=succeeded,
        failed=len(items) - succeeded,
    )


def table_to_response(table: list[list[Any]]) -> TableResponse:
    """A table whose first row is the header. Message tables have no rows."""
    if not table:
        return TableResponse(header=[], rows=[])
    return TableResponse(header=[str(h) for h in table[0]], rows=table[1:])


def to_json(value: Any) -> Any:
    """
    Convert a response model, domain model, result or failure to
    JSON-serializable data.
    """
    if isinstance(value, (IndicatorResult, IndicatorFailure)):
        value = outcome_to_response(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [to_json(v) for v in value]
    return value
