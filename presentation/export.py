"""
Data export utilities.

Export tables and indicator results to CSV and JSON.
"""

import csv
import io
import json
from pathlib import Path
from typing import Any, TextIO

from domain import IndicatorResult
from .json_api import to_json
from .tables import Table, indicator_table


# ============================================================================
# CSV Export
# ============================================================================

def write_table_csv(table: Table, stream: TextIO) -> None:
    """Write a table (header row first) to an open text stream."""
    writer = csv.writer(stream)
    for row in table:
        writer.writerow(["" if value is None else value for value in row])


def table_to_csv(table: Table) -> str:
    buffer = io.StringIO()
    write_table_csv(table, buffer)
    return buffer.getvalue()


def export_table_csv(table: Table, filepath: str | Path) -> Path:
    """
    Export a table to a CSV file.

    Args:
        table: Header row followed by data rows
        filepath: Output file path

    Returns:
        Path written
    """
    path = Path(filepath)
    with open(path, "w", newline="", encoding="utf-8") as f:
        write_table_csv(table, f)
    return path


def export_indicator_csv(
    result: IndicatorResult,
    filepath: str | Path,
    decimals: int | None = None,
) -> Path:
    """Export an indicator as Date + channel columns. Full precision by default."""
    return export_table_csv(indicator_table(result, decimals=decimals), filepath)


# ============================================================================
# JSON Export
# ============================================================================

def export_json(data: Any, filepath: str | Path, indent: int = 2) -> Path:
    """
    Export a result, failure, model or list of models to a JSON file.
    """
    path = Path(filepath)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(to_json(data), f, indent=indent, default=str)
    return path
