"""
Chart and KPI data shaping.

Turns raw rows plus a widget schema (as returned by the dashboard
generator) into the series a chart or KPI card renders.

Bar, line and area charts are a straight projection: rows are NOT grouped
by the category key, so repeated x values are passed through and left to
the renderer.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from models.schemas import ChartRequest, ColumnProfile, ColumnType, SparklinePoint
from services.coercion import format_label, format_number, is_missing, to_number
from services.column_profiler import parse_dates
from services.errors import (
    MissingKeyError,
    UnsupportedAggregationError,
    UnsupportedVisualizationError,
)


NOT_AVAILABLE = "N/A"
PROJECTED_CHARTS = {"bar", "line", "area"}
SUPPORTED_CHARTS = PROJECTED_CHARTS | {"pie", "scatter"}
AGGREGATIONS = {"SUM", "AVERAGE", "COUNT", "COUNT_DISTINCT"}
MAX_SPARKLINE_POINTS = 30


def _check_keys(keys: Iterable[str], columns: Optional[Iterable[str]]) -> None:
    # No rows and no header given: nothing to check against
    if columns is None:
        return
    available = set(columns)
    for key in keys:
        if key not in available:
            raise MissingKeyError(key)


def _columns_of(rows: Sequence[Dict[str, Any]], columns: Optional[Sequence[str]]) -> Optional[List[str]]:
    if columns is not None:
        return list(columns)
    return list(rows[0].keys()) if rows else None


def _pie_data(rows: Sequence[Dict[str, Any]], name_key: str, value_key: Optional[str]) -> List[Dict[str, Any]]:
    # dict keeps categories in first-seen order
    totals: Dict[str, float] = {}
    for row in rows:
        name = row.get(name_key)
        if name is None:
            continue

        number = to_number(row.get(value_key)) if value_key else None
        weight = number if number is not None else 1

        label = format_label(name)
        totals[label] = totals.get(label, 0) + weight

    return [{"name": name, "value": value} for name, value in totals.items()]


def _projected_data(rows: Sequence[Dict[str, Any]], x_key: str, y_keys: List[str]) -> List[Dict[str, Any]]:
    projected = []
    for row in rows:
        new_row = {x_key: row.get(x_key)}
        for key in y_keys:
            new_row[key] = row.get(key)
        projected.append(new_row)
    return projected


def _check_scatter_axes(rows: Sequence[Dict[str, Any]], x_key: str, y_key: str) -> None:
    for row in rows:
        for key in (x_key, y_key):
            value = row.get(key)
            if not is_missing(value) and to_number(value) is None:
                raise UnsupportedVisualizationError(
                    f"Scatter charts need numeric axes; '{key}' has value {value!r}"
                )


def transform_for_chart(
    rows: Sequence[Dict[str, Any]],
    request: ChartRequest,
    columns: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Shape rows for the chart described by ``request``.

    - pie: one {name, value} per category, summing the first y key
      (or counting rows when it is absent or non-numeric)
    - bar/line/area: each row projected to the x key and y keys
    - scatter: rows unchanged; both axes must be numeric
    """
    chart_type = request.chart_type
    if chart_type not in SUPPORTED_CHARTS:
        raise UnsupportedVisualizationError(f"Unsupported chart type: {chart_type}")

    y_keys = list(request.y_axis_keys)
    _check_keys([request.x_axis_key, *y_keys], _columns_of(rows, columns))

    if chart_type == "pie":
        return _pie_data(rows, request.x_axis_key, y_keys[0] if y_keys else None)

    if chart_type in PROJECTED_CHARTS:
        return _projected_data(rows, request.x_axis_key, y_keys)

    if not y_keys:
        raise UnsupportedVisualizationError("Scatter charts need a y axis key")
    _check_scatter_axes(rows, request.x_axis_key, y_keys[0])
    return list(rows)


def aggregate_kpi(
    rows: Sequence[Dict[str, Any]],
    column: str,
    aggregation: str,
    columns: Optional[Sequence[str]] = None,
) -> str:
    """Compute a KPI value and format it for display."""
    if aggregation not in AGGREGATIONS:
        raise UnsupportedAggregationError(f"Unsupported aggregation: {aggregation}")
    _check_keys([column], _columns_of(rows, columns))

    if aggregation == "COUNT":
        return format_number(len(rows))

    values = [row.get(column) for row in rows]
    values = [v for v in values if not is_missing(v)]

    if aggregation == "COUNT_DISTINCT":
        return format_number(len(set(values)))

    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if not numbers:
        return NOT_AVAILABLE

    total = sum(numbers)
    if aggregation == "SUM":
        return format_number(total)
    return format_number(total / len(numbers))


def sparkline(
    rows: Sequence[Dict[str, Any]],
    column_profiles: Sequence[ColumnProfile],
    max_points: int = MAX_SPARKLINE_POINTS,
) -> List[SparklinePoint]:
    """
    Trend line of the first numeric column over the first temporal column.

    Returns an empty list when either column is missing or fewer than two
    dated points exist.
    """
    date_column = next((p.column_name for p in column_profiles if p.inferred_type == ColumnType.TEMPORAL), None)
    value_column = next((p.column_name for p in column_profiles if p.inferred_type == ColumnType.NUMERIC), None)
    if date_column is None or value_column is None or not rows:
        return []

    dates = parse_dates([row.get(date_column) for row in rows])
    points = []
    for date, row in zip(dates, rows):
        value = to_number(row.get(value_column))
        if pd.notna(date) and value is not None:
            points.append((date, value))

    if len(points) < 2:
        return []

    points.sort(key=lambda point: point[0])
    step = max(1, len(points) // max_points)
    return [
        SparklinePoint(name=date.date().isoformat(), value=value)
        for date, value in points[::step]
    ]
