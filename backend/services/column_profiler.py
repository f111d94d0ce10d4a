"""
Column profiling: semantic type inference and per-type statistics.

Type inference runs over raw cell strings. A column is Numeric when more
than 80% of its present values coerce to numbers, otherwise Temporal when
more than 80% parse as dates, otherwise Categorical. Numeric is checked
first so numeric-looking columns never become dates.
"""

from collections import Counter
from typing import Any, Optional, Sequence

import pandas as pd

from models.schemas import (
    CategoricalStats,
    ColumnProfile,
    ColumnType,
    EmptyStats,
    NumericStats,
    TemporalStats,
    TopValue,
)
from services.coercion import format_label, is_blank, is_missing, to_number


# Share of present values that must pass a test for the type to win
TYPE_THRESHOLD = 0.8

# Shorter strings ("1", "12", "Q1") are never treated as dates
MIN_DATE_LENGTH = 7

TOP_VALUES_LIMIT = 5


def parse_dates(values: Sequence[Any]) -> pd.Series:
    """Parse each value independently as a UTC timestamp; failures are NaT."""
    texts = pd.Series([str(v).strip() for v in values], dtype="object")
    if texts.empty:
        return pd.Series([], dtype="datetime64[ns, UTC]")
    return pd.to_datetime(texts, errors="coerce", format="mixed", utc=True)


def infer_type(values: Sequence[Any]) -> ColumnType:
    """Infer the semantic type of a column from its raw values."""
    present = [v for v in values if not is_missing(v)]
    if not present:
        return ColumnType.UNKNOWN

    numeric_count = sum(1 for v in present if to_number(v) is not None)

    # A value may count toward both tests
    date_candidates = [v for v in present if len(str(v)) >= MIN_DATE_LENGTH]
    date_count = int(parse_dates(date_candidates).notna().sum()) if date_candidates else 0

    total = len(present)
    if numeric_count / total > TYPE_THRESHOLD:
        return ColumnType.NUMERIC
    if date_count / total > TYPE_THRESHOLD:
        return ColumnType.TEMPORAL
    return ColumnType.CATEGORICAL


def _numeric_stats(values: list) -> NumericStats | EmptyStats:
    numbers = pd.Series([to_number(v) for v in values], dtype="float64").dropna()
    if numbers.empty:
        return EmptyStats()

    # Population standard deviation (divisor n)
    return NumericStats(
        min=float(numbers.min()),
        max=float(numbers.max()),
        mean=float(numbers.mean()),
        median=float(numbers.median()),
        std_dev=float(numbers.std(ddof=0)),
    )


def _categorical_stats(values: list) -> CategoricalStats | EmptyStats:
    if not values:
        return EmptyStats()

    # Counter keeps first-seen order; sorted() is stable, so ties stay in that order
    counts = Counter(format_label(v) for v in values)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)

    return CategoricalStats(
        unique_values=len(counts),
        top_values=[
            TopValue(value=value, count=count)
            for value, count in ranked[:TOP_VALUES_LIMIT]
        ],
    )


def _temporal_stats(values: list) -> TemporalStats | EmptyStats:
    dates = parse_dates(values).dropna()
    if dates.empty:
        return EmptyStats()

    return TemporalStats(
        min_date=dates.min().date().isoformat(),
        max_date=dates.max().date().isoformat(),
    )


def compute_stats(values: Sequence[Any], column_type: ColumnType):
    """
    Compute the statistics for a column treated as ``column_type``.

    Only non-blank values are considered. When nothing valid remains for
    the requested type an EmptyStats is returned, which consumers must show
    as "unavailable" rather than zero.
    """
    valid = [v for v in values if not is_blank(v)]

    if column_type == ColumnType.NUMERIC:
        return _numeric_stats(valid)
    if column_type == ColumnType.CATEGORICAL:
        return _categorical_stats(valid)
    if column_type == ColumnType.TEMPORAL:
        return _temporal_stats(valid)
    return EmptyStats()


def profile_column(
    name: str,
    values: Sequence[Any],
    forced_type: Optional[ColumnType] = None,
) -> ColumnProfile:
    """Build the full profile of one column, optionally with a forced type."""
    inferred_type = forced_type if forced_type is not None else infer_type(values)
    missing = sum(1 for v in values if is_missing(v))

    return ColumnProfile(
        column_name=name,
        inferred_type=inferred_type,
        missing_values=missing,
        total_rows=len(values),
        stats=compute_stats(values, inferred_type),
    )
