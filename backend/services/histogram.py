"""Histogram binning for numeric column previews."""

import math
from typing import List, Sequence

from models.schemas import HistogramBin
from services.coercion import format_label


DEFAULT_BIN_COUNT = 10


def bin_values(values: Sequence[float], bin_count: int = DEFAULT_BIN_COUNT) -> List[HistogramBin]:
    """
    Split values into ``bin_count`` equal-width bins over [min, max].

    Bins are half-open except the last, which also takes the maximum.
    When every value is equal a single bin holding all of them is returned.
    """
    if bin_count < 1:
        raise ValueError("bin_count must be at least 1")

    numbers = [float(v) for v in values if math.isfinite(v)]
    if not numbers:
        return []

    low, high = min(numbers), max(numbers)
    if low == high:
        return [HistogramBin(label=format_label(low), count=len(numbers))]

    width = (high - low) / bin_count
    counts = [0] * bin_count
    for value in numbers:
        # Not //: 0.5 // 0.1 == 4.0, which would drop edge values a bin early.
        # The maximum lands past the end and is clamped into the last bin.
        index = min(int((value - low) / width), bin_count - 1)
        counts[index] += 1

    bins = []
    for i, count in enumerate(counts):
        start = low + i * width
        end = start + width
        bins.append(HistogramBin(label=f"{start:.1f}-{end:.1f}", count=count))
    return bins
