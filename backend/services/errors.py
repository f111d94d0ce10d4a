"""Errors raised by the profiling and chart services.

All of them are ValueErrors so routers can map them to a 400 the same way
they map parsing failures.
"""


class AutoDashError(ValueError):
    """Base class for reportable input errors."""


class MalformedInputError(AutoDashError):
    """The uploaded table has no header row or no data rows."""


class UnsupportedVisualizationError(AutoDashError):
    """A chart request names a kind the transformer cannot build."""


class UnsupportedAggregationError(AutoDashError):
    """A KPI request names an unknown aggregation."""


class MissingKeyError(AutoDashError):
    """A requested column does not exist in the dataset."""

    def __init__(self, key, message=None):
        self.key = key
        super().__init__(message or f"Column '{key}' not found in dataset")
