"""Pydantic models for API request/response schemas.

Profile documents are handed to the AI collaborators as-is, so they
serialize with camelCase field names (``columnName``, ``missingValues``...).
Always dump them with ``by_alias=True``.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model using the camelCase wire names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Column Profile Models ===

class ColumnType(str, Enum):
    """Semantic type inferred for a column."""
    NUMERIC = "Numeric"
    CATEGORICAL = "Categorical"
    TEMPORAL = "Temporal"
    UNKNOWN = "Unknown"


class NumericStats(WireModel):
    kind: Literal["numeric"] = "numeric"
    min: float
    max: float
    mean: float
    median: float
    std_dev: float


class TopValue(WireModel):
    value: str
    count: int


class CategoricalStats(WireModel):
    kind: Literal["categorical"] = "categorical"
    unique_values: int
    top_values: list[TopValue] = Field(default_factory=list, max_length=5)


class TemporalStats(WireModel):
    kind: Literal["temporal"] = "temporal"
    min_date: str
    max_date: str


class EmptyStats(WireModel):
    """No valid values for the requested type: render as unavailable."""
    kind: Literal["empty"] = "empty"


ColumnStats = Annotated[
    Union[NumericStats, CategoricalStats, TemporalStats, EmptyStats],
    Field(discriminator="kind"),
]


class ColumnProfile(WireModel):
    """Inferred type and statistics for one column."""
    column_name: str
    inferred_type: ColumnType
    missing_values: int = Field(ge=0)
    total_rows: int = Field(ge=0)
    stats: ColumnStats = Field(default_factory=EmptyStats)


class DatasetProfile(WireModel):
    """Whole-dataset counts."""
    total_rows: int
    total_cols: int
    empty_cells: int


class ProfileResult(WireModel):
    """Dataset profile plus the ordered column profiles."""
    dataset_profile: DatasetProfile
    column_profiles: list[ColumnProfile]


# === Chart / KPI Models ===

ChartKind = Literal["bar", "line", "area", "pie", "scatter"]
AggregationType = Literal["SUM", "AVERAGE", "COUNT", "COUNT_DISTINCT"]


class ChartRequest(WireModel):
    """Which columns feed which axes of a chart.

    ``chart_type`` is a plain string so unknown kinds reach the transformer
    and are reported as unsupported instead of failing validation.
    """
    chart_type: str
    x_axis_key: str
    y_axis_keys: list[str] = Field(default_factory=list)
    title: Optional[str] = None
    description: Optional[str] = None


class KpiRequest(WireModel):
    value_column: str
    aggregation: str
    title: Optional[str] = None


class KpiResult(WireModel):
    value_column: str
    aggregation: str
    value: str


class ChartData(WireModel):
    chart_type: str
    data: list[dict[str, Any]]


class HistogramBin(WireModel):
    label: str
    count: int


class SparklinePoint(WireModel):
    name: str
    value: float


class TypeOverrideRequest(WireModel):
    inferred_type: ColumnType


# === Usage Models ===

UsageAction = Literal["dashboard_generation", "qa_query", "chart_explanation", "synthetic_row"]


class UsageRequest(WireModel):
    action: UsageAction
    units: int = Field(default=1, ge=1)


class UsageDecision(WireModel):
    """Answer to 'may this costed action start?'."""
    allowed: bool
    cost: int
    remaining: int
    resets_on: str
    message: Optional[str] = None


class UsageStatus(WireModel):
    remaining: int
    total: int
    used: int
    period_key: str
    resets_on: str


# === Saved Dashboards ===

class SavedDashboard(WireModel):
    """Opaque dashboard bundle; only the profiles are typed."""
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")
    rows: list[dict[str, Any]] = Field(default_factory=list)
    file_name: str
    qa_history: list[dict[str, Any]] = Field(default_factory=list)
    dataset_profile: DatasetProfile
    column_profiles: list[ColumnProfile]


# === Upload Response ===

class UploadResponse(WireModel):
    """Response after file upload."""
    success: bool
    dataset_id: str
    file_name: str
    dataset_profile: DatasetProfile
    column_profiles: list[ColumnProfile]
    quality_score: int
    message: str


class ExportRequest(WireModel):
    rows: list[dict[str, Any]]
    file_name: str = "export.csv"


# === Error Response ===

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
