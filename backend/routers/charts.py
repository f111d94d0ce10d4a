"""Chart and KPI data router.

Consumes widget schemas produced by the dashboard generator and returns
render-ready series. Schemas are validated only by column existence; a bad
schema fails its own widget with a 400 and nothing else.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Query

from models.schemas import ChartData, ChartRequest, HistogramBin, KpiRequest, KpiResult, SparklinePoint
from routers.upload import load_typed_rows
from services.chart_transformer import aggregate_kpi, sparkline, transform_for_chart
from services.coercion import to_number
from services.errors import AutoDashError
from services.histogram import DEFAULT_BIN_COUNT, bin_values

router = APIRouter(prefix="/api/charts", tags=["charts"])


@router.post("/{dataset_id}/transform", response_model=ChartData)
async def transform_chart(dataset_id: str, request: ChartRequest) -> ChartData:
    """Shape dataset rows for one chart widget."""
    dataset, _, rows = load_typed_rows(dataset_id)

    try:
        data = transform_for_chart(rows, request, columns=dataset.columns)
    except AutoDashError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ChartData(chart_type=request.chart_type, data=data)


@router.post("/{dataset_id}/kpi", response_model=KpiResult)
async def compute_kpi(dataset_id: str, request: KpiRequest) -> KpiResult:
    """Compute one KPI card value."""
    dataset, _, rows = load_typed_rows(dataset_id)

    try:
        value = aggregate_kpi(rows, request.value_column, request.aggregation, columns=dataset.columns)
    except AutoDashError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return KpiResult(value_column=request.value_column, aggregation=request.aggregation, value=value)


@router.get("/{dataset_id}/histogram/{column}", response_model=List[HistogramBin])
async def get_histogram(
    dataset_id: str,
    column: str,
    bins: int = Query(default=DEFAULT_BIN_COUNT, ge=1, le=100),
) -> List[HistogramBin]:
    """Histogram of a column's numeric values."""
    dataset, _, rows = load_typed_rows(dataset_id)
    if column not in dataset.columns:
        raise HTTPException(status_code=400, detail=f"Column '{column}' not found in dataset")

    numbers = [n for n in (to_number(row.get(column)) for row in rows) if n is not None]
    return bin_values(numbers, bins)


@router.get("/{dataset_id}/sparkline", response_model=List[SparklinePoint])
async def get_sparkline(dataset_id: str) -> List[SparklinePoint]:
    """Trend of the first numeric column over the first date column."""
    _, column_profiles, rows = load_typed_rows(dataset_id)
    return sparkline(rows, column_profiles)
