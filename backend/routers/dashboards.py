"""Saved dashboards router."""

from typing import List

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from models.schemas import ExportRequest, SavedDashboard
from services.storage import storage
from services.export import rows_to_csv

router = APIRouter(prefix="/api", tags=["dashboards"])


@router.get("/dashboards", response_model=List[str])
async def list_dashboards() -> List[str]:
    """Names of all saved dashboards."""
    return sorted(storage.list_dashboards())


@router.get("/dashboards/{name}", response_model=SavedDashboard)
async def get_dashboard(name: str) -> SavedDashboard:
    bundle = storage.get_dashboard(name)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Dashboard not found")
    return SavedDashboard.model_validate(bundle)


@router.put("/dashboards/{name}", response_model=SavedDashboard)
async def save_dashboard(name: str, dashboard: SavedDashboard) -> SavedDashboard:
    """Save (or overwrite) a dashboard under ``name``."""
    storage.save_dashboard(name, dashboard.model_dump(by_alias=True))
    return dashboard


@router.delete("/dashboards/{name}")
async def delete_dashboard(name: str):
    if not storage.delete_dashboard(name):
        raise HTTPException(status_code=404, detail="Dashboard not found")
    return {"success": True, "message": "Dashboard deleted"}


@router.post("/export/csv")
async def export_csv(request: ExportRequest) -> Response:
    """Download rows (e.g. generated synthetic rows) as a CSV file."""
    if not request.rows:
        raise HTTPException(status_code=400, detail="No data available to export")

    return Response(
        content=rows_to_csv(request.rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{request.file_name}"'},
    )
