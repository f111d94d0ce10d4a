"""File upload and profile router."""

import logging
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, UploadFile, File, HTTPException

from models.schemas import ColumnProfile, ProfileResult, TypeOverrideRequest, UploadResponse
from services.storage import storage
from services.analyzer import (
    Dataset,
    EXCEL_SUFFIXES,
    apply_column_types,
    generate_id,
    get_dataset_from_bytes,
    override_column_type,
    profile_dataset,
    quality_score,
)
from services.errors import AutoDashError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])

# Max file size: 50MB
MAX_FILE_SIZE = 50 * 1024 * 1024

# Allowed extensions
ALLOWED_EXTENSIONS = {".csv"} | EXCEL_SUFFIXES


def validate_file(file: UploadFile) -> None:
    """Validate the uploaded file."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    # Check extension
    ext = "." + file.filename.split(".")[-1].lower() if "." in file.filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )


def load_profile(dataset_id: str) -> ProfileResult:
    """Load the stored profile of a dataset or raise a 404."""
    profile = storage.get_json(dataset_id, "profile")
    if not profile:
        raise HTTPException(status_code=404, detail="Dataset not found")
    return ProfileResult.model_validate(profile)


def load_dataset(dataset_id: str) -> Dataset:
    """Re-parse the raw upload of a dataset."""
    data_file = storage.find_data_file(dataset_id, ALLOWED_EXTENSIONS)
    if not data_file:
        raise HTTPException(status_code=404, detail="Data file not found")

    # Re-read the raw upload
    with open(data_file, "rb") as f:
        content = f.read()
    return get_dataset_from_bytes(content, data_file.name)


def load_typed_rows(dataset_id: str) -> Tuple[Dataset, List[ColumnProfile], List[Dict[str, Any]]]:
    """Dataset, its column profiles, and rows with the profiled types applied."""
    profile = load_profile(dataset_id)
    dataset = load_dataset(dataset_id)
    rows = apply_column_types(dataset, profile.column_profiles)
    return dataset, profile.column_profiles, rows


@router.post("/", response_model=UploadResponse)
async def upload_dataset(file: UploadFile = File(...)):
    """
    Upload a CSV or Excel dataset.

    Returns the dataset profile and per-column profiles.
    """
    # Validate file
    validate_file(file)

    # Read file content
    content = await file.read()

    # Check file size
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {MAX_FILE_SIZE // (1024*1024)}MB"
        )

    # Generate session ID
    session_id = generate_id()
    filename = file.filename or "data.csv"

    try:
        # Parse the file into raw-text rows
        dataset = get_dataset_from_bytes(content, filename)
        # Profile every column
        profile = profile_dataset(dataset)
    except AutoDashError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Save the raw file; charts re-read it on demand
    storage.save_file(session_id, filename, content)
    # Save the profile as JSON
    storage.save_json(session_id, "profile", profile.model_dump(by_alias=True))
    logger.info("Uploaded %s as dataset %s", filename, session_id)

    return UploadResponse(
        success=True,
        dataset_id=session_id,
        file_name=filename,
        dataset_profile=profile.dataset_profile,
        column_profiles=profile.column_profiles,
        quality_score=quality_score(profile.dataset_profile),
        message=f"Successfully uploaded {filename}"
    )


@router.get("/{dataset_id}/profile", response_model=ProfileResult)
async def get_dataset_profile(dataset_id: str):
    """Get the profile of an uploaded dataset."""
    return load_profile(dataset_id)


@router.put("/{dataset_id}/columns/{column_index}", response_model=ProfileResult)
async def override_column(dataset_id: str, column_index: int, request: TypeOverrideRequest):
    """Force a column to another type and recompute its statistics."""
    # Stored profile plus the raw upload to recompute from
    profile = load_profile(dataset_id)
    dataset = load_dataset(dataset_id)

    try:
        column_profiles = override_column_type(
            dataset, profile.column_profiles, column_index, request.inferred_type
        )
    except AutoDashError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Persist so later chart requests see the new type
    updated = ProfileResult(dataset_profile=profile.dataset_profile, column_profiles=column_profiles)
    storage.save_json(dataset_id, "profile", updated.model_dump(by_alias=True))
    return updated


@router.get("/{dataset_id}/rows")
async def get_typed_rows(dataset_id: str) -> List[Dict[str, Any]]:
    """Rows with Numeric columns converted to numbers."""
    _, _, rows = load_typed_rows(dataset_id)
    return rows


@router.delete("/{dataset_id}")
async def delete_dataset(dataset_id: str):
    """Delete a dataset and all associated data."""
    if storage.delete_session(dataset_id):
        return {"success": True, "message": "Dataset deleted"}
    else:
        raise HTTPException(status_code=404, detail="Dataset not found")
