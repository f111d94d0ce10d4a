"""Dataset loading and whole-dataset profiling."""

import io
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from models.schemas import ColumnProfile, ColumnType, DatasetProfile, ProfileResult
from services.coercion import is_blank, to_number
from services.column_profiler import compute_stats, profile_column
from services.errors import MalformedInputError, MissingKeyError

logger = logging.getLogger(__name__)


CSV_ENCODINGS = ["utf-8", "latin-1", "cp1252"]
EXCEL_SUFFIXES = {".xlsx", ".xls"}


def generate_id() -> str:
    """Generate a unique session/dataset ID."""
    return str(uuid.uuid4())[:12]


@dataclass
class Dataset:
    """
    A parsed table: ordered header names plus rows keyed by header.

    Cells are raw strings. CSV blanks are "", Excel blanks are None.
    """
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def column_values(self, name: str) -> List[Any]:
        if name not in self.columns:
            raise MissingKeyError(name)
        return [row.get(name) for row in self.rows]

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "Dataset":
        df = df.astype(object).where(df.notna(), None)
        return cls(
            columns=[str(c) for c in df.columns],
            rows=df.to_dict(orient="records"),
        )


# === File Loading ===

def clean_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean a DataFrame by:
    - Removing rows where every cell is blank
    - Removing blank columns that also have no header
    - Stripping header whitespace

    Blank columns with a real header are kept; they profile as Unknown.
    """
    if df.empty:
        return df

    # Remove completely blank rows
    blank = df.apply(lambda col: col.map(is_blank))
    df = df[~blank.all(axis=1)]

    # Remove blank columns pandas had to name itself
    unnamed = [
        c for c in df.columns
        if str(c).startswith("Unnamed") and blank.loc[df.index, c].all()
    ]
    df = df.drop(columns=unnamed)

    # Clean column names
    df.columns = [str(c).strip() if pd.notna(c) else f"Column_{i}" for i, c in enumerate(df.columns)]

    return df.reset_index(drop=True)


def find_best_sheet(excel_file: io.BytesIO) -> tuple[str, pd.DataFrame]:
    """
    Find the sheet with the most data in an Excel file.
    Returns (sheet_name, dataframe).
    """
    excel_file.seek(0)
    xl = pd.ExcelFile(excel_file)

    best_sheet = None
    best_df = None
    best_size = 0

    for sheet_name in xl.sheet_names:
        # Read sheet
        df = pd.read_excel(xl, sheet_name=sheet_name, header=None)
        # Skip empty sheets
        if df.empty:
            continue

        # Calculate "data size" (non-null cells)
        size = df.notna().sum().sum()
        if size > best_size:
            best_size = size
            best_sheet = sheet_name
            best_df = df

    if best_df is None:
        raise MalformedInputError("No data found in any sheet")

    return best_sheet, best_df


def detect_header_row(df: pd.DataFrame) -> int:
    """
    Detect which row contains the headers.
    Returns the row index (0-based).
    """
    # Look at first 10 rows to find the header
    for i in range(min(10, len(df))):
        row = df.iloc[i]

        # Skip rows with too many nulls
        if row.isna().sum() > len(row) / 2:
            continue

        non_null = row.dropna()
        if len(non_null) == 0:
            continue

        # Headers are mostly strings and unique
        string_count = sum(1 for v in non_null if isinstance(v, str))
        if string_count >= len(non_null) * 0.7:
            if len(non_null.unique()) == len(non_null):
                return i

    return 0


def _read_csv(content: bytes) -> pd.DataFrame:
    # Try different encodings; every cell stays text
    for encoding in CSV_ENCODINGS:
        try:
            return pd.read_csv(
                io.BytesIO(content),
                encoding=encoding,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError as exc:
            raise MalformedInputError("File has no header row") from exc
        except pd.errors.ParserError as exc:
            raise MalformedInputError(f"Could not parse CSV: {exc}") from exc
    raise MalformedInputError("Could not decode CSV file with supported encodings")


def _read_excel(content: bytes) -> pd.DataFrame:
    buffer = io.BytesIO(content)
    # Find the best sheet (one with most data)
    sheet_name, raw_df = find_best_sheet(buffer)
    # Detect header row
    header_row = detect_header_row(raw_df)

    # Re-read with proper header
    buffer.seek(0)
    return pd.read_excel(buffer, sheet_name=sheet_name, header=header_row, dtype=str)


def get_dataset_from_bytes(content: bytes, filename: str) -> Dataset:
    """Load a Dataset from uploaded file bytes, keeping every cell as raw text."""
    suffix = Path(filename).suffix.lower()

    if suffix == ".csv":
        df = _read_csv(content)
    elif suffix in EXCEL_SUFFIXES:
        df = _read_excel(content)
    else:
        raise MalformedInputError(f"Unsupported file type: {suffix}")

    # Clean the dataframe
    return Dataset.from_dataframe(clean_dataframe(df))


# === Profiling ===

def profile_dataset(dataset: Dataset) -> ProfileResult:
    """
    Profile every column of a dataset.

    Returns the dataset-level counts and the column profiles in header
    order. ``empty_cells`` is the sum of the columns' missing values.
    """
    if not dataset.columns:
        raise MalformedInputError("Dataset has no header row")
    if not dataset.rows:
        raise MalformedInputError("Dataset has no data rows")

    empty_cells = 0
    column_profiles: List[ColumnProfile] = []
    # Column profiles, accumulating empty cells as we go
    for name in dataset.columns:
        profile = profile_column(name, dataset.column_values(name))
        empty_cells += profile.missing_values
        column_profiles.append(profile)

    logger.info(
        "Profiled dataset: %d rows, %d columns, %d empty cells",
        len(dataset.rows), len(dataset.columns), empty_cells,
    )

    return ProfileResult(
        dataset_profile=DatasetProfile(
            total_rows=len(dataset.rows),
            total_cols=len(dataset.columns),
            empty_cells=empty_cells,
        ),
        column_profiles=column_profiles,
    )


def override_column_type(
    dataset: Dataset,
    column_profiles: List[ColumnProfile],
    column_index: int,
    new_type: ColumnType,
) -> List[ColumnProfile]:
    """
    Force a column to ``new_type`` and recompute only its statistics.

    Returns a new list; the other profiles are passed through untouched.
    """
    if not 0 <= column_index < len(column_profiles):
        raise MissingKeyError(column_index, f"Column index {column_index} out of range")

    # Recompute only the target column; the rest pass through
    target = column_profiles[column_index]
    values = dataset.column_values(target.column_name)

    updated = list(column_profiles)
    updated[column_index] = target.model_copy(
        update={
            "inferred_type": new_type,
            "stats": compute_stats(values, new_type),
        }
    )

    logger.info("Column %r overridden to %s", target.column_name, new_type.value)
    return updated


def _as_number(value: Any) -> Optional[float]:
    number = to_number(value)
    if number is not None and number.is_integer():
        return int(number)
    return number


def apply_column_types(
    dataset: Dataset,
    column_profiles: List[ColumnProfile],
) -> List[Dict[str, Any]]:
    """Return rows with Numeric columns converted to numbers where possible."""
    numeric_columns = [
        p.column_name for p in column_profiles
        if p.inferred_type == ColumnType.NUMERIC
    ]

    typed_rows = []
    for row in dataset.rows:
        typed = dict(row)
        for name in numeric_columns:
            number = _as_number(typed.get(name))
            if number is not None:
                typed[name] = number
        typed_rows.append(typed)

    return typed_rows


def quality_score(profile: DatasetProfile) -> int:
    """Share of non-empty cells as a 0-100 score."""
    total_cells = profile.total_rows * profile.total_cols
    if total_cells == 0:
        return 100
    return round((1 - profile.empty_cells / total_cells) * 100)
