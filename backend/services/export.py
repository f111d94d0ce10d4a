"""CSV export of row data."""

from typing import Any, Dict, List

import pandas as pd


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Serialize rows to CSV text.

    Columns follow first-seen key order across all rows; cells a row does
    not have are left empty.
    """
    columns: Dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)

    df = pd.DataFrame(rows, columns=list(columns))
    return df.to_csv(index=False)
