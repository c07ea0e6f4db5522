"""Report table export via pandas."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)

_TAB_SUFFIXES = {".txt", ".tsv"}


def write_table(table: pd.DataFrame, path: Path, include_removed: bool = False) -> int:
    """Write a per-well table to disk.

    ``.txt`` and ``.tsv`` files are tab-separated; anything else is CSV.
    Boolean columns are written as 0/1 and missing statistics as ``NaN``.

    Args:
        table: Table with a ``Removed`` column.
        path: Output file path.
        include_removed: Also write the rows of removed wells.

    Returns:
        Number of rows written.
    """
    path = Path(path)
    if not include_removed and "Removed" in table.columns:
        table = table[~table["Removed"].astype(bool)]

    out = table.copy()
    for column in out.columns:
        if out[column].dtype == bool:
            out[column] = out[column].astype(int)

    sep = "\t" if path.suffix.lower() in _TAB_SUFFIXES else ","
    out.to_csv(path, sep=sep, index=False, na_rep="NaN")
    logger.info("Wrote %d rows to %s", len(out), path)
    return len(out)
