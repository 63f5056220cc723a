"""
Small shared utilities.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Generator

import pandas as pd

from drilldown.core.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = int((time.perf_counter() - start) * 1000)


def numeric(values: pd.Series) -> pd.Series:
    """Coerce a column of nullable numeric cells to float.

    Nulls and blanks count as 0.  Cells that are not numbers at all
    (``"n/a"``) also count as 0 and are reported once per column.
    """
    coerced = pd.to_numeric(values, errors="coerce")
    bad = coerced.isna() & values.notna() & values.ne("")
    if bad.any():
        logger.warning("Column '%s': %d non-numeric cell(s) counted as 0", values.name, int(bad.sum()))
    return coerced.fillna(0.0).astype(float)
