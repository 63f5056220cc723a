"""
Read-only SQL executor.

Every table read goes through `execute_readonly`, which:
  1. Opens a READ ONLY transaction (Postgres-enforced)
  2. Wraps the query in text() and binds parameters
  3. Converts Decimal/date/datetime to JSON-safe Python types
  4. Enforces query timeout (statement_timeout)
"""
from __future__ import annotations

import decimal
import datetime
import uuid
from typing import Any

from sqlalchemy import text

from drilldown.db.connection import readonly_connection
from drilldown.core.config import get_settings
from drilldown.core.logging import get_logger

logger = get_logger(__name__)


def _serialise_value(val: Any) -> Any:
    """Convert DB types to JSON-serialisable Python types."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, (datetime.date, datetime.datetime)):
        return val.isoformat()
    if isinstance(val, datetime.timedelta):
        return str(val)
    if isinstance(val, uuid.UUID):
        return str(val)
    return val


def execute_readonly(
    sql: str,
    params: dict | None = None,
    timeout_ms: int | None = None,
) -> list[dict[str, Any]]:
    """Execute a read-only SQL query and return rows as serialisable dicts."""
    if timeout_ms is None:
        timeout_ms = get_settings().query_timeout_ms
    logger.debug("Executing SQL (%d chars)", len(sql))

    with readonly_connection() as conn:
        conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

        result = conn.execute(text(sql), params or {})
        columns = list(result.keys())
        rows = [
            {col: _serialise_value(val) for col, val in zip(columns, row)}
            for row in result.fetchall()
        ]

    logger.debug("Returned %d rows", len(rows))
    return rows
