"""
Whole-table readers for the retail data the drill engine aggregates.

The data service offers no server-side filtering: every read returns the
full row set of one table and the engine filters and groups client-side.

  SqlTableSource      -- SELECT * through the read-only executor
  InMemoryTableSource -- rows held in a dict (tests, demos)
  CachedTableSource   -- wraps another source with a TableCache
"""
from __future__ import annotations

import re
from typing import Any, Mapping, Protocol

from drilldown.db.cache import TableCache
from drilldown.core.config import get_settings
from drilldown.core.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = "products"
TRANSACTIONS = "transactions"
CUSTOMERS = "customers"
STORES = "stores"
STORE_PERFORMANCE = "store_performance"
PROMOTIONS = "promotions"
MARKETING_CHANNELS = "marketing_channels"

KNOWN_TABLES = frozenset({
    PRODUCTS,
    TRANSACTIONS,
    CUSTOMERS,
    STORES,
    STORE_PERFORMANCE,
    PROMOTIONS,
    MARKETING_CHANNELS,
})

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class UnknownTableError(ValueError):
    """Raised when a caller asks for a table outside the retail whitelist."""


def check_table(table: str) -> str:
    if table not in KNOWN_TABLES:
        raise UnknownTableError(f"Table '{table}' is not readable by the drill engine")
    return table


class TableSource(Protocol):
    def fetch(self, table: str) -> list[dict[str, Any]]:
        ...


class SqlTableSource:
    """Reads whole tables from Postgres inside a READ ONLY transaction."""

    def __init__(self, schema: str | None = None):
        schema = schema or get_settings().data_schema
        if not _IDENT_RE.match(schema):
            raise ValueError(f"Invalid schema name: {schema!r}")
        self.schema = schema

    def fetch(self, table: str) -> list[dict[str, Any]]:
        from drilldown.db.executor import execute_readonly

        check_table(table)
        rows = execute_readonly(f"SELECT * FROM {self.schema}.{table}")
        logger.info("Fetched %s.%s  rows=%d", self.schema, table, len(rows))
        return rows


class InMemoryTableSource:
    """Serves rows from a mapping of table name -> rows."""

    def __init__(self, tables: Mapping[str, list[dict[str, Any]]] | None = None):
        self._tables = {name: list(rows) for name, rows in (tables or {}).items()}
        self.fetch_count = 0

    def fetch(self, table: str) -> list[dict[str, Any]]:
        check_table(table)
        self.fetch_count += 1
        return list(self._tables.get(table, []))


class CachedTableSource:
    """Serves repeated reads of the same table from a TTL cache."""

    def __init__(self, inner: TableSource, cache: TableCache | None = None):
        settings = get_settings()
        self.inner = inner
        self.cache = cache or TableCache(
            ttl=settings.table_cache_ttl_seconds,
            max_size=settings.table_cache_max_size,
        )

    def fetch(self, table: str) -> list[dict[str, Any]]:
        rows = self.cache.get(table)
        if rows is not None:
            return rows
        rows = self.inner.fetch(table)
        # Empty snapshots are not cached so a freshly seeded table shows up.
        if rows:
            self.cache.put(table, rows)
        return rows
