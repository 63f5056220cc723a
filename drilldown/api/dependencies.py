"""
Application-wide objects handed to the routers via FastAPI dependencies.

Built lazily on first use and shared for the process lifetime.  Tests
swap them out with ``app.dependency_overrides``.
"""
from __future__ import annotations

from functools import lru_cache

from drilldown.catalog.loader import DimensionCatalog, load_dimension_catalog
from drilldown.db.cache import TableCache
from drilldown.db.tables import CachedTableSource, SqlTableSource
from drilldown.drill.aggregation import AggregationEngine
from drilldown.drill.registry import SessionRegistry


@lru_cache
def get_catalog() -> DimensionCatalog:
    return load_dimension_catalog()


@lru_cache
def get_table_source() -> CachedTableSource:
    return CachedTableSource(SqlTableSource())


def get_table_cache() -> TableCache:
    return get_table_source().cache


@lru_cache
def get_engine() -> AggregationEngine:
    return AggregationEngine(get_catalog(), get_table_source())


@lru_cache
def get_registry() -> SessionRegistry:
    return SessionRegistry()
