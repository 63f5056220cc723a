"""
Aggregation engine -- fetch, filter, group and rank for one drill step.

    aggregate(dimension_id, target_level, cumulative_filters, initial_filter)

The engine never raises for data problems: a required table that cannot
be fetched, or comes back empty, yields an empty result, and non-numeric
metric cells count as 0.  Unknown levels and dimensions fall back to the
first level / first dimension.
"""
from __future__ import annotations

from typing import Mapping

import pandas as pd

from drilldown.catalog.loader import Dimension, DimensionCatalog
from drilldown.core.config import get_settings
from drilldown.core.logging import get_logger
from drilldown.core.utils import timer
from drilldown.db.tables import TableSource
from drilldown.drill.grouping import DimensionResolver, Frames, group_and_rank, to_items
from drilldown.drill.models import AggregatedItem, InitialFilter
from drilldown.drill.resolvers import build_resolvers

logger = get_logger(__name__)


class AggregationEngine:
    """Computes ranked AggregatedItems from a read-only TableSource.

    Parameters
    ----------
    catalog : DimensionCatalog
        Hierarchies the engine may be asked about.
    source : TableSource
        Whole-table reader (SQL, cached, or in-memory).
    top_n : int, optional
        Result size bound; defaults to ``settings.drill_top_n``.
    conversion_value : float, optional
        Estimated revenue per channel conversion; defaults to
        ``settings.channel_conversion_value``.
    """

    def __init__(
        self,
        catalog: DimensionCatalog,
        source: TableSource,
        top_n: int | None = None,
        conversion_value: float | None = None,
    ):
        settings = get_settings()
        self.catalog = catalog
        self.source = source
        self.top_n = top_n if top_n is not None else settings.drill_top_n
        self.resolvers = build_resolvers(
            conversion_value if conversion_value is not None else settings.channel_conversion_value
        )

    # ── Public API ──────────────────────────────────────

    def aggregate(
        self,
        dimension_id: str,
        target_level: str,
        cumulative_filters: Mapping[str, str] | None = None,
        initial_filter: InitialFilter | None = None,
        truncate: bool = True,
    ) -> list[AggregatedItem]:
        """Return items for *dimension_id* grouped at *target_level*.

        ``truncate=False`` returns every group (used to check totals
        before the top-N cut).
        """
        dimension = self._dimension(dimension_id)
        level = self._level(dimension, target_level)
        resolver = self.resolvers.get(dimension.id)
        if resolver is None:
            logger.warning("No resolver registered for dimension=%s", dimension.id)
            return []

        frames = self._fetch_tables(resolver)
        if frames is None:
            return []

        active = {
            field: value
            for field, value in (cumulative_filters or {}).items()
            if dimension.has_level(field)
        }

        with timer() as t:
            try:
                entities = resolver.entities(frames, initial_filter)
                for field, value in active.items():
                    entities = entities[resolver.grouping_key(entities, field) == value]
                ranked = group_and_rank(
                    entities,
                    resolver.grouping_key(entities, level),
                    roi_basis=resolver.roi_basis,
                    top_n=self.top_n if truncate else None,
                    extra_columns=resolver.extra_columns,
                )
                items = to_items(resolver.finalize(ranked), resolver.roi_basis)
            except (KeyError, TypeError, ValueError):
                logger.exception("Aggregation failed | dimension=%s | level=%s", dimension.id, level)
                return []

        logger.info(
            "Aggregate | dimension=%s | level=%s | filters=%s | initial=%s | items=%d | %dms",
            dimension.id, level, active,
            initial_filter.type if initial_filter else None,
            len(items), t["elapsed_ms"],
        )
        return items

    # ── Internals ───────────────────────────────────────

    def _dimension(self, dimension_id: str) -> Dimension:
        dimension = self.catalog.by_id(dimension_id)
        if dimension is None:
            dimension = self.catalog.first()
            logger.warning("Unknown dimension '%s' -- falling back to '%s'", dimension_id, dimension.id)
        return dimension

    @staticmethod
    def _level(dimension: Dimension, level: str) -> str:
        if dimension.has_level(level):
            return level
        logger.warning("Unknown level '%s' for dimension=%s -- using '%s'",
                       level, dimension.id, dimension.first_level)
        return dimension.first_level

    def _fetch_tables(self, resolver: DimensionResolver) -> Frames | None:
        """Fetch required + optional tables as frames; ``None`` when a required one is unavailable."""
        frames: Frames = {}
        for name in resolver.required_tables:
            try:
                rows = self.source.fetch(name)
            except Exception:
                logger.exception("Fetch failed for required table '%s'", name)
                return None
            if not rows:
                logger.warning("Required table '%s' is empty -- no data for dimension=%s",
                               name, resolver.dimension_id)
                return None
            frames[name] = pd.DataFrame(rows)

        for name in resolver.optional_tables:
            try:
                frames[name] = pd.DataFrame(self.source.fetch(name))
            except Exception:
                logger.warning("Fetch failed for optional table '%s' -- continuing without it", name)
                frames[name] = pd.DataFrame()
        return frames
