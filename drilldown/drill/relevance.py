"""
Dimension relevance ranker -- orders the catalog by how well each
hierarchy fits the question being explored.
"""
from __future__ import annotations

from drilldown.catalog.loader import Dimension, DimensionCatalog
from drilldown.core.logging import get_logger

logger = get_logger(__name__)

# ── Keyword groups, checked in priority order ────────────

_RELEVANCE_RULES: list[tuple[tuple[str, ...], list[str]]] = [
    (("forecast", "trend", "predict", "future"),     ["time", "product", "geography"]),
    (("customer", "segment", "loyalty"),             ["customer", "product", "geography"]),
    (("store", "region", "location"),                ["geography", "product", "time"]),
    (("channel", "marketing", "campaign"),           ["channel", "product", "customer"]),
    (("promotion", "discount", "offer"),             ["promotion", "product", "geography"]),
]

_DEFAULT_ORDER = ["product", "geography", "customer", "time"]


def relevance_order(question_context: str) -> list[str]:
    """Return the preferred dimension ids for *question_context*."""
    q = question_context.lower()
    for keywords, order in _RELEVANCE_RULES:
        if any(kw in q for kw in keywords):
            return list(order)
    return list(_DEFAULT_ORDER)


def rank_dimensions(
    catalog: DimensionCatalog,
    question_context: str | None = None,
) -> list[Dimension]:
    """Stable-sort the catalog by relevance to *question_context*.

    Dimensions not named by the chosen order keep their catalog order and
    sort after every ranked one.  Without context the catalog order is
    returned unchanged.
    """
    dims = list(catalog.all())
    if not question_context or not question_context.strip():
        return dims

    order = relevance_order(question_context)
    unranked = len(order)
    ranked = sorted(
        dims,
        key=lambda d: order.index(d.id) if d.id in order else unranked,
    )
    logger.debug("Relevance order for %r -> %s", question_context[:60], [d.id for d in ranked])
    return ranked
