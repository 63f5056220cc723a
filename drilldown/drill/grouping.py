"""
Generic group / merge / rank step shared by every dimension.

A `DimensionResolver` turns its raw tables into an entity frame (one
row per base entity, with ``revenue``, ``units``, ``discount``,
``spend`` and ``margin`` columns) and knows how to label each entity at
a level.  `group_and_rank` does the rest: sum by label, compute ROI from
the summed totals, sort by margin and truncate.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Literal

import pandas as pd

from drilldown.drill.models import AggregatedItem, InitialFilter

Frames = dict[str, pd.DataFrame]

METRIC_COLUMNS = ["revenue", "units", "discount", "spend", "margin"]
RANKED_COLUMNS = ["name", "sales", "units", "discount", "spend", "margin", "sub_item_count", "roi"]


def ensure_columns(frame: pd.DataFrame, *columns: str) -> pd.DataFrame:
    """Return *frame* with every missing column added as nulls."""
    missing = [c for c in columns if c not in frame.columns]
    if not missing:
        return frame
    return frame.assign(**{c: None for c in missing})


class DimensionResolver(ABC):
    """Per-dimension fetch, filter and key logic."""

    dimension_id: ClassVar[str]
    required_tables: ClassVar[tuple[str, ...]]
    optional_tables: ClassVar[tuple[str, ...]] = ()
    roi_basis: ClassVar[Literal["discount", "spend"]] = "discount"
    # entity columns passed through to the result (first entity per group)
    extra_columns: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def grouping_key(self, entities: pd.DataFrame, level: str) -> pd.Series:
        """Bucket label of every row of *entities* at *level*."""

    @abstractmethod
    def entities(self, frames: Frames, initial_filter: InitialFilter | None) -> pd.DataFrame:
        """One row per entity that passes *initial_filter*, with metric columns."""

    def finalize(self, ranked: pd.DataFrame) -> pd.DataFrame:
        """Hook for columns derived from the summed totals."""
        return ranked


def group_and_rank(
    entities: pd.DataFrame,
    keys: pd.Series,
    roi_basis: Literal["discount", "spend"] = "discount",
    top_n: int | None = None,
    extra_columns: tuple[str, ...] = (),
) -> pd.DataFrame:
    """Sum *entities* by *keys* and return groups sorted by margin (desc).

    Groups keep first-seen order before sorting, and the sort is stable,
    so equal margins stay in the order their first entity appeared.
    """
    if entities.empty:
        return pd.DataFrame(columns=RANKED_COLUMNS + list(extra_columns))

    spec = {
        "sales": ("revenue", "sum"),
        "units": ("units", "sum"),
        "discount": ("discount", "sum"),
        "spend": ("spend", "sum"),
        "margin": ("margin", "sum"),
        "sub_item_count": ("margin", "size"),
        **{col: (col, "first") for col in extra_columns},
    }
    ranked = (
        entities.assign(name=keys)
        .groupby("name", sort=False)
        .agg(**spec)
        .reset_index()
    )

    divisor = ranked["spend"] if roi_basis == "spend" else ranked["discount"]
    ranked["roi"] = (ranked["margin"] / divisor.where(divisor > 0)).fillna(0.0)

    ranked = ranked.sort_values("margin", ascending=False, kind="stable")
    return ranked.head(top_n) if top_n is not None else ranked


def to_items(ranked: pd.DataFrame, roi_basis: Literal["discount", "spend"] = "discount") -> list[AggregatedItem]:
    """Convert a ranked frame into result rows; unknown columns become extras."""
    items = []
    for record in ranked.to_dict("records"):
        items.append(AggregatedItem(
            name=str(record.pop("name")),
            sales=float(record.pop("sales")),
            margin=float(record.pop("margin")),
            units=float(record.pop("units")),
            discount=float(record.pop("discount")),
            spend=float(record.pop("spend")),
            roi=float(record.pop("roi")),
            sub_item_count=int(record.pop("sub_item_count")),
            roi_basis=roi_basis,
            extras={k: (None if pd.isna(v) else v) for k, v in record.items()},
        ))
    return items
