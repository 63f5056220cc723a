"""
Value objects shared by the drill engine: path steps, the resolved
initial filter, and aggregated result rows.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ROOT = "root"

FilterType = Literal["category_group", "category", "region", "promo_type", "other"]


@dataclass(frozen=True)
class StepFilter:
    field: str
    value: str


@dataclass(frozen=True)
class DrillStep:
    dimension_id: str
    level: str
    display_name: str
    filter: StepFilter | None = None

    @property
    def is_root(self) -> bool:
        return self.dimension_id == ROOT

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension_id": self.dimension_id,
            "level": self.level,
            "display_name": self.display_name,
            "filter": (
                {"field": self.filter.field, "value": self.filter.value}
                if self.filter else None
            ),
        }


def root_step(display_name: str) -> DrillStep:
    return DrillStep(dimension_id=ROOT, level=ROOT, display_name=display_name)


@dataclass(frozen=True)
class InitialFilter:
    """What the clicked chart element means, resolved once per session."""
    type: FilterType
    value: str
    categories: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value, "categories": list(self.categories)}


@dataclass
class AggregatedItem:
    """One ranked row of an aggregation result.

    ``discount`` and ``spend`` are both kept; ``roi_basis`` names which one
    ROI was divided by.
    """
    name: str
    sales: float = 0.0
    margin: float = 0.0
    units: float = 0.0
    discount: float = 0.0
    spend: float = 0.0
    roi: float = 0.0
    sub_item_count: int = 0
    roi_basis: Literal["discount", "spend"] = "discount"
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def roi_divisor(self) -> float:
        return self.spend if self.roi_basis == "spend" else self.discount

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sales": round(self.sales, 2),
            "margin": round(self.margin, 2),
            "units": self.units,
            "discount": round(self.discount, 2),
            "spend": round(self.spend, 2),
            "roi": round(self.roi, 2),
            "sub_item_count": self.sub_item_count,
            **self.extras,
        }
