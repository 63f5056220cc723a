"""
Loads and parses the dimension catalog YAML into strongly-typed objects.

The catalog is the single source of truth for:
  - drillable hierarchies (id, label, ordered levels)
  - reference sets used to classify a clicked chart element
    (consumable / non-consumable categories, regions, promotion mechanics)

The catalog is built once at startup and handed to whoever needs it; it is
never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from drilldown.core.config import get_settings
from drilldown.core.logging import get_logger

logger = get_logger(__name__)

_CATALOG_PATH = Path(__file__).resolve().parent / "dimensions.yml"


class CatalogError(ValueError):
    """Raised when the catalog YAML violates a structural invariant."""


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class Dimension:
    id: str
    label: str
    levels: tuple[str, ...]
    description: str = ""

    def level_index(self, level: str) -> int:
        """Position of *level* in this hierarchy, or -1 when it is not one of ours."""
        try:
            return self.levels.index(level)
        except ValueError:
            return -1

    def has_level(self, level: str) -> bool:
        return level in self.levels

    @property
    def first_level(self) -> str:
        return self.levels[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "levels": list(self.levels),
            "description": self.description,
        }


@dataclass(frozen=True)
class ReferenceSets:
    consumable_categories: tuple[str, ...] = ()
    non_consumable_categories: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()
    promotion_types: tuple[str, ...] = ()

    @property
    def all_categories(self) -> tuple[str, ...]:
        return self.consumable_categories + self.non_consumable_categories


@dataclass(frozen=True)
class DimensionCatalog:
    """Fully parsed, read-only catalog."""

    version: int
    dimensions: tuple[Dimension, ...]
    reference: ReferenceSets = field(default_factory=ReferenceSets)

    # ── Convenience look-ups ─────────────────────────

    def by_id(self, dimension_id: str) -> Dimension | None:
        for d in self.dimensions:
            if d.id == dimension_id:
                return d
        return None

    def all(self) -> tuple[Dimension, ...]:
        return self.dimensions

    def ids(self) -> list[str]:
        return [d.id for d in self.dimensions]

    def first(self) -> Dimension:
        return self.dimensions[0]


# ── Parsing ──────────────────────────────────────────────

def _parse_dimension(raw: dict[str, Any]) -> Dimension:
    dim_id = raw["id"]
    levels = tuple(raw.get("levels") or [])
    if not levels:
        raise CatalogError(f"Dimension '{dim_id}' declares no levels")
    if len(set(levels)) != len(levels):
        raise CatalogError(f"Dimension '{dim_id}' has duplicate level names: {list(levels)}")
    return Dimension(
        id=dim_id,
        label=raw.get("label", dim_id.title()),
        levels=levels,
        description=raw.get("description", ""),
    )


def _parse_reference(raw: dict[str, Any] | None) -> ReferenceSets:
    if not raw:
        return ReferenceSets()
    return ReferenceSets(
        consumable_categories=tuple(raw.get("consumable_categories", [])),
        non_consumable_categories=tuple(raw.get("non_consumable_categories", [])),
        regions=tuple(raw.get("regions", [])),
        promotion_types=tuple(raw.get("promotion_types", [])),
    )


def parse_catalog(raw_yaml: dict[str, Any]) -> DimensionCatalog:
    dimensions = tuple(_parse_dimension(d) for d in raw_yaml.get("dimensions", []))
    if not dimensions:
        raise CatalogError("Catalog declares no dimensions")
    ids = [d.id for d in dimensions]
    if len(set(ids)) != len(ids):
        raise CatalogError(f"Duplicate dimension ids: {ids}")
    return DimensionCatalog(
        version=raw_yaml.get("version", 1),
        dimensions=dimensions,
        reference=_parse_reference(raw_yaml.get("reference")),
    )


# ── Public API ───────────────────────────────────────────

def load_dimension_catalog(path: str | Path | None = None) -> DimensionCatalog:
    """Load the catalog from *path*, the configured path, or the packaged YAML."""
    if path is None:
        path = get_settings().catalog_path or _CATALOG_PATH
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    catalog = parse_catalog(raw or {})
    logger.info("Dimension catalog loaded  path=%s  dimensions=%s", path, catalog.ids())
    return catalog
