"""
Initial filter resolver -- classifies the name of the clicked chart element.

Rules, first match wins:
  1. mentions "non-consumable"        -> category_group (non-consumables)
  2. mentions "consumable"            -> category_group (consumables)
  3. equals a known category          -> category
  4. contains a known region          -> region
  5. contains a promotion mechanic    -> promo_type
  6. anything else                    -> other (match against any field)
"""
from __future__ import annotations

from drilldown.catalog.loader import ReferenceSets
from drilldown.drill.models import InitialFilter

NON_CONSUMABLES = "Non-Consumables"
CONSUMABLES = "Consumables"

_NON_CONSUMABLE_MARKERS = ("non-consumable", "non consumable")


def resolve_initial_filter(name: str | None, reference: ReferenceSets) -> InitialFilter | None:
    """Return the filter implied by *name*, or ``None`` for an empty click."""
    if not name or not name.strip():
        return None

    lowered = name.lower()

    if any(marker in lowered for marker in _NON_CONSUMABLE_MARKERS):
        return InitialFilter("category_group", NON_CONSUMABLES, reference.non_consumable_categories)
    if lowered == "consumables" or "consumable" in lowered:
        return InitialFilter("category_group", CONSUMABLES, reference.consumable_categories)

    if name in reference.all_categories:
        return InitialFilter("category", name)

    for region in reference.regions:
        if region.lower() in lowered:
            return InitialFilter("region", region)

    for promo_type in reference.promotion_types:
        if promo_type.lower() in lowered:
            return InitialFilter("promo_type", promo_type)

    return InitialFilter("other", name)
