"""
Drill path controller -- the breadcrumb trail of a drill session.

The path always starts with a synthetic root step.  Drilling appends a
step; clicking a breadcrumb truncates.  The level to aggregate next is
derived from the last step and the active dimension:

    idx        = position of last step's level in the dimension (-1 if absent)
    next_level = levels[idx + 1] if idx + 1 < len(levels) else levels[0]
"""
from __future__ import annotations

from drilldown.catalog.loader import Dimension
from drilldown.drill.models import DrillStep, StepFilter, root_step


class DrillPathController:
    def __init__(self, root_name: str):
        self._steps: list[DrillStep] = [root_step(root_name)]

    @property
    def steps(self) -> tuple[DrillStep, ...]:
        return tuple(self._steps)

    @property
    def last(self) -> DrillStep:
        return self._steps[-1]

    def __len__(self) -> int:
        return len(self._steps)

    # ── Level arithmetic ────────────────────────────────

    def current_level_index(self, dimension: Dimension) -> int:
        """-1 at the root, or when the last step belongs to another hierarchy."""
        return dimension.level_index(self.last.level)

    def next_level(self, dimension: Dimension) -> str:
        idx = self.current_level_index(dimension)
        if idx + 1 < len(dimension.levels):
            return dimension.levels[idx + 1]
        return dimension.levels[0]

    def can_drill_deeper(self, dimension: Dimension) -> bool:
        return self.current_level_index(dimension) < len(dimension.levels) - 1

    def cumulative_filters(self) -> dict[str, str]:
        """Field -> value over the whole path; later steps win."""
        filters: dict[str, str] = {}
        for step in self._steps:
            if step.filter is not None:
                filters[step.filter.field] = step.filter.value
        return filters

    # ── Transitions ─────────────────────────────────────

    def drill_into(self, dimension: Dimension, item_name: str) -> DrillStep:
        """Append a step for *item_name*, which was grouped at ``next_level``.

        The new step filters on the level the item was grouped at, so the
        following aggregation (one level down) only sees that item's rows.
        """
        level = self.next_level(dimension)
        step = DrillStep(
            dimension_id=dimension.id,
            level=level,
            display_name=item_name,
            filter=StepFilter(field=level, value=item_name),
        )
        self._steps.append(step)
        return step

    def navigate_to_level(self, index: int) -> None:
        """Truncate to the first ``index + 1`` steps (breadcrumb click)."""
        if not 0 <= index < len(self._steps):
            raise IndexError(f"Breadcrumb index {index} outside [0, {len(self._steps) - 1}]")
        del self._steps[index + 1:]
