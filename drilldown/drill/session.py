"""
Drill session -- the operations a dashboard panel drives.

    open(clicked_name, question_context?) -> DrillSession
    drill_into(item) / navigate_to_level(i) / switch_dimension(id) / close()
    state() -> SessionState

Every path or dimension change bumps an epoch.  An aggregation run
captures the epoch when it starts and its result is applied only if no
change happened in the meantime; a superseded run still completes but
its result is dropped.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from drilldown.catalog.loader import Dimension, DimensionCatalog
from drilldown.core.logging import get_logger
from drilldown.drill.aggregation import AggregationEngine
from drilldown.drill.initial_filter import resolve_initial_filter
from drilldown.drill.models import AggregatedItem, DrillStep, InitialFilter
from drilldown.drill.path import DrillPathController
from drilldown.drill.relevance import rank_dimensions

logger = get_logger(__name__)


class SessionClosedError(RuntimeError):
    """Raised when an operation is attempted on a closed session."""


@dataclass(frozen=True)
class AggregationRequest:
    epoch: int
    dimension_id: str
    level: str
    filters: dict[str, str]


@dataclass
class SessionState:
    current_path: list[DrillStep]
    active_dimension: Dimension
    current_result: list[AggregatedItem]
    can_drill_deeper: bool
    current_level: str
    initial_filter: InitialFilter | None
    available_dimensions: list[Dimension] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_path": [s.to_dict() for s in self.current_path],
            "active_dimension": self.active_dimension.id,
            "current_level": self.current_level,
            "current_result": [i.to_dict() for i in self.current_result],
            "can_drill_deeper": self.can_drill_deeper,
            "initial_filter": self.initial_filter.to_dict() if self.initial_filter else None,
            "available_dimensions": [d.id for d in self.available_dimensions],
        }


class DrillSession:
    """One open drill-down panel."""

    def __init__(
        self,
        clicked_name: str,
        catalog: DimensionCatalog,
        engine: AggregationEngine,
        question_context: str | None = None,
    ):
        self.catalog = catalog
        self.engine = engine
        self.question_context = question_context
        self.initial_filter = resolve_initial_filter(clicked_name, catalog.reference)
        self.available_dimensions = rank_dimensions(catalog, question_context)

        self._path = DrillPathController(clicked_name)
        self._active = self.available_dimensions[0]
        self._result: list[AggregatedItem] = []
        self._epoch = 0
        self._closed = False
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        clicked_name: str,
        catalog: DimensionCatalog,
        engine: AggregationEngine,
        question_context: str | None = None,
        refresh: bool = True,
    ) -> "DrillSession":
        session = cls(clicked_name, catalog, engine, question_context=question_context)
        logger.info(
            "Session opened | clicked=%s | initial_filter=%s | active=%s",
            clicked_name, session.initial_filter, session._active.id,
        )
        if refresh:
            session.refresh()
        return session

    # ── Accessors ───────────────────────────────────────

    @property
    def active_dimension(self) -> Dimension:
        return self._active

    @property
    def path(self) -> tuple[DrillStep, ...]:
        return self._path.steps

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def closed(self) -> bool:
        return self._closed

    def can_drill_deeper(self) -> bool:
        return self._path.can_drill_deeper(self._active)

    def state(self) -> SessionState:
        self._ensure_open()
        with self._lock:
            return SessionState(
                current_path=list(self._path.steps),
                active_dimension=self._active,
                current_result=list(self._result),
                can_drill_deeper=self._path.can_drill_deeper(self._active),
                current_level=self._path.next_level(self._active),
                initial_filter=self.initial_filter,
                available_dimensions=list(self.available_dimensions),
            )

    # ── Transitions ─────────────────────────────────────

    def drill_into(self, item: AggregatedItem | str, refresh: bool = True) -> bool:
        """Push a step for *item*; returns False (no-op) at the deepest level."""
        self._ensure_open()
        name = item.name if isinstance(item, AggregatedItem) else item
        with self._lock:
            if not self._path.can_drill_deeper(self._active):
                logger.info("drill_into ignored -- already at deepest level of %s", self._active.id)
                return False
            step = self._path.drill_into(self._active, name)
            self._epoch += 1
        logger.info("Drilled into %s=%s (depth=%d)", step.level, name, len(self._path))
        if refresh:
            self.refresh()
        return True

    def navigate_to_level(self, index: int, refresh: bool = True) -> None:
        self._ensure_open()
        with self._lock:
            self._path.navigate_to_level(index)
            self._epoch += 1
        if refresh:
            self.refresh()

    def switch_dimension(self, dimension_id: str, refresh: bool = True) -> Dimension:
        """Change the active hierarchy; the path is kept as-is.

        The last step's level usually does not exist in the new hierarchy,
        so aggregation restarts at its first level.
        """
        self._ensure_open()
        dimension = next((d for d in self.available_dimensions if d.id == dimension_id), None)
        if dimension is None:
            dimension = self.available_dimensions[0]
            logger.warning("Unknown dimension '%s' -- switching to '%s'", dimension_id, dimension.id)
        with self._lock:
            self._active = dimension
            self._epoch += 1
        if refresh:
            self.refresh()
        return dimension

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._epoch += 1
            self._result = []
        logger.info("Session closed")

    # ── Aggregation ─────────────────────────────────────

    def prepare_request(self) -> AggregationRequest:
        """Snapshot what the next aggregation run should compute."""
        self._ensure_open()
        with self._lock:
            return AggregationRequest(
                epoch=self._epoch,
                dimension_id=self._active.id,
                level=self._path.next_level(self._active),
                filters=self._path.cumulative_filters(),
            )

    def run_request(self, request: AggregationRequest) -> list[AggregatedItem]:
        return self.engine.aggregate(
            request.dimension_id,
            request.level,
            request.filters,
            self.initial_filter,
        )

    def apply_result(self, request: AggregationRequest, items: list[AggregatedItem]) -> bool:
        """Install *items* unless the session moved on since *request* was made."""
        with self._lock:
            if self._closed or request.epoch != self._epoch:
                logger.debug("Discarding stale result (epoch %d, current %d)", request.epoch, self._epoch)
                return False
            self._result = items
            return True

    def refresh(self) -> list[AggregatedItem]:
        """Aggregate for the current state and install the result if still current."""
        request = self.prepare_request()
        items = self.run_request(request)
        self.apply_result(request, items)
        return items

    # ── Internals ───────────────────────────────────────

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Drill session is closed")
