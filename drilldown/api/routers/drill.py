"""Drill session endpoints -- open, drill, breadcrumb, switch hierarchy, close."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, HTTPException

from drilldown.api.dependencies import get_catalog, get_engine, get_registry, get_table_cache
from drilldown.catalog.loader import DimensionCatalog
from drilldown.db.cache import TableCache
from drilldown.drill.aggregation import AggregationEngine
from drilldown.drill.registry import SessionNotFoundError, SessionRegistry
from drilldown.drill.session import DrillSession, SessionClosedError
from drilldown.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()



class OpenRequest(BaseModel):
    clicked_name: str = Field(..., max_length=200, description="Display name of the clicked chart element")
    question_context: str | None = Field(None, max_length=500, description="Question being explored")


class DrillRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Name of the result row to drill into")


class NavigateRequest(BaseModel):
    index: int = Field(..., ge=0, description="Breadcrumb index to return to")


class SwitchRequest(BaseModel):
    dimension_id: str


class StepResponse(BaseModel):
    dimension_id: str
    level: str
    display_name: str
    filter: dict[str, str] | None = None


class SessionResponse(BaseModel):
    session_id: str
    current_path: list[StepResponse]
    active_dimension: str
    current_level: str
    current_result: list[dict[str, Any]]
    can_drill_deeper: bool
    initial_filter: dict[str, Any] | None
    available_dimensions: list[str]


class DrillResponse(SessionResponse):
    drilled: bool


class CacheStatsResponse(BaseModel):
    size: int
    max_size: int
    ttl_seconds: float
    hits: int
    misses: int
    hit_rate: float



def _session_response(session_id: str, session: DrillSession) -> dict[str, Any]:
    return {"session_id": session_id, **session.state().to_dict()}


def _lookup(registry: SessionRegistry, session_id: str) -> DrillSession:
    try:
        session = registry.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Unknown drill session '{session_id}'")
    if session.closed:
        raise _closed(session_id)
    return session


def _closed(session_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Drill session '{session_id}' is closed")


@router.post("/sessions", response_model=SessionResponse)
def open_session(
    req: OpenRequest,
    catalog: DimensionCatalog = Depends(get_catalog),
    engine: AggregationEngine = Depends(get_engine),
    registry: SessionRegistry = Depends(get_registry),
):
    """Open a drill panel for the clicked element and run the first aggregation."""
    session = DrillSession.open(req.clicked_name, catalog, engine, question_context=req.question_context)
    session_id = registry.add(session)
    return _session_response(session_id, session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Return the current path, hierarchy and ranked result."""
    try:
        return _session_response(session_id, _lookup(registry, session_id))
    except SessionClosedError:
        raise _closed(session_id)


@router.post("/sessions/{session_id}/drill", response_model=DrillResponse)
def drill_into(session_id: str, req: DrillRequest, registry: SessionRegistry = Depends(get_registry)):
    """Drill one level deeper into the named result row."""
    session = _lookup(registry, session_id)
    try:
        drilled = session.drill_into(req.name)
        return {**_session_response(session_id, session), "drilled": drilled}
    except SessionClosedError:
        raise _closed(session_id)


@router.post("/sessions/{session_id}/navigate", response_model=SessionResponse)
def navigate(session_id: str, req: NavigateRequest, registry: SessionRegistry = Depends(get_registry)):
    """Jump back to a breadcrumb."""
    session = _lookup(registry, session_id)
    try:
        session.navigate_to_level(req.index)
        return _session_response(session_id, session)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SessionClosedError:
        raise _closed(session_id)


@router.post("/sessions/{session_id}/dimension", response_model=SessionResponse)
def switch_dimension(session_id: str, req: SwitchRequest, registry: SessionRegistry = Depends(get_registry)):
    """Make another hierarchy active without touching the path."""
    session = _lookup(registry, session_id)
    try:
        session.switch_dimension(req.dimension_id)
        return _session_response(session_id, session)
    except SessionClosedError:
        raise _closed(session_id)


@router.delete("/sessions/{session_id}")
def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Close the panel and discard its path."""
    try:
        registry.close(session_id)
    except (SessionNotFoundError, SessionClosedError):
        raise HTTPException(status_code=404, detail=f"Unknown drill session '{session_id}'")
    return {"closed": session_id}


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats_endpoint(cache: TableCache = Depends(get_table_cache)):
    """Return table snapshot cache statistics."""
    return CacheStatsResponse(**cache.stats())


@router.post("/cache/clear")
def cache_clear_endpoint(cache: TableCache = Depends(get_table_cache)):
    """Flush cached table snapshots so the next drill re-reads the database."""
    removed = cache.invalidate()
    return {"cleared": removed}
