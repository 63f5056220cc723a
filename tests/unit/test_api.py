"""
API tests -- FastAPI endpoints via TestClient (no live server needed).

The table source is swapped for the in-memory retail fixture, so no
database is touched.
"""
import pytest
from fastapi.testclient import TestClient

from drilldown.api import dependencies
from drilldown.api.main import app
from drilldown.db.cache import TableCache
from drilldown.drill.registry import SessionRegistry
from drilldown.drill.session import SessionClosedError


@pytest.fixture
def client(catalog, engine):
    registry = SessionRegistry()
    cache = TableCache(ttl=60)
    app.dependency_overrides[dependencies.get_catalog] = lambda: catalog
    app.dependency_overrides[dependencies.get_engine] = lambda: engine
    app.dependency_overrides[dependencies.get_registry] = lambda: registry
    app.dependency_overrides[dependencies.get_table_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def _open(client, name="Dairy", context=None):
    resp = client.post("/drill/sessions", json={"clicked_name": name, "question_context": context})
    assert resp.status_code == 200
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Catalog ─────────────────────────────────────────────


def test_dimensions_list(client):
    resp = client.get("/dimensions")
    assert resp.status_code == 200
    dims = resp.json()["dimensions"]
    assert [d["id"] for d in dims] == ["product", "customer", "geography", "time", "promotion", "channel"]
    assert dims[0]["levels"] == ["category", "subcategory", "brand", "sku"]


def test_dimension_detail(client):
    resp = client.get("/dimensions/time")
    assert resp.status_code == 200
    assert resp.json()["levels"][-1] == "day"


def test_dimension_unknown(client):
    assert client.get("/dimensions/weather").status_code == 404


# ── Sessions ────────────────────────────────────────────


def test_open_session(client):
    data = _open(client)
    assert data["session_id"]
    assert data["active_dimension"] == "product"
    assert data["current_level"] == "category"
    assert data["current_result"][0]["name"] == "Dairy"
    assert data["current_result"][0]["margin"] == 750
    assert data["initial_filter"]["type"] == "category"
    assert len(data["current_path"]) == 1


def test_open_with_context(client):
    data = _open(client, "Northeast", "Which regions are slowing?")
    assert data["active_dimension"] == "geography"
    assert data["available_dimensions"][0] == "geography"


def test_drill_and_navigate(client):
    sid = _open(client)["session_id"]

    resp = client.post(f"/drill/sessions/{sid}/drill", json={"name": "Dairy"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["drilled"] is True
    assert data["current_level"] == "subcategory"
    assert [i["name"] for i in data["current_result"]] == ["Milk", "Cheese", "Yogurt"]
    assert data["current_path"][1]["filter"] == {"field": "category", "value": "Dairy"}

    resp = client.post(f"/drill/sessions/{sid}/navigate", json={"index": 0})
    assert resp.status_code == 200
    assert len(resp.json()["current_path"]) == 1


def test_drill_at_deepest_level_reports_noop(client):
    sid = _open(client)["session_id"]
    for name in ["Dairy", "Milk", "Acme", "Whole Milk (SKU-1)"]:
        client.post(f"/drill/sessions/{sid}/drill", json={"name": name})
    resp = client.post(f"/drill/sessions/{sid}/drill", json={"name": "again"})
    assert resp.status_code == 200
    assert resp.json()["drilled"] is False
    assert resp.json()["can_drill_deeper"] is False


def test_navigate_out_of_range(client):
    sid = _open(client)["session_id"]
    resp = client.post(f"/drill/sessions/{sid}/navigate", json={"index": 5})
    assert resp.status_code == 400


def test_navigate_negative_index_rejected(client):
    sid = _open(client)["session_id"]
    resp = client.post(f"/drill/sessions/{sid}/navigate", json={"index": -1})
    assert resp.status_code == 422


def test_switch_dimension(client):
    sid = _open(client)["session_id"]
    resp = client.post(f"/drill/sessions/{sid}/dimension", json={"dimension_id": "time"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["active_dimension"] == "time"
    assert data["current_level"] == "year"
    assert [i["name"] for i in data["current_result"]] == ["2024"]


def test_get_session(client):
    sid = _open(client)["session_id"]
    resp = client.get(f"/drill/sessions/{sid}")
    assert resp.status_code == 200
    assert resp.json()["session_id"] == sid


def test_close_session(client):
    sid = _open(client)["session_id"]
    resp = client.delete(f"/drill/sessions/{sid}")
    assert resp.status_code == 200
    assert resp.json() == {"closed": sid}
    assert client.get(f"/drill/sessions/{sid}").status_code == 404
    assert client.delete(f"/drill/sessions/{sid}").status_code == 404


def test_unknown_session(client):
    assert client.get("/drill/sessions/nope").status_code == 404
    assert client.post("/drill/sessions/nope/drill", json={"name": "x"}).status_code == 404


def test_drill_empty_name_rejected(client):
    sid = _open(client)["session_id"]
    resp = client.post(f"/drill/sessions/{sid}/drill", json={"name": ""})
    assert resp.status_code == 422


# ── Cache ───────────────────────────────────────────────


def test_cache_stats_and_clear(client):
    resp = client.get("/drill/cache/stats")
    assert resp.status_code == 200
    assert resp.json()["size"] == 0
    resp = client.post("/drill/cache/clear")
    assert resp.json() == {"cleared": 0}


class _ClosingSession:
    """Looks open at lookup time but is closed by the time it is used."""
    closed = False

    def _raise(self, *args, **kwargs):
        raise SessionClosedError("Drill session is closed")

    drill_into = navigate_to_level = switch_dimension = state = _raise


class _OneSessionRegistry:
    def get(self, session_id):
        return _ClosingSession()


@pytest.mark.parametrize("path,body", [
    ("drill", {"name": "Dairy"}),
    ("navigate", {"index": 0}),
    ("dimension", {"dimension_id": "time"}),
])
def test_session_closed_mid_request_is_404(client, path, body):
    app.dependency_overrides[dependencies.get_registry] = lambda: _OneSessionRegistry()
    resp = client.post(f"/drill/sessions/abc/{path}", json=body)
    assert resp.status_code == 404


def test_get_session_closed_mid_request_is_404(client):
    app.dependency_overrides[dependencies.get_registry] = lambda: _OneSessionRegistry()
    assert client.get("/drill/sessions/abc").status_code == 404
