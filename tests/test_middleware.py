"""
test_middleware.py — Tests for request/response middleware

Verifies request ID generation, the error envelope produced by the
exception handlers, and the health/index routes in main.py.

Called by: pytest
Depends on: rfpflow/main.py (middleware, handlers), tests/conftest.py (client fixture)
"""

from fastapi.testclient import TestClient


def test_request_id_header_present(client):
    """Every response should include X-Request-ID."""
    resp = client.get("/health")
    assert "X-Request-ID" in resp.headers
    req_id = resp.headers["X-Request-ID"]
    assert len(req_id) == 8  # uuid4().hex[:8]


def test_request_id_unique_per_request(client):
    """Each request gets a distinct ID."""
    id1 = client.get("/health").headers["X-Request-ID"]
    id2 = client.get("/health").headers["X-Request-ID"]
    assert id1 != id2


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "timestamp" in data


def test_index_lists_endpoints(client):
    data = client.get("/").json()
    assert data["endpoints"]["rfps"] == "/api/rfps"
    assert "version" in data


def test_404_uses_envelope_and_request_id(client):
    resp = client.get("/nonexistent-route-xyz")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Not Found"}
    assert "X-Request-ID" in resp.headers


def test_bad_path_param_is_400(client):
    resp = client.get("/api/rfps/not-a-number")
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["details"][0]["field"] == "path.rfp_id"


def test_unhandled_error_is_generic_500(client):
    from rfpflow.main import app

    @app.get("/_test/boom")
    async def boom():
        raise RuntimeError("secret internals")

    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.get("/_test/boom")
    finally:
        app.router.routes[:] = [r for r in app.router.routes if getattr(r, "path", "") != "/_test/boom"]
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Internal server error"}


def test_lifespan_sets_state(client):
    from rfpflow.main import app

    assert app.state.database is not None
    assert app.state.extractor.name == "heuristic"
    assert app.state.mailer is not None
