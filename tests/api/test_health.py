"""Tests for the /health endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, cast

from fastapi.testclient import TestClient

from tests.mocks.app_env import use_stub_hosts
from tests.mocks.fetch_stubs import StubTransport
from wpcommit.api.app import create_app

if TYPE_CHECKING:
    import pytest


def test_get_health_returns_ok(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure GET /health returns 200 and deterministic schema."""
    use_stub_hosts(monkeypatch)
    app = create_app()
    app.state.fetch_transport = StubTransport()

    with TestClient(app) as client:
        response = client.get("/health")

    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    data = cast("dict[str, object]", response.json())
    if data["status"] != "ok":
        raise AssertionError
    if "timestamp" not in data:
        raise AssertionError
    if data["enabled"] is not True:
        raise AssertionError
    if data["cache_entries"] != 0:
        raise AssertionError


def test_health_reports_cache_growth(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure resolved references show up in cache occupancy."""
    use_stub_hosts(monkeypatch)
    transport = StubTransport()
    transport.add_ticket(100, "Fix bug in widgets")
    app = create_app()
    app.state.fetch_transport = transport

    with TestClient(app) as client:
        _ = client.post("/annotate", json={"message": "Widgets: Fix.\n\nSee #100."})
        response = client.get("/health")

    data = cast("dict[str, object]", response.json())
    if data["cache_entries"] != 1:
        raise AssertionError


def test_health_openapi_schema_is_explicit_and_stable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Ensure /health response schema is explicit in OpenAPI components."""
    use_stub_hosts(monkeypatch)
    app = create_app()
    app.state.fetch_transport = StubTransport()

    with TestClient(app) as client:
        response = client.get("/openapi.json")
    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    openapi = cast("dict[str, object]", response.json())

    components = cast("dict[str, object]", openapi["components"])
    schemas = cast("dict[str, object]", components["schemas"])
    health_schema = cast("dict[str, object]", schemas["HealthResponse"])
    required = cast("list[str]", health_schema.get("required"))
    if sorted(required) != ["cache_entries", "enabled", "status", "timestamp"]:
        raise AssertionError
