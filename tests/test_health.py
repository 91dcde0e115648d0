"""Tests for the application lifespan and health endpoints."""

import pytest
from fastapi.testclient import TestClient

from main import SERVICE_NAME, create_app
from services.base import ConnectionState, DatastoreStartupError

SOURCE = {"DATABASE_URL": "postgresql://localhost/app"}


def test_lifespan_starts_and_stops_all_datastores(make_manager, calls) -> None:
    manager = make_manager()
    app = create_app(datastores=manager, config_source=SOURCE)

    with TestClient(app) as client:
        assert client.app.state.datastores is manager
        assert [name for call, name in calls if call == "initialize"] == [
            "postgres",
            "redis",
            "neo4j",
            "elasticsearch",
        ]
        response = client.get("/")

    assert response.json()["service"] == SERVICE_NAME
    for service in manager.services:
        assert service.disconnect_count() == 1
        assert service.state is ConnectionState.CLOSED


def test_liveness(make_manager) -> None:
    with TestClient(create_app(datastores=make_manager(), config_source=SOURCE)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_all_ready(make_manager) -> None:
    with TestClient(create_app(datastores=make_manager(), config_source=SOURCE)) as client:
        response = client.get("/health/ready")

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "ready"
    assert set(body["checks"]) == {"postgres", "redis", "neo4j", "elasticsearch"}
    assert body["checks"]["postgres"] == {
        "state": "ready",
        "critical": True,
        "healthy": True,
        "error": None,
    }


def test_readiness_reports_degraded_search(make_manager) -> None:
    manager = make_manager(elasticsearch={"connect_error": ValueError("bad node URL")})

    with TestClient(create_app(datastores=manager, config_source=SOURCE)) as client:
        response = client.get("/health/ready")

    body = response.json()
    assert response.status_code == 503
    assert body["status"] == "degraded"
    assert body["checks"]["elasticsearch"]["state"] == "failed"
    assert body["checks"]["elasticsearch"]["error"] == "ValueError: bad node URL"
    assert body["checks"]["redis"]["state"] == "ready"


def test_readiness_reports_recovered_cache(make_manager) -> None:
    manager = make_manager(redis={"outcome": ConnectionState.DEGRADED})

    with TestClient(create_app(datastores=manager, config_source=SOURCE)) as client:
        assert manager.status()["redis"] == "degraded"
        response = client.get("/health/ready")

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "ready"
    assert body["checks"]["redis"]["state"] == "ready"
    assert body["checks"]["redis"]["healthy"] is True


def test_readiness_runs_live_check_on_critical_backend(make_manager) -> None:
    manager = make_manager(postgres={"healthy": False})

    with TestClient(create_app(datastores=manager, config_source=SOURCE)) as client:
        response = client.get("/health/ready")

    body = response.json()
    assert response.status_code == 503
    assert body["status"] == "degraded"
    assert body["checks"]["postgres"]["state"] == "ready"
    assert body["checks"]["postgres"]["healthy"] is False


def test_critical_failure_prevents_startup(make_manager, calls) -> None:
    manager = make_manager(postgres={"connect_error": OSError("connection refused")})
    app = create_app(datastores=manager, config_source=SOURCE)

    with pytest.raises(DatastoreStartupError):
        with TestClient(app):
            pass

    assert [name for call, name in calls if call == "initialize"] == ["postgres"]
