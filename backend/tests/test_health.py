"""Tests for the healthcheck endpoint."""

from __future__ import annotations

from app import Config, create_app


class TestConfig(Config):
    """Configuration used during testing."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    ENABLE_SCHEDULER = False
    CORS_ALLOWED_ORIGINS = "http://localhost:3000"


def create_test_app():
    """Create an application instance configured for tests."""

    return create_app(TestConfig)


def test_health_endpoint_returns_ok():
    """The healthcheck endpoint should return a JSON payload with status ok."""

    app = create_test_app()
    client = app.test_client()

    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": "ok"}


def test_unknown_route_uses_error_envelope():
    app = create_test_app()
    client = app.test_client()

    response = client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    payload = response.get_json()
    assert payload["status"] == "fail"
    assert payload["errorCode"] == "NOT_FOUND"


def test_cors_headers_for_allowed_origin():
    app = create_test_app()
    client = app.test_client()

    response = client.get("/api/v1/health", headers={"Origin": "http://localhost:3000"})

    assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
