"""Authentication and authorization tests for the API."""

from __future__ import annotations


def test_token_issuance_and_listing(client, login, user_factory):
    _, admin_headers = login("ADMIN")
    viewer = user_factory("VIEWER")

    response = client.post(
        "/api/v1/auth/tokens",
        json={"name": "Viewer Token", "userId": viewer.id},
        headers=admin_headers,
    )
    assert response.status_code == 201
    created = response.get_json()["data"]
    assert created["role"] == "VIEWER"
    assert created["userId"] == viewer.id
    assert created["token"]

    list_response = client.get("/api/v1/auth/tokens", headers=admin_headers)
    assert list_response.status_code == 200
    tokens = list_response.get_json()["data"]
    stored = next(token for token in tokens if token["id"] == created["id"])
    assert "token" not in stored
    assert stored["revokedAt"] is None

    issued_headers = {"Authorization": f"Bearer {created['token']}"}
    assert client.get("/api/v1/notifications", headers=issued_headers).status_code == 200


def test_token_issuance_validates_payload(client, login):
    _, admin_headers = login("ADMIN")

    missing_name = client.post("/api/v1/auth/tokens", json={"userId": 1}, headers=admin_headers)
    assert missing_name.status_code == 400

    unknown_user = client.post(
        "/api/v1/auth/tokens", json={"name": "Ghost", "userId": 9999}, headers=admin_headers
    )
    assert unknown_user.status_code == 404
    assert unknown_user.get_json()["status"] == "fail"


def test_missing_and_invalid_tokens_are_rejected(client):
    missing = client.get("/api/v1/workflows/pending")
    assert missing.status_code == 401
    assert missing.headers["WWW-Authenticate"] == "Bearer"
    assert missing.get_json() == {
        "status": "fail",
        "error": "missing bearer token",
        "errorCode": "UNAUTHORIZED",
    }

    invalid = client.get(
        "/api/v1/workflows/pending", headers={"Authorization": "Bearer not-a-token"}
    )
    assert invalid.status_code == 401


def test_revoked_token_is_rejected(client, login):
    _, admin_headers = login("ADMIN")
    _, editor_headers = login("EDITOR")

    tokens = client.get("/api/v1/auth/tokens", headers=admin_headers).get_json()["data"]
    editor_token = next(token for token in tokens if token["role"] == "EDITOR")

    revoke = client.delete(f"/api/v1/auth/tokens/{editor_token['id']}", headers=admin_headers)
    assert revoke.status_code == 204

    response = client.get("/api/v1/workflows/pending", headers=editor_headers)
    assert response.status_code == 401
    assert response.get_json()["error"] == "token revoked"


def test_access_control_for_roles(client, login):
    _, viewer_headers = login("VIEWER")

    assert client.get("/api/v1/workflows/templates", headers=viewer_headers).status_code == 200

    create_response = client.post(
        "/api/v1/workflows/templates",
        json={"name": "Limited", "stages": []},
        headers=viewer_headers,
    )
    assert create_response.status_code == 403
    assert create_response.get_json()["errorCode"] == "FORBIDDEN"

    token_response = client.get("/api/v1/auth/tokens", headers=viewer_headers)
    assert token_response.status_code == 403
