"""Tests for platform connection status and post removal."""

from __future__ import annotations

import requests


def test_connections_report_every_adapter(client, login):
    _, headers = login("VIEWER")

    response = client.get("/api/v1/social/connections", headers=headers)

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert set(data) == {"twitter", "linkedin", "instagram", "email"}
    assert data["twitter"] == {"connected": False, "platform": "twitter", "error": "Not configured"}


def test_connections_include_account_details(client, login, install_adapters, fake_adapter):
    install_adapters(fake_adapter("linkedin"))
    _, headers = login("VIEWER")

    data = client.get("/api/v1/social/connections", headers=headers).get_json()["data"]

    assert data == {
        "linkedin": {"connected": True, "platform": "linkedin", "identity": "linkedin-account"}
    }


def test_delete_post_marks_publication_deleted(
    client, login, content_factory, install_adapters, fake_adapter
):
    from backend.app.models.publishing import PublishingRecord

    twitter = install_adapters(fake_adapter("twitter"))["twitter"]
    _, headers = login("MANAGER")
    content = content_factory()
    client.post(
        f"/api/v1/content/{content.id}/publish", json={"platforms": ["twitter"]}, headers=headers
    )

    response = client.delete("/api/v1/social/twitter/posts/twitter-1", headers=headers)

    assert response.status_code == 200
    assert response.get_json()["data"]["success"] is True
    assert twitter.deleted == ["twitter-1"]
    record = PublishingRecord.query.filter_by(post_id="twitter-1").one()
    assert record.deleted_at is not None


def test_delete_errors(client, login, install_adapters, fake_adapter):
    install_adapters(
        fake_adapter("email", supports_delete=False),
        fake_adapter("linkedin", raises=requests.ConnectionError("timed out")),
    )
    _, headers = login("ADMIN")

    unknown = client.delete("/api/v1/social/myspace/posts/1", headers=headers)
    assert unknown.status_code == 404
    assert unknown.get_json()["errorCode"] == "PLATFORM_NOT_SUPPORTED"

    unsupported = client.delete("/api/v1/social/email/posts/1", headers=headers)
    assert unsupported.status_code == 422
    assert unsupported.get_json()["errorCode"] == "DELETE_NOT_SUPPORTED"

    upstream = client.delete("/api/v1/social/linkedin/posts/1", headers=headers)
    assert upstream.status_code == 502
    assert upstream.get_json() == {
        "status": "error",
        "error": "timed out",
        "errorCode": "UPSTREAM_ERROR",
    }


def test_editors_cannot_delete_posts(client, login):
    _, headers = login("EDITOR")

    response = client.delete("/api/v1/social/twitter/posts/1", headers=headers)

    assert response.status_code == 403
