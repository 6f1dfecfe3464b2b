"""Tests for publishing content to several platforms at once."""

from __future__ import annotations

from backend.app.extensions import db


def _publish(client, content_id, headers, platforms, options=None):
    payload = {"platforms": platforms}
    if options is not None:
        payload["options"] = options
    return client.post(f"/api/v1/content/{content_id}/publish", json=payload, headers=headers)


def test_partial_success_marks_content_published(client, login, content_factory):
    from backend.app.models.content import ContentItem
    from backend.app.models.publishing import PublishingRecord

    _, headers = login("EDITOR")
    content = content_factory(status="APPROVED")

    response = _publish(client, content.id, headers, ["twitter", "instagram"])

    assert response.status_code == 200
    result = response.get_json()["data"]
    assert result["summary"] == {"successful": 1, "failed": 1, "skipped": 0}
    assert result["status"] == "PUBLISHED"
    assert result["partial"] is True
    assert result["platforms"]["twitter"]["success"] is True
    assert result["platforms"]["twitter"]["mock"] is True
    assert result["platforms"]["instagram"]["success"] is False
    assert result["platforms"]["instagram"]["error"] == "Instagram requires at least one image"

    stored = db.session.get(ContentItem, content.id)
    assert stored.status == "PUBLISHED"
    assert stored.published_at is not None
    records = PublishingRecord.query.filter_by(content_id=content.id).all()
    assert [record.platform for record in records] == ["twitter"]
    assert records[0].mock is True


def test_failure_on_one_platform_does_not_block_others(
    client, login, content_factory, install_adapters, fake_adapter
):
    twitter = fake_adapter("twitter")
    linkedin = fake_adapter("linkedin", raises=RuntimeError("adapter crashed"))
    email = fake_adapter("email", error="Mailbox unavailable")
    install_adapters(twitter, linkedin, email)
    _, headers = login("ADMIN")
    content = content_factory()

    response = _publish(client, content.id, headers, ["twitter", "linkedin", "email"])

    assert response.status_code == 200
    result = response.get_json()["data"]
    assert result["summary"] == {"successful": 1, "failed": 2, "skipped": 0}
    assert result["platforms"]["linkedin"] == {
        "success": False,
        "platform": "linkedin",
        "error": "adapter crashed",
    }
    assert result["platforms"]["email"]["error"] == "Mailbox unavailable"
    assert result["platforms"]["twitter"]["postId"] == "twitter-1"
    assert len(twitter.published) == 1
    assert len(email.published) == 1


def test_each_platform_receives_its_own_formatting(
    client, login, content_factory, install_adapters, fake_adapter
):
    twitter = fake_adapter("twitter")
    linkedin = fake_adapter("linkedin")
    install_adapters(twitter, linkedin)
    _, headers = login("MANAGER")
    content = content_factory(title="Title", body="Body", brand_pillar=None)

    response = _publish(
        client, content.id, headers, ["Twitter", "linkedin", "twitter"], {"linkedin": {"includeHashtags": False}}
    )

    assert response.status_code == 200
    assert list(response.get_json()["data"]["platforms"]) == ["twitter", "linkedin"]
    assert twitter.published == ["Title\n\nBody\n\n#Trading #TradeKeep"]
    assert linkedin.published == ["Title\n\nBody"]


def test_unsupported_platforms_are_skipped(client, login, content_factory):
    _, headers = login("EDITOR")
    content = content_factory()

    response = _publish(client, content.id, headers, ["twitter", "myspace"])

    assert response.status_code == 200
    result = response.get_json()["data"]
    assert result["summary"] == {"successful": 1, "failed": 0, "skipped": 1}
    assert result["platforms"]["myspace"] == {
        "success": False,
        "platform": "myspace",
        "skipped": True,
        "error": "Platform not supported",
    }


def test_all_failures_leave_content_status_untouched(
    client, login, content_factory, install_adapters, fake_adapter
):
    from backend.app.models.activity import Activity
    from backend.app.models.content import ContentItem

    install_adapters(fake_adapter("twitter", error="Duplicate tweet"))
    _, headers = login("EDITOR")
    content = content_factory(status="APPROVED")

    response = _publish(client, content.id, headers, ["twitter"])

    assert response.status_code == 200
    assert response.get_json()["data"]["summary"]["successful"] == 0
    assert db.session.get(ContentItem, content.id).status == "APPROVED"
    activity = Activity.query.filter_by(content_id=content.id).one()
    assert activity.type == "CONTENT_PUBLISH_FAILED"


def test_publish_rejects_invalid_requests(client, login, content_factory):
    _, headers = login("EDITOR")
    content = content_factory()

    unknown = _publish(client, 9999, headers, ["twitter"])
    assert unknown.status_code == 404
    assert unknown.get_json()["error"] == "Content not found"

    no_supported = _publish(client, content.id, headers, ["myspace"])
    assert no_supported.status_code == 400
    assert no_supported.get_json()["errorCode"] == "NO_VALID_PLATFORMS"

    empty = _publish(client, content.id, headers, [])
    assert empty.status_code == 400

    bad_options = _publish(client, content.id, headers, ["twitter"], options=["nope"])
    assert bad_options.status_code == 400


def test_viewers_cannot_publish(client, login, content_factory):
    _, headers = login("VIEWER")
    content = content_factory()

    response = _publish(client, content.id, headers, ["twitter"])

    assert response.status_code == 403


def test_publication_history_lists_records(client, login, content_factory):
    _, headers = login("EDITOR")
    content = content_factory()
    _publish(client, content.id, headers, ["twitter", "linkedin"])

    response = client.get(f"/api/v1/content/{content.id}/publications", headers=headers)

    assert response.status_code == 200
    records = response.get_json()["data"]
    assert {record["platform"] for record in records} == {"twitter", "linkedin"}
    assert all(record["deletedAt"] is None for record in records)
