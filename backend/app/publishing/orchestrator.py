"""Fan-out of one content item to several publishing platforms."""
from __future__ import annotations

import json
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from flask import current_app
from sqlalchemy import update

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models.content import ContentItem
from ..models.publishing import PublishingRecord, ScheduledPublication
from ..utils.clock import utcnow
from ..workflow.notifications import record_activity
from .adapters import PlatformAdapter, PublishOutcome, get_adapters
from .formatter import format_content


def normalize_platforms(value: Any) -> list[str]:
    """Validate a platform list, lower-casing and de-duplicating entries."""

    if not isinstance(value, (list, tuple)) or not value:
        raise ValidationError("platforms must be a non-empty list of strings")
    platforms: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError("platforms must be a non-empty list of strings")
        platforms.append(item.strip().lower())
    return list(dict.fromkeys(platforms))


def _platform_options(options: Mapping[str, Any], platform: str) -> dict[str, Any]:
    value = options.get(platform)
    return dict(value) if isinstance(value, Mapping) else {}


def get_content_or_404(content_id: Any) -> ContentItem:
    content = db.session.get(ContentItem, content_id) if content_id is not None else None
    if content is None:
        raise NotFoundError("Content not found")
    return content


def _supersede_pending_schedules(content_id: int) -> int:
    """Cancel scheduled publications made redundant by a successful publish."""

    result = db.session.execute(
        update(ScheduledPublication)
        .where(
            ScheduledPublication.content_id == content_id,
            ScheduledPublication.status == "PENDING",
        )
        .values(
            status="CANCELLED",
            finished_at=utcnow(),
            result_json=json.dumps({"superseded": True}),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _collect(platform: str, future: Future) -> PublishOutcome:
    try:
        return future.result()
    except Exception as exc:
        current_app.logger.exception("Adapter for %s raised while publishing", platform)
        return PublishOutcome(
            success=False, platform=platform, error=str(exc) or exc.__class__.__name__
        )


def publish_content(
    content_id: Any,
    platforms: Any,
    options: Mapping[str, Any] | None = None,
    *,
    actor_id: int | None = None,
) -> dict[str, Any]:
    """Publish a content item to every requested platform.

    Each platform is attempted independently; a failure on one platform is
    reported in its own result slot and never stops the others. Raises only
    when the content item does not exist or no requested platform is
    supported.
    """

    options = options or {}
    requested = normalize_platforms(platforms)
    content = get_content_or_404(content_id)

    adapters: dict[str, PlatformAdapter] = get_adapters()
    supported = [platform for platform in requested if platform in adapters]
    if not supported:
        raise ValidationError("No supported platforms requested", "NO_VALID_PLATFORMS")

    media_urls = content.media_urls
    texts = {
        platform: format_content(content, platform, _platform_options(options, platform))
        for platform in supported
    }

    max_workers = max(1, min(len(supported), int(current_app.config.get("PUBLISH_MAX_WORKERS", 4))))
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="publish") as executor:
        futures = {
            platform: executor.submit(
                adapters[platform].publish,
                texts[platform],
                media_urls,
                _platform_options(options, platform),
            )
            for platform in supported
        }
        outcomes = {platform: _collect(platform, future) for platform, future in futures.items()}

    results: dict[str, dict[str, Any]] = {}
    summary = {"successful": 0, "failed": 0, "skipped": 0}
    now = utcnow()
    for platform in requested:
        outcome = outcomes.get(platform)
        if outcome is None:
            results[platform] = {
                "success": False,
                "platform": platform,
                "skipped": True,
                "error": "Platform not supported",
            }
            summary["skipped"] += 1
            continue

        results[platform] = outcome.to_dict()
        if outcome.success:
            summary["successful"] += 1
            db.session.add(
                PublishingRecord(
                    content_id=content.id,
                    platform=platform,
                    post_id=outcome.post_id,
                    url=outcome.url,
                    mock=outcome.mock,
                    published_at=now,
                )
            )
        else:
            summary["failed"] += 1

    if summary["successful"] > 0:
        content.status = "PUBLISHED"
        content.published_at = now
        content.scheduled_at = None
        superseded = _supersede_pending_schedules(content.id)
        if superseded:
            current_app.logger.info(
                "Cancelled %s pending scheduled publication(s) of content %s", superseded, content.id
            )

    record_activity(
        "CONTENT_PUBLISHED" if summary["successful"] else "CONTENT_PUBLISH_FAILED",
        actor_id,
        content.id,
        {"platforms": requested, "summary": summary},
    )
    db.session.commit()

    current_app.logger.info(
        "Published content %s: %s successful, %s failed, %s skipped",
        content.id,
        summary["successful"],
        summary["failed"],
        summary["skipped"],
    )

    return {
        "contentId": content.id,
        "title": content.title,
        "status": content.status,
        "platforms": results,
        "summary": summary,
        "partial": summary["successful"] > 0 and (summary["failed"] + summary["skipped"]) > 0,
    }
