"""Durable scheduled publishing backed by the ``scheduled_publications`` table."""
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from flask import Flask
from sqlalchemy import update

from ..errors import ApiError, NotFoundError, ValidationError
from ..extensions import db
from ..models.content import ContentItem
from ..models.publishing import ScheduledPublication
from ..utils.clock import isoformat, parse_timestamp, utcnow
from ..workflow.notifications import record_activity
from .adapters import get_adapters
from .orchestrator import get_content_or_404, normalize_platforms, publish_content

logger = logging.getLogger(__name__)


def schedule_publication(
    content_id: Any,
    platforms: Any,
    scheduled_time: Any,
    options: Mapping[str, Any] | None = None,
    *,
    actor_id: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Validate and persist a publish request that fires at ``scheduled_time``."""

    requested = normalize_platforms(platforms)
    due_at = parse_timestamp(scheduled_time)
    if due_at is None:
        raise ValidationError("scheduledTime must be an ISO-8601 timestamp")
    if due_at <= (now or utcnow()):
        raise ValidationError("Scheduled time must be in the future")
    if options is not None and not isinstance(options, Mapping):
        raise ValidationError("options must be an object")

    content = get_content_or_404(content_id)
    adapters = get_adapters()
    if not any(platform in adapters for platform in requested):
        raise ValidationError("No supported platforms requested", "NO_VALID_PLATFORMS")

    previous_status = content.status
    if previous_status == "SCHEDULED":
        earlier = (
            ScheduledPublication.query.filter_by(content_id=content.id, status="PENDING")
            .order_by(ScheduledPublication.id.asc())
            .first()
        )
        previous_status = earlier.previous_content_status if earlier else "APPROVED"

    job = ScheduledPublication(
        content_id=content.id,
        platforms_json=json.dumps(requested),
        options_json=json.dumps(dict(options or {})),
        due_at=due_at,
        previous_content_status=previous_status,
        created_by=actor_id,
    )
    db.session.add(job)
    content.status = "SCHEDULED"
    content.scheduled_at = due_at
    record_activity(
        "CONTENT_SCHEDULED",
        actor_id,
        content.id,
        {"platforms": requested, "scheduledAt": isoformat(due_at)},
    )
    db.session.commit()
    logger.info("Scheduled content %s for %s on %s", content.id, isoformat(due_at), requested)

    return {
        "scheduleId": job.id,
        "contentId": content.id,
        "scheduledAt": isoformat(due_at),
        "platforms": requested,
        "message": f"Content scheduled for {isoformat(due_at)}",
    }


def cancel_scheduled(content_id: Any, *, actor_id: int | None = None) -> dict[str, Any]:
    """Cancel every pending scheduled publication of a content item."""

    content = get_content_or_404(content_id)
    jobs = (
        ScheduledPublication.query.filter_by(content_id=content.id, status="PENDING")
        .order_by(ScheduledPublication.id.asc())
        .all()
    )
    if not jobs:
        raise NotFoundError("No pending scheduled publication for this content")

    restored_status = jobs[0].previous_content_status or "APPROVED"
    cancelled: list[int] = []
    for job in jobs:
        result = db.session.execute(
            update(ScheduledPublication)
            .where(ScheduledPublication.id == job.id, ScheduledPublication.status == "PENDING")
            .values(status="CANCELLED", finished_at=utcnow())
        )
        if result.rowcount == 1:
            cancelled.append(job.id)

    if cancelled and content.status == "SCHEDULED":
        content.status = restored_status
        content.scheduled_at = None
    record_activity("SCHEDULE_CANCELLED", actor_id, content.id, {"scheduleIds": cancelled})
    db.session.commit()

    return {"contentId": content.id, "cancelled": cancelled, "status": content.status}


def _finish(job_id: int, status: str, result: dict[str, Any]) -> None:
    db.session.execute(
        update(ScheduledPublication)
        .where(ScheduledPublication.id == job_id)
        .values(status=status, result_json=json.dumps(result), finished_at=utcnow())
    )
    db.session.commit()


def _restore_unpublished_content(job_id: int) -> None:
    job = db.session.get(ScheduledPublication, job_id)
    content = db.session.get(ContentItem, job.content_id)
    still_pending = ScheduledPublication.query.filter_by(
        content_id=job.content_id, status="PENDING"
    ).count()
    if content is not None and content.status == "SCHEDULED" and not still_pending:
        content.status = job.previous_content_status or "APPROVED"
        content.scheduled_at = None
        db.session.commit()


def run_due_publications(now: datetime | None = None, limit: int = 20) -> list[int]:
    """Run every pending publication whose due time has passed.

    A job is claimed with a conditional ``PENDING -> RUNNING`` update before
    it runs, so concurrent pollers never run the same job twice.
    """

    now = now or utcnow()
    due_ids = [
        row.id
        for row in db.session.query(ScheduledPublication.id)
        .filter(ScheduledPublication.status == "PENDING", ScheduledPublication.due_at <= now)
        .order_by(ScheduledPublication.due_at.asc(), ScheduledPublication.id.asc())
        .limit(limit)
        .all()
    ]

    processed: list[int] = []
    for job_id in due_ids:
        claim = db.session.execute(
            update(ScheduledPublication)
            .where(ScheduledPublication.id == job_id, ScheduledPublication.status == "PENDING")
            .values(status="RUNNING", started_at=utcnow())
        )
        db.session.commit()
        if claim.rowcount != 1:
            continue

        job = db.session.get(ScheduledPublication, job_id)
        platforms = json.loads(job.platforms_json)
        options = json.loads(job.options_json or "{}")
        logger.info("Publishing scheduled content %s (job %s)", job.content_id, job_id)

        try:
            result = publish_content(job.content_id, platforms, options, actor_id=job.created_by)
        except ApiError as exc:
            db.session.rollback()
            logger.warning("Scheduled job %s failed: %s", job_id, exc.message)
            _finish(job_id, "FAILED", {"error": exc.message, "errorCode": exc.error_code})
            _restore_unpublished_content(job_id)
        except Exception as exc:
            db.session.rollback()
            logger.exception("Scheduled job %s raised", job_id)
            _finish(job_id, "FAILED", {"error": str(exc) or exc.__class__.__name__})
            _restore_unpublished_content(job_id)
        else:
            _finish(job_id, "DONE", result)
            if result["summary"]["successful"] == 0:
                _restore_unpublished_content(job_id)
        processed.append(job_id)

    return processed


def recover_interrupted_publications() -> int:
    """Mark jobs left RUNNING by a previous process as failed instead of re-running them."""

    result = db.session.execute(
        update(ScheduledPublication)
        .where(ScheduledPublication.status == "RUNNING")
        .values(
            status="FAILED",
            finished_at=utcnow(),
            result_json=json.dumps({"error": "Interrupted before completion; not retried"}),
        )
    )
    db.session.commit()
    if result.rowcount:
        logger.warning("Marked %s interrupted scheduled publication(s) as failed", result.rowcount)
    return result.rowcount


class SchedulerWorker:
    """Background thread polling for due scheduled publications."""

    def __init__(self, app: Flask, interval: float) -> None:
        self.app = app
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="publish-scheduler", daemon=True)

    def start(self) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout)

    def _run(self) -> None:
        with self.app.app_context():
            try:
                recover_interrupted_publications()
            except Exception:  # pragma: no cover - depends on database availability
                logger.exception("Could not recover interrupted scheduled publications")
                db.session.rollback()
            finally:
                db.session.remove()

        while not self._stop.wait(self.interval):
            with self.app.app_context():
                try:
                    run_due_publications()
                except Exception:  # pragma: no cover - keeps the poller alive
                    logger.exception("Scheduled publication poll failed")
                    db.session.rollback()
                finally:
                    db.session.remove()


_worker_instance: SchedulerWorker | None = None
_worker_lock = threading.Lock()


def ensure_scheduler_started(app: Flask) -> SchedulerWorker:
    """Ensure the scheduled-publication worker is running for the given Flask app."""
    global _worker_instance
    with _worker_lock:
        if _worker_instance is None:
            interval = float(app.config.get("SCHEDULER_POLL_INTERVAL", 15))
            _worker_instance = SchedulerWorker(app, interval)
            _worker_instance.start()
    return _worker_instance
