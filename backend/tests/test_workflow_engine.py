"""Tests for the approval engine beyond what the REST API exposes."""

from __future__ import annotations

import pytest
from sqlalchemy import update

from backend.app.extensions import db


def _template(stage_specs):
    from backend.app.workflow import engine

    stages = [
        {"name": name, "type": "APPROVAL", "assignee_role": role} for name, role in stage_specs
    ]
    return engine.create_template("Review", None, "CONTENT_APPROVAL", stages, None)


def test_concurrent_decision_loses_compare_and_swap(user_factory):
    from backend.app.errors import ConflictError
    from backend.app.models.workflow import Approval, WorkflowInstance
    from backend.app.workflow import engine

    editor = user_factory("EDITOR")
    template = _template([("Review", "EDITOR"), ("Sign-off", "ADMIN")])
    instance = engine.start_workflow(template.id, None, editor)
    stage0 = template.stages[0]

    # Another writer advances the row after this session loaded the instance.
    db.session.execute(
        update(WorkflowInstance)
        .where(WorkflowInstance.id == instance.id)
        .values(current_stage=1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(ConflictError) as excinfo:
        engine.record_decision(instance.id, stage0.id, editor, "APPROVED")

    assert excinfo.value.error_code == "STALE_STAGE"
    assert Approval.query.count() == 0
    refreshed = db.session.get(WorkflowInstance, instance.id)
    assert refreshed.current_stage == 0
    assert refreshed.status == "IN_PROGRESS"


def test_sequential_decisions_advance_exactly_once(user_factory):
    from backend.app.errors import ConflictError
    from backend.app.models.workflow import Approval
    from backend.app.workflow import engine

    first_editor = user_factory("EDITOR")
    second_editor = user_factory("EDITOR")
    template = _template([("Review", "EDITOR"), ("Second review", "EDITOR"), ("Sign-off", "ADMIN")])
    instance = engine.start_workflow(template.id, None, first_editor)
    stage0 = template.stages[0]

    result = engine.record_decision(instance.id, stage0.id, first_editor, "APPROVED")
    assert result.instance.current_stage == 1

    with pytest.raises(ConflictError):
        engine.record_decision(instance.id, stage0.id, second_editor, "APPROVED")

    assert result.instance.current_stage == 1
    assert Approval.query.filter_by(instance_id=instance.id).count() == 1


def test_role_holders_are_resolved_when_notifying(user_factory):
    from backend.app.models.activity import Notification
    from backend.app.workflow import engine

    starter = user_factory("CONTRIBUTOR")
    early_admin = user_factory("ADMIN")
    template = _template([("Review", "EDITOR"), ("Sign-off", "ADMIN")])
    instance = engine.start_workflow(template.id, None, starter)

    editor = user_factory("EDITOR")
    late_admin = user_factory("ADMIN")
    engine.record_decision(instance.id, template.stages[0].id, editor, "APPROVED")

    assert Notification.query.filter_by(user_id=editor.id).count() == 0
    notified = {
        note.user_id for note in Notification.query.filter_by(type="APPROVAL_REQUEST").all()
    }
    assert notified == {early_admin.id, late_admin.id}
    message = Notification.query.filter_by(user_id=late_admin.id).one().message
    assert message == f"{editor.name} requested ADMIN approval for Sign-off"


def test_pending_excludes_decided_and_terminal_instances(user_factory):
    from backend.app.workflow import engine

    editor = user_factory("EDITOR")
    template = _template([("Review", "EDITOR")])
    open_instance = engine.start_workflow(template.id, None, editor)
    closed_instance = engine.start_workflow(template.id, None, editor)

    assert [item.id for item in engine.list_pending(editor)] == [
        open_instance.id,
        closed_instance.id,
    ]

    engine.record_decision(closed_instance.id, template.stages[0].id, editor, "REJECTED")

    assert [item.id for item in engine.list_pending(editor)] == [open_instance.id]
    assert engine.list_pending(user_factory("ADMIN")) == []


def test_activity_log_tracks_workflow_progress(client, login, content_factory):
    from backend.app.workflow import engine

    editor, headers = login("EDITOR")
    template = _template([("Review", "EDITOR")])
    content = content_factory()
    instance = engine.start_workflow(template.id, content.id, editor)
    engine.record_decision(instance.id, template.stages[0].id, editor, "APPROVED")

    response = client.get(f"/api/v1/activities?contentId={content.id}", headers=headers)

    assert response.status_code == 200
    types = [entry["type"] for entry in response.get_json()["data"]]
    assert types[0] == "WORKFLOW_COMPLETED"
    assert types[-1] == "WORKFLOW_STARTED"


def test_parallel_decisions_on_shared_database_advance_once(tmp_path):
    import threading

    from sqlalchemy.exc import OperationalError

    from app import Config, create_app
    from backend.app.errors import ConflictError
    from backend.app.models.auth import User
    from backend.app.models.workflow import Approval, WorkflowInstance
    from backend.app.workflow import engine

    class FileDatabaseConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'decisions.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 10, "check_same_thread": False}}
        ENABLE_SCHEDULER = False
        AUTO_PUBLISH_ON_APPROVAL = False

    file_app = create_app(FileDatabaseConfig)
    with file_app.app_context():
        editors = [
            User(name=f"Editor {index}", email=f"editor{index}@example.com", role="EDITOR")
            for index in range(2)
        ]
        db.session.add_all(editors)
        db.session.commit()
        template = _template([("Review", "EDITOR"), ("Sign-off", "ADMIN")])
        instance = engine.start_workflow(template.id, None, editors[0])
        instance_id, stage_id = instance.id, template.stages[0].id
        editor_ids = [editor.id for editor in editors]
        db.session.remove()

    barrier = threading.Barrier(len(editor_ids))
    outcomes: dict[int, object] = {}

    def decide(user_id: int) -> None:
        with file_app.app_context():
            try:
                user = db.session.get(User, user_id)
                barrier.wait(timeout=10)
                engine.record_decision(instance_id, stage_id, user, "APPROVED")
                outcomes[user_id] = "advanced"
            except (ConflictError, OperationalError) as exc:
                db.session.rollback()
                outcomes[user_id] = exc
            finally:
                db.session.remove()

    threads = [threading.Thread(target=decide, args=(user_id,)) for user_id in editor_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == sorted(editor_ids)
    assert list(outcomes.values()).count("advanced") == 1
    with file_app.app_context():
        stored = db.session.get(WorkflowInstance, instance_id)
        assert stored.current_stage == 1
        assert stored.status == "IN_PROGRESS"
        assert Approval.query.filter_by(instance_id=instance_id).count() == 1
        db.session.remove()
        db.engine.dispose()
