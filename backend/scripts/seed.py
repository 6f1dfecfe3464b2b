"""Seed the database with one user per role, their tokens and a default approval workflow."""
from __future__ import annotations

import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app import create_app
from backend.app.extensions import db
from backend.app.models.auth import USER_ROLES, ApiToken, User
from backend.app.models.workflow import StageDefinition, WorkflowTemplate
from backend.app.utils.auth import generate_token, hash_token

EXAMPLE_WORKFLOW_NAME = "Content Approval"
EXAMPLE_STAGES = (
    ("Editorial Review", "EDITOR"),
    ("Final Approval", "ADMIN"),
)


def _ensure_user(role: str) -> tuple[User, bool]:
    """Create the seed user for ``role`` if it does not exist yet."""

    email = f"{role.lower()}@tradekeep.com"
    user = User.query.filter_by(email=email).first()
    if user is not None:
        return user, False
    user = User(name=f"{role.title()} User", email=email, role=role)
    db.session.add(user)
    db.session.flush()
    return user, True


def _issue_token(user: User) -> str:
    plaintext = generate_token()
    db.session.add(ApiToken(name="seed", user=user, token_hash=hash_token(plaintext)))
    return plaintext


def _ensure_example_workflow(created_by: int) -> bool:
    if WorkflowTemplate.query.filter_by(name=EXAMPLE_WORKFLOW_NAME).first() is not None:
        return False

    template = WorkflowTemplate(
        name=EXAMPLE_WORKFLOW_NAME,
        description="Editorial review followed by final sign-off",
        type="CONTENT_APPROVAL",
        created_by=created_by,
    )
    template.stages = [
        StageDefinition(name=name, order=index, type="APPROVAL", assignee_role=role)
        for index, (name, role) in enumerate(EXAMPLE_STAGES)
    ]
    db.session.add(template)
    return True


def main() -> None:
    app = create_app()
    with app.app_context():
        tokens: dict[str, str] = {}
        created_users = 0
        admin_id = None
        for role in USER_ROLES:
            user, created = _ensure_user(role)
            created_users += int(created)
            if created:
                tokens[user.email] = _issue_token(user)
            if role == "ADMIN":
                admin_id = user.id

        created_workflow = _ensure_example_workflow(admin_id)
        db.session.commit()

        print(
            "Seed completed",
            f"users created={created_users}",
            f"workflows created={int(created_workflow)}",
        )
        for email, token in tokens.items():
            print(f"  {email}: {token}")


if __name__ == "__main__":
    main()
