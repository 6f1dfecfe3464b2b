"""Users and the API tokens that authenticate them."""

from __future__ import annotations

from ..extensions import db
from ..utils.clock import utcnow

USER_ROLES = ("ADMIN", "MANAGER", "EDITOR", "CONTRIBUTOR", "VIEWER")


class User(db.Model):
    """A person who authors, reviews or approves content."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(db.String(20), nullable=False, default="CONTRIBUTOR", index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<User {self.email!r} {self.role}>"


class ApiToken(db.Model):
    """API token used for authenticating requests on behalf of a user."""

    __tablename__ = "api_tokens"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    revoked_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship(User, lazy="joined")

    def is_active(self) -> bool:
        """Return whether the token is still active."""

        return self.revoked_at is None
