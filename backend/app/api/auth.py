"""REST endpoints for API token management."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, request

from ..errors import NotFoundError, ValidationError, success
from ..extensions import db
from ..models.auth import ApiToken, User
from ..utils.auth import generate_token, hash_token, require_token
from ..utils.clock import isoformat, utcnow

bp = Blueprint("auth", __name__)


def _serialize(token: ApiToken) -> dict[str, object | None]:
    return {
        "id": token.id,
        "name": token.name,
        "userId": token.user_id,
        "role": token.user.role,
        "createdAt": isoformat(token.created_at),
        "revokedAt": isoformat(token.revoked_at),
    }


@bp.post("/auth/tokens")
@require_token("ADMIN")
def create_token() -> tuple[object, int]:
    payload = request.get_json(force=True, silent=True) or {}
    name = (payload.get("name") or "").strip()
    user_id = payload.get("userId")

    if not name:
        raise ValidationError("name is required")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise ValidationError("userId must be an integer")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    plaintext = generate_token()
    token = ApiToken(name=name, user=user, token_hash=hash_token(plaintext))
    db.session.add(token)
    db.session.commit()

    response_payload = _serialize(token)
    response_payload["token"] = plaintext
    return success(response_payload, HTTPStatus.CREATED)


@bp.get("/auth/tokens")
@require_token("ADMIN")
def list_tokens() -> tuple[object, int]:
    tokens = ApiToken.query.order_by(ApiToken.created_at.desc()).all()
    return success([_serialize(token) for token in tokens])


@bp.delete("/auth/tokens/<int:token_id>")
@require_token("ADMIN")
def revoke_token(token_id: int) -> tuple[object, int]:
    token = db.session.get(ApiToken, token_id)
    if token is None:
        raise NotFoundError("Token not found")
    if token.revoked_at is None:
        token.revoked_at = utcnow()
        db.session.commit()
    return "", HTTPStatus.NO_CONTENT
