from __future__ import annotations

import itertools
import pathlib
import secrets
import sys
from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from sqlalchemy.pool import StaticPool

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_dependencies():
    from app import Config, create_app
    from backend.app.extensions import db
    from backend.app.publishing.adapters import PlatformAdapter, PublishOutcome

    return Config, create_app, db, PlatformAdapter, PublishOutcome


ConfigBase, create_app, db, PlatformAdapter, PublishOutcome = _load_dependencies()


class TestConfig(ConfigBase):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite+pysqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    ENABLE_SCHEDULER = False
    RATELIMIT_ENABLED = False
    ALLOW_MOCK_PUBLISHING = True
    AUTO_PUBLISH_ON_APPROVAL = True
    CORS_ALLOWED_ORIGINS = "http://localhost"
    TWITTER_ACCESS_TOKEN = None
    LINKEDIN_ACCESS_TOKEN = None
    LINKEDIN_PERSON_URN = None
    INSTAGRAM_USER_ID = None
    INSTAGRAM_ACCESS_TOKEN = None
    RESEND_API_KEY = None
    EMAIL_DEFAULT_RECIPIENTS = ""


class FakeAdapter(PlatformAdapter):
    """Configured adapter that records calls instead of talking to a platform."""

    display_name = "Fake"

    def __init__(
        self,
        name: str,
        *,
        error: str | None = None,
        raises: Exception | None = None,
        supports_delete: bool = True,
    ) -> None:
        super().__init__(allow_mock=False)
        self.name = name
        self.display_name = name.title()
        self.error = error
        self.raises = raises
        self.supports_delete = supports_delete
        self.published: list[str] = []
        self.deleted: list[str] = []

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> FakeAdapter:
        raise NotImplementedError

    @property
    def is_configured(self) -> bool:
        return True

    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        self.published.append(text)
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return self.failure(self.error, "UPSTREAM_ERROR")
        post_id = f"{self.name}-{len(self.published)}"
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=post_id,
            url=f"https://example.com/{self.name}/{post_id}",
        )

    def _account_status(self) -> dict[str, Any]:
        return {"identity": f"{self.name}-account"}

    def _delete(self, post_id: str) -> None:
        if self.raises is not None:
            raise self.raises
        self.deleted.append(post_id)


@pytest.fixture(scope="module")
def app():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    ctx.pop()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def cleanup_database(app):
    yield

    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()


@pytest.fixture()
def user_factory(app):
    from backend.app.models.auth import User

    counter = itertools.count(1)

    def factory(role: str = "EDITOR", name: str | None = None) -> User:
        number = next(counter)
        user = User(
            name=name or f"{role.title()} {number}",
            email=f"{role.lower()}-{number}-{secrets.token_hex(4)}@example.com",
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return factory


@pytest.fixture()
def auth_header_factory(app):
    from backend.app.models.auth import ApiToken
    from backend.app.utils.auth import hash_token

    def factory(user) -> dict[str, str]:
        token_value = secrets.token_urlsafe(16)
        db.session.add(
            ApiToken(name=f"Token for {user.name}", user=user, token_hash=hash_token(token_value))
        )
        db.session.commit()
        return {"Authorization": f"Bearer {token_value}"}

    return factory


@pytest.fixture()
def login(user_factory, auth_header_factory):
    """Create a user with ``role`` and return it with matching auth headers."""

    def factory(role: str = "ADMIN", name: str | None = None):
        user = user_factory(role, name)
        return user, auth_header_factory(user)

    return factory


@pytest.fixture()
def content_factory(app):
    from backend.app.models.content import ContentAsset, ContentItem

    def factory(media_urls: Sequence[str] = (), **overrides: Any) -> ContentItem:
        values: dict[str, Any] = {
            "title": "Discipline beats dopamine",
            "body": "Follow the plan you wrote before the market opened.",
            "brand_pillar": "discipline-over-dopamine",
            "status": "DRAFT",
        }
        values.update(overrides)
        content = ContentItem(**values)
        content.assets = [
            ContentAsset(url=url, position=index) for index, url in enumerate(media_urls)
        ]
        db.session.add(content)
        db.session.commit()
        return content

    return factory


@pytest.fixture()
def install_adapters(app):
    """Replace the adapter registry for one test."""

    original = app.extensions["publishing_adapters"]

    def install(*adapters: FakeAdapter) -> dict[str, PlatformAdapter]:
        app.extensions["publishing_adapters"] = {adapter.name: adapter for adapter in adapters}
        return app.extensions["publishing_adapters"]

    yield install

    app.extensions["publishing_adapters"] = original


@pytest.fixture()
def fake_adapter():
    return FakeAdapter
