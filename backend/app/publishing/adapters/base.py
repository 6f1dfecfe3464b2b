"""Shared behaviour for platform adapters."""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import requests

from ...errors import UnprocessableError

logger = logging.getLogger(__name__)


class DeleteNotSupportedError(UnprocessableError):
    """Raised when a platform cannot remove published posts."""

    def __init__(self, platform: str) -> None:
        super().__init__(
            f"Delete not supported for platform {platform}", error_code="DELETE_NOT_SUPPORTED"
        )


@dataclass
class PublishOutcome:
    """Result of a single adapter call."""

    success: bool
    platform: str
    post_id: str | None = None
    url: str | None = None
    error: str | None = None
    error_code: str | None = None
    message: str | None = None
    mock: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "platform": self.platform}
        if self.post_id is not None:
            payload["postId"] = self.post_id
        if self.url is not None:
            payload["url"] = self.url
        if self.message is not None:
            payload["message"] = self.message
        if self.error is not None:
            payload["error"] = self.error
        if self.error_code is not None:
            payload["errorCode"] = self.error_code
        if self.mock:
            payload["mock"] = True
        return payload


def describe_request_error(exc: requests.RequestException) -> str:
    """Extract the most useful message from a failed HTTP call."""

    response = getattr(exc, "response", None)
    if response is not None:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
            for key in ("message", "detail", "title"):
                if isinstance(data.get(key), str):
                    return data[key]
        return f"HTTP {response.status_code}"
    return str(exc) or exc.__class__.__name__


class PlatformAdapter(ABC):
    """Uniform interface to one external publishing channel."""

    name: str = ""
    display_name: str = ""
    supports_delete: bool = True

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        allow_mock: bool = False,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.allow_mock = allow_mock
        self.session = session or requests.Session()

    @classmethod
    @abstractmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> PlatformAdapter:
        """Build the adapter from application configuration."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials for the platform are present."""

    @abstractmethod
    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        """Transmit a post; may raise :class:`requests.RequestException`."""

    @abstractmethod
    def _account_status(self) -> dict[str, Any]:
        """Return identity details for the connected account."""

    def _delete(self, post_id: str) -> None:
        raise DeleteNotSupportedError(self.name)

    def post_url(self, post_id: str) -> str | None:
        return None

    def validate(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> str | None:
        """Return an error message when the post cannot be sent."""

        return None

    def publish(
        self,
        text: str,
        media_urls: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> PublishOutcome:
        """Validate and transmit one post, never raising for upstream failures."""

        media = list(media_urls or [])
        options = options or {}

        problem = self.validate(text, media, options)
        if problem is not None:
            logger.info("%s post rejected before sending: %s", self.name, problem)
            return self.failure(problem, "VALIDATION_FAILED")

        if not self.is_configured:
            if self.allow_mock:
                return self.mock_publish(text, media)
            logger.warning("%s publish attempted without credentials", self.name)
            return self.failure(f"{self.display_name} API is not configured", "NOT_CONFIGURED")

        try:
            outcome = self._publish(text, media, options)
        except requests.RequestException as exc:
            logger.warning("%s publish failed: %s", self.name, exc)
            return self.failure(describe_request_error(exc), "UPSTREAM_ERROR")

        logger.info(
            "%s publish finished success=%s post_id=%s", self.name, outcome.success, outcome.post_id
        )
        return outcome

    def mock_publish(self, text: str, media_urls: Sequence[str]) -> PublishOutcome:
        post_id = f"mock_{self.name}_{uuid.uuid4().hex[:12]}"
        logger.info(
            "%s not configured, recorded mock post %s (%d chars, %d media)",
            self.name,
            post_id,
            len(text),
            len(media_urls),
        )
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=post_id,
            url=self.post_url(post_id),
            message=f"Mock {self.display_name} post created",
            mock=True,
        )

    def account_status(self) -> dict[str, Any]:
        """Probe the connection without changing anything on the platform."""

        if not self.is_configured:
            return {"connected": False, "platform": self.name, "error": "Not configured"}
        try:
            details = self._account_status()
        except requests.RequestException as exc:
            return {
                "connected": False,
                "platform": self.name,
                "error": describe_request_error(exc),
            }
        return {"connected": True, "platform": self.name, **details}

    def delete(self, post_id: str) -> PublishOutcome:
        """Remove a previously published post where the platform allows it."""

        if not self.supports_delete:
            raise DeleteNotSupportedError(self.name)
        if post_id.startswith(f"mock_{self.name}_"):
            return PublishOutcome(
                success=True, platform=self.name, post_id=post_id, message="Mock post removed", mock=True
            )
        if not self.is_configured:
            return self.failure(f"{self.display_name} API is not configured", "NOT_CONFIGURED")
        try:
            self._delete(post_id)
        except requests.RequestException as exc:
            logger.warning("%s delete of %s failed: %s", self.name, post_id, exc)
            return self.failure(describe_request_error(exc), "UPSTREAM_ERROR")
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=post_id,
            message=f"{self.display_name} post deleted",
        )

    def failure(self, error: str, error_code: str | None = None) -> PublishOutcome:
        return PublishOutcome(success=False, platform=self.name, error=error, error_code=error_code)

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response
