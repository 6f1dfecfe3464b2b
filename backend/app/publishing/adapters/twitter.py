"""Twitter/X adapter using the v2 REST API with an OAuth 2.0 user token."""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..formatter import ELLIPSIS, TWITTER_MAX_LENGTH
from .base import PlatformAdapter, PublishOutcome

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.twitter.com/2"


class TwitterAdapter(PlatformAdapter):
    name = "twitter"
    display_name = "Twitter"

    def __init__(self, access_token: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.access_token = access_token

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> TwitterAdapter:
        return cls(access_token=config.get("TWITTER_ACCESS_TOKEN"), **kwargs)

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token)

    def post_url(self, post_id: str) -> str:
        return f"https://twitter.com/i/web/status/{post_id}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        if len(text) > TWITTER_MAX_LENGTH:
            text = text[: TWITTER_MAX_LENGTH - len(ELLIPSIS)] + ELLIPSIS
        if media_urls:
            # Media upload needs the v1.1 chunked endpoint; text is posted alone.
            logger.info("twitter post skips %d media attachment(s)", len(media_urls))

        response = self._request(
            "POST", f"{API_BASE_URL}/tweets", json={"text": text}, headers=self._headers()
        )
        tweet_id = str(response.json()["data"]["id"])
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=tweet_id,
            url=self.post_url(tweet_id),
            message="Tweet posted successfully",
        )

    def _account_status(self) -> dict[str, Any]:
        response = self._request("GET", f"{API_BASE_URL}/users/me", headers=self._headers())
        data = response.json().get("data", {})
        return {"identity": data.get("username"), "name": data.get("name"), "id": data.get("id")}

    def _delete(self, post_id: str) -> None:
        self._request("DELETE", f"{API_BASE_URL}/tweets/{post_id}", headers=self._headers())
