"""LinkedIn adapter publishing UGC posts for a member."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .base import PlatformAdapter, PublishOutcome

API_BASE_URL = "https://api.linkedin.com/v2"


class LinkedInAdapter(PlatformAdapter):
    name = "linkedin"
    display_name = "LinkedIn"

    def __init__(
        self, access_token: str | None = None, person_urn: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(**kwargs)
        self.access_token = access_token
        self.person_urn = person_urn

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> LinkedInAdapter:
        return cls(
            access_token=config.get("LINKEDIN_ACCESS_TOKEN"),
            person_urn=config.get("LINKEDIN_PERSON_URN"),
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.person_urn)

    def post_url(self, post_id: str) -> str:
        return f"https://www.linkedin.com/feed/update/{post_id}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }

    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        share: dict[str, Any] = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "IMAGE" if media_urls else "NONE",
        }
        if media_urls:
            share["media"] = [
                {
                    "status": "READY",
                    "description": {"text": "Image from TradeKeep Content"},
                    "media": url,
                    "title": {"text": "TradeKeep Content"},
                }
                for url in media_urls
            ]
        payload = {
            "author": f"urn:li:person:{self.person_urn}",
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

        response = self._request(
            "POST", f"{API_BASE_URL}/ugcPosts", json=payload, headers=self._headers()
        )
        post_id = response.headers.get("x-restli-id")
        if not post_id:
            post_id = str(response.json().get("id"))
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=post_id,
            url=self.post_url(post_id),
            message="Posted to LinkedIn successfully",
        )

    def _account_status(self) -> dict[str, Any]:
        response = self._request("GET", f"{API_BASE_URL}/me", headers=self._headers())
        data = response.json()
        first = data.get("localizedFirstName", "")
        last = data.get("localizedLastName", "")
        return {"identity": f"{first} {last}".strip() or None, "id": data.get("id")}

    def _delete(self, post_id: str) -> None:
        self._request("DELETE", f"{API_BASE_URL}/ugcPosts/{post_id}", headers=self._headers())
