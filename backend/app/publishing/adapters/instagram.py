"""Instagram adapter built on the Graph API container/publish flow."""
from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from typing import Any

import requests

from .base import PlatformAdapter, PublishOutcome

API_BASE_URL = "https://graph.facebook.com/v18.0"
MEDIA_TYPES = ("IMAGE", "VIDEO", "CAROUSEL")
CAROUSEL_MIN_ITEMS = 2
CAROUSEL_MAX_ITEMS = 10


class MediaProcessingError(requests.RequestException):
    """Raised when a video container never becomes ready."""


class InstagramAdapter(PlatformAdapter):
    name = "instagram"
    display_name = "Instagram"

    def __init__(
        self,
        user_id: str | None = None,
        access_token: str | None = None,
        *,
        processing_poll_interval: float = 2.0,
        processing_max_attempts: int = 30,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.user_id = user_id
        self.access_token = access_token
        self.processing_poll_interval = processing_poll_interval
        self.processing_max_attempts = processing_max_attempts

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> InstagramAdapter:
        return cls(
            user_id=config.get("INSTAGRAM_USER_ID"),
            access_token=config.get("INSTAGRAM_ACCESS_TOKEN"),
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.user_id and self.access_token)

    def post_url(self, post_id: str) -> str:
        return f"https://www.instagram.com/p/{post_id}"

    @staticmethod
    def _select_media(
        media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> tuple[list[str], str]:
        media_type = str(options.get("mediaType") or "IMAGE").upper()
        if media_urls:
            if media_type == "CAROUSEL":
                return list(media_urls), media_type
            return [media_urls[0]], "IMAGE"
        fallback = options.get("mediaUrl")
        if isinstance(fallback, str) and fallback:
            return [fallback], media_type
        return [], media_type

    def validate(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> str | None:
        selected, media_type = self._select_media(media_urls, options)
        if not selected:
            return "Instagram requires at least one image"
        if media_type not in MEDIA_TYPES:
            return f"Unsupported Instagram media type {media_type}"
        if media_type == "CAROUSEL" and not (
            CAROUSEL_MIN_ITEMS <= len(selected) <= CAROUSEL_MAX_ITEMS
        ):
            return "Carousel posts require 2-10 images"
        return None

    def _create_container(self, payload: dict[str, Any]) -> str:
        response = self._request(
            "POST",
            f"{API_BASE_URL}/{self.user_id}/media",
            data={**payload, "access_token": self.access_token},
        )
        return str(response.json()["id"])

    def _wait_for_processing(self, container_id: str) -> None:
        for _ in range(self.processing_max_attempts):
            response = self._request(
                "GET",
                f"{API_BASE_URL}/{container_id}",
                params={"fields": "status_code", "access_token": self.access_token},
            )
            status = response.json().get("status_code")
            if status == "FINISHED":
                return
            if status == "ERROR":
                raise MediaProcessingError("Media processing failed")
            time.sleep(self.processing_poll_interval)
        raise MediaProcessingError("Media processing timeout")

    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        selected, media_type = self._select_media(media_urls, options)

        if media_type == "CAROUSEL":
            children = [
                self._create_container({"image_url": url, "is_carousel_item": "true"})
                for url in selected
            ]
            container_id = self._create_container(
                {"caption": text, "media_type": "CAROUSEL", "children": ",".join(children)}
            )
        elif media_type == "VIDEO":
            container_id = self._create_container(
                {"video_url": selected[0], "caption": text, "media_type": "VIDEO"}
            )
            self._wait_for_processing(container_id)
        else:
            container_id = self._create_container({"image_url": selected[0], "caption": text})

        response = self._request(
            "POST",
            f"{API_BASE_URL}/{self.user_id}/media_publish",
            data={"creation_id": container_id, "access_token": self.access_token},
        )
        post_id = str(response.json()["id"])
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=post_id,
            url=self.post_url(post_id),
            message="Posted to Instagram successfully",
        )

    def _account_status(self) -> dict[str, Any]:
        response = self._request(
            "GET",
            f"{API_BASE_URL}/{self.user_id}",
            params={
                "fields": "username,account_type,media_count",
                "access_token": self.access_token,
            },
        )
        data = response.json()
        return {
            "identity": data.get("username"),
            "accountType": data.get("account_type"),
            "mediaCount": data.get("media_count"),
            "id": self.user_id,
        }

    def _delete(self, post_id: str) -> None:
        self._request(
            "DELETE", f"{API_BASE_URL}/{post_id}", params={"access_token": self.access_token}
        )
