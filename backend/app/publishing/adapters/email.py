"""Email adapter sending content through the Resend HTTP API."""
from __future__ import annotations

import html
from collections.abc import Mapping, Sequence
from typing import Any

from .base import PlatformAdapter, PublishOutcome

API_BASE_URL = "https://api.resend.com"


def _split_recipients(value: Any) -> list[str]:
    if isinstance(value, str):
        candidates = value.split(",")
    elif isinstance(value, (list, tuple)):
        candidates = [item for item in value if isinstance(item, str)]
    else:
        return []
    return [item.strip() for item in candidates if item.strip()]


def render_html(text: str, media_urls: Sequence[str] = ()) -> str:
    """Render plain post text as simple HTML paragraphs."""

    paragraphs = [block for block in text.split("\n\n") if block.strip()]
    parts = [
        "<p>" + html.escape(block).replace("\n", "<br>") + "</p>" for block in paragraphs
    ]
    parts.extend(f'<img src="{html.escape(url, quote=True)}" alt="">' for url in media_urls)
    return "\n".join(parts)


class EmailAdapter(PlatformAdapter):
    name = "email"
    display_name = "Email"
    supports_delete = False

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str = "noreply@tradekeep.com",
        from_name: str | None = "TradeKeep",
        default_recipients: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.default_recipients = list(default_recipients)

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs: Any) -> EmailAdapter:
        return cls(
            api_key=config.get("RESEND_API_KEY"),
            from_email=config.get("EMAIL_FROM") or "noreply@tradekeep.com",
            from_name=config.get("EMAIL_FROM_NAME"),
            default_recipients=_split_recipients(config.get("EMAIL_DEFAULT_RECIPIENTS")),
            **kwargs,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "your-resend-api-key"

    def _recipients(self, options: Mapping[str, Any]) -> list[str]:
        return _split_recipients(options.get("to")) or self.default_recipients

    def validate(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> str | None:
        if not self._recipients(options):
            return "Email requires at least one recipient"
        return None

    def _publish(
        self, text: str, media_urls: Sequence[str], options: Mapping[str, Any]
    ) -> PublishOutcome:
        subject = options.get("subject") or text.split("\n", 1)[0]
        sender = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        payload: dict[str, Any] = {
            "from": sender,
            "to": self._recipients(options),
            "subject": subject,
            "html": render_html(text, media_urls),
            "text": text,
        }
        if options.get("replyTo"):
            payload["reply_to"] = options["replyTo"]

        response = self._request(
            "POST",
            f"{API_BASE_URL}/emails",
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        message_id = str(response.json().get("id"))
        return PublishOutcome(
            success=True,
            platform=self.name,
            post_id=message_id,
            message="Email sent successfully",
        )

    def _account_status(self) -> dict[str, Any]:
        self._request(
            "GET", f"{API_BASE_URL}/domains", headers={"Authorization": f"Bearer {self.api_key}"}
        )
        return {"identity": self.from_email}
