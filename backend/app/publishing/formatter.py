"""Platform specific formatting of content items into post text."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

TWITTER_MAX_LENGTH = 280
ELLIPSIS = "..."

# Room kept free for separators when deciding whether the body fits.
_TWITTER_SEPARATOR_RESERVE = 10
_TWITTER_MIN_BODY_ROOM = 50

_PILLAR_HASHTAGS: dict[str, tuple[str, ...]] = {
    "internal-os": ("#TradingMindset", "#TraderPsychology", "#MentalEdge", "#TradeKeep"),
    "psychology-over-strategy": (
        "#TradingPsychology",
        "#EmotionalControl",
        "#TraderMindset",
        "#TradeKeep",
    ),
    "discipline-over-dopamine": (
        "#TradingDiscipline",
        "#ConsistentTrading",
        "#ProcessOverProfit",
        "#TradeKeep",
    ),
    "systems-vs-reactive": (
        "#TradingSystems",
        "#SystematicTrading",
        "#RuleBasedTrading",
        "#TradeKeep",
    ),
}
_FALLBACK_HASHTAGS = ("#Trading", "#TradeKeep")


def pillar_hashtags(pillar: str | None) -> list[str]:
    """Return the hashtags for a brand pillar, falling back to generic tags."""

    key = pillar.strip().lower() if isinstance(pillar, str) else ""
    return list(_PILLAR_HASHTAGS.get(key, _FALLBACK_HASHTAGS))


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= len(ELLIPSIS):
        return text[:limit]
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _format_twitter(title: str, body: str, hashtags: str) -> str:
    suffix = f"\n\n{hashtags}"
    title = _truncate(title, TWITTER_MAX_LENGTH - len(suffix))
    text = title
    if body:
        available = TWITTER_MAX_LENGTH - len(title) - len(hashtags) - _TWITTER_SEPARATOR_RESERVE
        if available > _TWITTER_MIN_BODY_ROOM:
            excerpt = body if len(body) <= available else body[:available] + ELLIPSIS
            text += f"\n\n{excerpt}"
    return _truncate(text + suffix, TWITTER_MAX_LENGTH)


def format_content(content: Any, platform: str, options: Mapping[str, Any] | None = None) -> str:
    """Return the post text for ``content`` on ``platform``.

    ``content`` needs ``title``, ``body`` and ``brand_pillar`` attributes.
    The result depends only on the arguments.
    """

    options = options or {}
    title = (getattr(content, "title", None) or "").strip()
    body = (getattr(content, "body", None) or "").strip()
    hashtags = " ".join(pillar_hashtags(getattr(content, "brand_pillar", None)))

    if platform == "twitter":
        return _format_twitter(title, body, hashtags)

    if platform == "linkedin":
        text = f"{title}\n\n{body}"
        if options.get("includeHashtags", True) is not False:
            text += f"\n\n{hashtags}"
        return text

    if platform == "instagram":
        return f"{title}\n\n{body}\n.\n.\n.\n{hashtags}"

    return f"{title}\n\n{body}"
