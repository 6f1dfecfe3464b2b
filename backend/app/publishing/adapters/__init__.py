"""Registry of the platform adapters available for publishing."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Flask, current_app

from .base import DeleteNotSupportedError, PlatformAdapter, PublishOutcome
from .email import EmailAdapter
from .instagram import InstagramAdapter
from .linkedin import LinkedInAdapter
from .twitter import TwitterAdapter

ADAPTER_CLASSES: dict[str, type[PlatformAdapter]] = {
    adapter.name: adapter
    for adapter in (TwitterAdapter, LinkedInAdapter, InstagramAdapter, EmailAdapter)
}

_EXTENSION_KEY = "publishing_adapters"


def build_adapters(config: Mapping[str, Any]) -> dict[str, PlatformAdapter]:
    """Instantiate one adapter per supported platform."""

    common = {
        "timeout": float(config.get("ADAPTER_TIMEOUT_SECONDS", 10)),
        "allow_mock": bool(config.get("ALLOW_MOCK_PUBLISHING", False)),
    }
    return {
        name: adapter_cls.from_config(config, **common)
        for name, adapter_cls in ADAPTER_CLASSES.items()
    }


def init_app(app: Flask) -> None:
    app.extensions[_EXTENSION_KEY] = build_adapters(app.config)


def get_adapters() -> dict[str, PlatformAdapter]:
    """Return the adapters registered on the current application."""

    return current_app.extensions[_EXTENSION_KEY]


def find_adapter(platform: str) -> PlatformAdapter | None:
    """Return the adapter for ``platform``, if it is supported."""

    return get_adapters().get(platform)


__all__ = [
    "ADAPTER_CLASSES",
    "DeleteNotSupportedError",
    "EmailAdapter",
    "InstagramAdapter",
    "LinkedInAdapter",
    "PlatformAdapter",
    "PublishOutcome",
    "TwitterAdapter",
    "build_adapters",
    "find_adapter",
    "get_adapters",
    "init_app",
]
