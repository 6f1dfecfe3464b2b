"""Content formatting, platform adapters and the publishing pipeline."""

from .formatter import format_content, pillar_hashtags

__all__ = ["format_content", "pillar_hashtags"]
