"""Top-level alias for the TradeKeep backend so ``from app import create_app`` works."""

from backend.app import Config, create_app

__all__ = ["Config", "create_app"]
