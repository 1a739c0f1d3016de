"""Utility functions for relaybot."""

from relaybot.utils.helpers import ensure_dir, get_data_path, maybe_await

__all__ = ["ensure_dir", "get_data_path", "maybe_await"]
