"""Utility functions for relaybot."""

import inspect
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the relaybot data directory.

    Respects RELAYBOT_HOME environment variable; falls back to ~/.relaybot.
    """
    relaybot_home = os.environ.get("RELAYBOT_HOME", "").strip()
    if relaybot_home:
        return ensure_dir(Path(relaybot_home))
    return ensure_dir(Path.home() / ".relaybot")


async def maybe_await(value: Any) -> Any:
    """Return ``value``, awaiting it first when it is awaitable.

    Filters, handlers and client ports may be plain or ``async``.
    """
    if inspect.isawaitable(value):
        return await value
    return value


def callable_name(fn: Callable[..., Any]) -> str:
    """Best-effort readable name for a handler or middleware."""
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if name:
        return str(name)
    return type(fn).__name__
