from __future__ import annotations

import os
import sys

from tractivity.engine.monitor import IdleProvider
from tractivity.engine.types import IDLE_SOURCES

from .linux import LinuxIdleProvider, ProviderError


def _is_gnome_session() -> bool:
    desktop = os.environ.get("XDG_CURRENT_DESKTOP", "")
    has_bus = bool(os.environ.get("DBUS_SESSION_BUS_ADDRESS"))
    return has_bus and "gnome" in desktop.lower()


def resolve_idle_source(source: str) -> str:
    """Map "auto" to a concrete source for this platform."""

    source_norm = source.strip().lower()
    if source_norm not in IDLE_SOURCES:
        raise ValueError(f"Unknown idle source: {source}")

    if source_norm != "auto":
        return source_norm

    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "linux":
        return "mutter" if _is_gnome_session() else "logind"
    return "none"


def build_idle_provider(source: str) -> IdleProvider | None:
    resolved = resolve_idle_source(source)

    if resolved == "none":
        return None

    if resolved == "logind":
        return LinuxIdleProvider().as_async()

    if resolved == "mutter":
        from .gnome import MutterIdleProvider

        return MutterIdleProvider()

    from .windows import WindowsIdleProvider

    return WindowsIdleProvider()


__all__ = [
    "LinuxIdleProvider",
    "ProviderError",
    "build_idle_provider",
    "resolve_idle_source",
]
