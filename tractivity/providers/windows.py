"""
Idle time on Windows using Win32 GetLastInputInfo.
"""

from __future__ import annotations

import ctypes


class WindowsIdleProvider:
    """Seconds since the last keyboard/mouse input in the interactive session."""

    def __call__(self) -> float:
        return self.idle_seconds()

    def idle_seconds(self) -> float:
        last_input_ms = _get_last_input_tick_ms()
        tick_count_ms = _get_tick_count_ms()
        # GetLastInputInfo reports a 32-bit tick; compare on the same width.
        idle_ms = (tick_count_ms - last_input_ms) & 0xFFFFFFFF
        return idle_ms / 1000.0


def _get_last_input_tick_ms() -> int:
    class LASTINPUTINFO(ctypes.Structure):
        _fields_ = [("cbSize", ctypes.c_uint), ("dwTime", ctypes.c_uint)]

    user32 = ctypes.windll.user32  # type: ignore[attr-defined]
    last_input = LASTINPUTINFO()
    last_input.cbSize = ctypes.sizeof(LASTINPUTINFO)

    if not user32.GetLastInputInfo(ctypes.byref(last_input)):
        raise ctypes.WinError()  # type: ignore[attr-defined]

    return last_input.dwTime


def _get_tick_count_ms() -> int:
    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    if hasattr(kernel32, "GetTickCount64"):
        kernel32.GetTickCount64.restype = ctypes.c_ulonglong
        return int(kernel32.GetTickCount64())
    return int(kernel32.GetTickCount())
