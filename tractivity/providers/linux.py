import asyncio
import os
import subprocess
import time


class ProviderError(RuntimeError):
    """Raised when an idle-time source cannot be queried."""


class LinuxIdleProvider:
    """Idle seconds from systemd-logind via `loginctl`.

    Notes:
    - The hint is maintained by an idle manager (swayidle, hypridle, a desktop
      shell). Without one it stays at `IdleHint=no` with
      `IdleSinceHintMonotonic=0`; that reads as None and the monitor falls
      back to local tracking.
    - `IdleHint=no` with a timestamp means the manager's own timeout has not
      elapsed; reported as 0. Thresholds shorter than that timeout are therefore not reached
      through this source.
    - `IdleSinceHintMonotonic` is microseconds on CLOCK_MONOTONIC, so it is
      compared against `time.monotonic()`.
    """

    def __init__(self):
        self._session_id: str | None = None
        self._user: str | None = None

    def __call__(self) -> float | None:
        return self.idle_seconds()

    def as_async(self):
        """Non-blocking variant for the event loop (runs loginctl in a thread)."""

        async def _idle_seconds() -> float | None:
            return await asyncio.to_thread(self.idle_seconds)

        return _idle_seconds

    def _get_user(self) -> str:
        if self._user is None:
            self._user = os.environ.get("USER") or os.environ.get("USERNAME") or ""
        return self._user

    def _run_loginctl(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["loginctl", *args],
                capture_output=True,
                text=True,
                timeout=2,
                check=True,
            )
        except FileNotFoundError as e:
            raise ProviderError("loginctl not found") from e
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise ProviderError(f"loginctl {args[0]} failed: {e}") from e
        return result.stdout

    def _find_session_id(self) -> str | None:
        """Find active session for current user."""

        user = self._get_user()
        stdout = self._run_loginctl("list-sessions", "--no-legend", "--no-pager")

        user_session_ids: list[str] = []
        for line in stdout.strip().split("\n"):
            if not line.strip():
                continue
            parts = line.split()
            if len(parts) >= 3 and parts[2] == user:
                user_session_ids.append(parts[0])

        if not user_session_ids:
            return None

        for session_id in user_session_ids:
            props = self._get_session_properties(session_id)
            if props.get("State") == "active":
                return session_id

        return user_session_ids[0]

    def _get_session_properties(self, session_id: str) -> dict[str, str]:
        stdout = self._run_loginctl(
            "show-session",
            session_id,
            "--property=IdleHint",
            "--property=IdleSinceHintMonotonic",
            "--property=State",
        )

        props: dict[str, str] = {}
        for line in stdout.strip().split("\n"):
            if "=" in line:
                key, value = line.split("=", 1)
                props[key] = value
        return props

    def idle_seconds(self) -> float | None:
        if self._session_id is None:
            self._session_id = self._find_session_id()
            if self._session_id is None:
                raise ProviderError(f"no logind session found for user {self._get_user()!r}")

        try:
            props = self._get_session_properties(self._session_id)
        except ProviderError:
            # Session may have ended; look it up again next time.
            self._session_id = None
            raise

        idle_hint = props.get("IdleHint")
        idle_since_raw = props.get("IdleSinceHintMonotonic")
        if not idle_since_raw or idle_since_raw == "0":
            # Hint never set (no idle manager on this session).
            return None
        if idle_hint == "no":
            return 0.0
        if idle_hint != "yes":
            return None

        try:
            idle_since_us = int(idle_since_raw)
        except ValueError:
            return None

        now_us = int(time.monotonic() * 1_000_000)
        if idle_since_us <= 0 or idle_since_us > now_us:
            return None

        return (now_us - idle_since_us) / 1_000_000
