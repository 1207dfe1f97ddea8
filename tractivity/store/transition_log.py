from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from tractivity.engine.types import Diagnostics, MonitorState
from tractivity.store.paths import transition_log_path


@dataclass
class TransitionLogger:
    base_dir: Path | None = None

    def _path_for(self, when: datetime) -> Path:
        if self.base_dir is not None:
            return self.base_dir / f"{when.date().isoformat()}.jsonl"
        return transition_log_path(when.date())

    def append(self, *, when: datetime, event: dict) -> Path:
        """Append a single JSON object as one line."""

        path = self._path_for(when)
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {"ts": when.isoformat(), **event}
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

        with path.open("a", encoding="utf-8") as f:
            f.write(line)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())

        return path

    def log_transition(
        self,
        *,
        when: datetime,
        event: str,
        state: MonitorState,
        elapsed_ms: float,
        diagnostics: Diagnostics,
    ) -> None:
        self.append(
            when=when,
            event={
                "event": event,
                "state": state.value,
                "elapsed_ms": int(elapsed_ms),
                **diagnostics.as_dict(),
            },
        )

    def read_last(self, *, when: datetime) -> dict | None:
        """Return the last well-formed event logged on the day of `when`, if any."""

        path = self._path_for(when)
        if not path.exists():
            return None

        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError:
            return None

        for line in reversed([ln for ln in lines if ln.strip()]):
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                return obj

        return None
