import json
from datetime import datetime, timedelta

from tractivity.engine.types import Diagnostics, MonitorState
from tractivity.store.transition_log import TransitionLogger


def test_transition_log_appends_json_lines(tmp_path):
    logger = TransitionLogger(base_dir=tmp_path)
    when = datetime.now().astimezone()

    logger.log_transition(
        when=when,
        event="auto_pause",
        state=MonitorState.AUTO_PAUSED,
        elapsed_ms=61_500.7,
        diagnostics=Diagnostics(system_idle_ms=None, effective_idle_ms=300_000, paused_by_idle=True),
    )
    logger.append(when=when, event={"event": "session_end"})

    path = tmp_path / f"{when.date().isoformat()}.jsonl"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2

    first = json.loads(lines[0])
    assert first["ts"] == when.isoformat()
    assert first["event"] == "auto_pause"
    assert first["state"] == "auto_paused"
    assert first["elapsed_ms"] == 61_500
    assert first["system_idle_ms"] is None
    assert first["paused_by_idle"] is True


def test_transition_log_defaults_to_data_dir(tmp_path, monkeypatch):
    # Force the data dir into tmp by monkeypatching XDG_DATA_HOME.
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    when = datetime.now().astimezone()
    path = TransitionLogger().append(when=when, event={"event": "session_start"})

    assert path.is_relative_to(tmp_path)
    assert path.name == f"{when.date().isoformat()}.jsonl"


def test_read_last_skips_garbage(tmp_path):
    logger = TransitionLogger(base_dir=tmp_path)
    when = datetime.now().astimezone()

    logger.append(when=when, event={"event": "manual_start"})
    path = tmp_path / f"{when.date().isoformat()}.jsonl"
    with path.open("a", encoding="utf-8") as f:
        f.write("{not json\n\n")

    last = logger.read_last(when=when)
    assert last is not None
    assert last["event"] == "manual_start"


def test_read_last_missing_day(tmp_path):
    logger = TransitionLogger(base_dir=tmp_path)
    assert logger.read_last(when=datetime.now() - timedelta(days=3)) is None
