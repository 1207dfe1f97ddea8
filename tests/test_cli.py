import asyncio
import json
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from tractivity.cli import status
from tractivity.cli.main import _build_parser, apply_overrides
from tractivity.cli.main import main as cli_main
from tractivity.cli.run import TimerApp, _KeyReader, _run, close_provider
from tractivity.cli.run import main as run_main
from tractivity.engine.types import Config, MonitorState
from tractivity.store import TransitionLogger
from tractivity.store.config import load_config


def _events(base_dir):
    rows = []
    for path in sorted(base_dir.glob("*.jsonl")):
        rows.extend(json.loads(line) for line in path.read_text(encoding="utf-8").splitlines())
    return rows


@pytest.fixture
def app(tmp_path, clock):
    config = Config(threshold_seconds=1.0, poll_seconds=0.25, auto_pause=True, idle_source="none")
    return TimerApp(config, transitions=TransitionLogger(base_dir=tmp_path), clock=clock)


# ---- Argument parsing ----


def test_parser_run_overrides():
    args = _build_parser().parse_args(
        ["run", "--threshold", "120", "--poll", "0.5", "--idle-source", "logind", "--no-auto-pause"]
    )
    config = apply_overrides(Config(), args)

    assert args._handler == "run"
    assert config.threshold_seconds == 120.0
    assert config.poll_seconds == 0.5
    assert config.idle_source == "logind"
    assert config.auto_pause is False


def test_parser_without_overrides_keeps_config():
    args = _build_parser().parse_args(["debug"])
    config = apply_overrides(Config(threshold_seconds=42.0, idle_source="none"), args)

    assert config.threshold_seconds == 42.0
    assert config.idle_source == "none"
    assert config.auto_pause is True


def test_parser_rejects_unknown_idle_source():
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["run", "--idle-source", "x11"])


def test_main_dispatches_status():
    with patch("tractivity.cli.status.main", return_value=0) as mock_status:
        assert cli_main(["status"]) == 0
    mock_status.assert_called_once_with()


@pytest.mark.parametrize(
    "flags",
    [
        ["--threshold", "0"],
        ["--threshold", "inf"],
        ["--threshold", "nan"],
        ["--poll", "nan"],
        ["--poll=-inf"],
    ],
)
def test_run_rejects_invalid_timing(capsys, flags):
    args = _build_parser().parse_args(["run", "--idle-source", "none", *flags])

    with patch("tractivity.cli.run.load_config", return_value=(Config(), {"path": "cfg"})):
        with patch("tractivity.cli.run.configure") as mock_configure:
            assert run_main(args) == 2

    assert "Invalid configuration" in capsys.readouterr().out
    mock_configure.assert_not_called()


def test_close_provider_calls_close_when_present():
    provider = MagicMock()
    close_provider(provider)
    provider.close.assert_called_once_with()

    close_provider(None)
    close_provider(lambda: 1.0)


# ---- Timer front-end ----


@pytest.mark.asyncio
async def test_app_logs_auto_pause_and_resume(app, clock, tmp_path):
    app.toggle()
    assert app.monitor.state is MonitorState.ACTIVE

    clock.now = 1_500
    await app.monitor.evaluate()
    assert app.monitor.state is MonitorState.AUTO_PAUSED

    clock.now = 1_600
    app.handle_key("x")
    assert app.monitor.state is MonitorState.ACTIVE

    events = _events(tmp_path)
    assert [e["event"] for e in events] == ["manual_start", "auto_pause", "auto_resume"]
    assert events[1]["state"] == "auto_paused"
    assert events[1]["paused_by_idle"] is True
    assert events[1]["elapsed_ms"] == 1_500


@pytest.mark.asyncio
async def test_app_toggle_after_auto_pause_clears_marker(app, clock, tmp_path):
    app.toggle()
    clock.now = 2_000
    await app.monitor.evaluate()
    assert app.monitor.is_paused_by_inactivity() is True

    app.toggle()

    assert app.timer.is_running() is True
    assert app.monitor.is_paused_by_inactivity() is False
    assert [e["event"] for e in _events(tmp_path)][-2:] == ["auto_pause_cleared", "manual_start"]


def test_app_reset_only_while_paused(app, clock, tmp_path):
    app.handle_key("s")
    clock.now = 500
    assert app.reset() is False

    app.handle_key(" ")
    assert app.timer.get_elapsed_ms() == 500
    assert app.reset() is True
    assert app.timer.get_elapsed_ms() == 0
    assert _events(tmp_path)[-1]["event"] == "reset"


def test_app_quit_stops_loop(app):
    app.handle_key("q")
    assert app.loop._stopped.is_set()


def test_app_status_line(app, clock):
    app.toggle()
    clock.now = 65_000

    line = app.status_line()

    assert line.startswith("00:01:05  running")
    assert "system=n/a" in line
    assert "auto-pause=on" in line


def test_app_survives_unwritable_transition_log(app, log_records):
    app.transitions = MagicMock()
    app.transitions.log_transition.side_effect = OSError("read-only file system")

    app.toggle()

    assert app.timer.is_running() is True
    assert any("Could not write transition log" in r["message"] for r in log_records)


# ---- Status ----


def test_status_prints_last_transition(tmp_path, monkeypatch, capsys):
    config_path = tmp_path / "config.toml"
    config_path.write_text("threshold_seconds = 90\n", encoding="utf-8")
    logs = TransitionLogger(base_dir=tmp_path / "logs")

    monkeypatch.setattr(
        status, "load_config", lambda create_if_missing=False: load_config(config_path, create_if_missing=False)
    )
    monkeypatch.setattr(status, "TransitionLogger", lambda: logs)

    logs.append(
        when=datetime.now().astimezone(),
        event={"event": "auto_pause", "state": "auto_paused", "elapsed_ms": 3_725_000},
    )

    assert status.main() == 0

    out = capsys.readouterr().out
    assert "threshold=90s" in out
    assert "event=auto_pause state=auto_paused elapsed=01:02:05" in out


def test_status_without_log(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(
        status,
        "load_config",
        lambda create_if_missing=False: load_config(tmp_path / "missing.toml", create_if_missing=False),
    )
    monkeypatch.setattr(status, "TransitionLogger", lambda: TransitionLogger(base_dir=tmp_path))

    assert status.main() == 0

    out = capsys.readouterr().out
    assert "not created yet" in out
    assert "last transition: unavailable" in out


# ---- Cleanup on failure ----


@pytest.mark.asyncio
async def test_run_closes_provider_when_app_setup_fails():
    provider = MagicMock()
    config = Config(idle_source="none")

    with patch("tractivity.cli.run.build_idle_provider", return_value=provider):
        with patch("tractivity.cli.run.TimerApp", side_effect=RuntimeError("no terminal")):
            with pytest.raises(RuntimeError):
                await _run(config, {"path": "cfg"})

    provider.close.assert_called_once_with()


@pytest.mark.asyncio
async def test_app_cleans_up_when_key_reader_fails(app, tmp_path):
    app.keys = MagicMock()
    app.keys.start.side_effect = PermissionError("stdin is not pollable")

    with pytest.raises(PermissionError):
        await app.run()

    app.keys.close.assert_called_once_with()
    assert [e["event"] for e in _events(tmp_path)] == ["session_start", "session_end"]


@pytest.mark.asyncio
async def test_key_reader_restores_terminal_when_reader_fails(monkeypatch):
    termios = pytest.importorskip("termios")
    stdin = MagicMock()
    stdin.fileno.return_value = 7
    stdin.isatty.return_value = True
    monkeypatch.setattr("tractivity.cli.run.sys.stdin", stdin)
    monkeypatch.setattr(termios, "tcgetattr", MagicMock(return_value=["saved"]))
    monkeypatch.setattr(termios, "tcsetattr", MagicMock())
    monkeypatch.setattr("tty.setcbreak", MagicMock())

    running = asyncio.get_running_loop()
    monkeypatch.setattr(running, "add_reader", MagicMock(side_effect=PermissionError(1, "EPERM")))
    monkeypatch.setattr(running, "remove_reader", MagicMock(return_value=False))

    reader = _KeyReader(lambda key: None)
    reader._is_windows = False
    with pytest.raises(PermissionError):
        reader.start()
    reader.close()

    termios.tcsetattr.assert_called_once_with(7, termios.TCSADRAIN, ["saved"])
