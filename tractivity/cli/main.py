from __future__ import annotations

import argparse

from tractivity.engine.types import IDLE_SOURCES, Config


def _add_session_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--threshold",
        type=float,
        metavar="SECONDS",
        help="Inactivity threshold before auto-pause (overrides config)",
    )
    parser.add_argument(
        "--poll",
        type=float,
        metavar="SECONDS",
        help="Evaluation interval (overrides config)",
    )
    parser.add_argument(
        "--idle-source",
        choices=list(IDLE_SOURCES),
        help="System idle-time source (overrides config)",
    )
    parser.add_argument(
        "--no-auto-pause",
        action="store_true",
        help="Track idle time but never pause automatically",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging on stderr")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tractivity")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Interactive work timer with auto-pause")
    _add_session_options(run_p)
    run_p.set_defaults(_handler="run")

    debug_p = sub.add_parser("debug", help="Print live idle readings and monitor diagnostics")
    _add_session_options(debug_p)
    debug_p.set_defaults(_handler="debug")

    status_p = sub.add_parser("status", help="Show settings, paths and the last transition")
    status_p.set_defaults(_handler="status")

    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply one-off command-line overrides on top of the file config."""

    if getattr(args, "threshold", None) is not None:
        config.threshold_seconds = float(args.threshold)
    if getattr(args, "poll", None) is not None:
        config.poll_seconds = float(args.poll)
    if getattr(args, "idle_source", None):
        config.idle_source = str(args.idle_source)
    if getattr(args, "no_auto_pause", False):
        config.auto_pause = False
    return config


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args._handler == "run":
        from tractivity.cli.run import main as run_main

        return int(run_main(args))

    if args._handler == "debug":
        from tractivity.cli.debug import main as debug_main

        return int(debug_main(args))

    if args._handler == "status":
        from tractivity.cli.status import main as status_main

        return int(status_main())

    raise RuntimeError(f"Unknown command: {args._handler}")


if __name__ == "__main__":
    raise SystemExit(main())
