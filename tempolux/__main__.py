"""
TEMPOLUX command line

Usage:
    python -m tempolux run --config show.json [--event NAME ...] [--duration S] [--debug]
    python -m tempolux validate show.json [-q]
    python -m tempolux effects [--markdown]
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from . import __version__
from .conductor import Conductor
from .config import load_config, summarize
from .effects import build_registry
from .errors import TempoluxError
from .validate import run_validator

_logger = logging.getLogger(__name__)


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


async def _run_show(args: argparse.Namespace) -> int:
    registry = build_registry()
    config = load_config(args.config, registry)
    chains, effects, events = summarize(config)
    _logger.info(f"[TEMPOLUX] Loaded {args.config}: {chains} chains, {effects} effects, {events} events")

    conductor = Conductor(config, registry=registry, debug=args.debug)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, conductor.request_stop)
        except NotImplementedError:
            pass  # Not supported on this platform; Ctrl-C still raises

    await conductor.start()
    try:
        for event in args.event or []:
            conductor.trigger_event(event)
        await conductor.wait(args.duration)
    finally:
        await conductor.stop()
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    _setup_logging(args.debug)
    try:
        return asyncio.run(_run_show(args))
    except TempoluxError as e:
        _logger.error(f"[TEMPOLUX] {e}")
        return 1
    except KeyboardInterrupt:
        return 0


def cmd_validate(args: argparse.Namespace) -> int:
    return run_validator(args.config, quiet=args.quiet)


def cmd_effects(args: argparse.Namespace) -> int:
    registry = build_registry()
    if args.markdown:
        print(registry.to_markdown())
        return 0
    for name in sorted(registry.list_available()):
        metadata = registry.get_metadata(name)
        params = ", ".join(f"{p.name}={p.default}" for p in metadata.params) if metadata else ""
        print(f"{name:12} {metadata.description if metadata else ''}")
        if params:
            print(f"{'':12}   {params}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tempolux",
        description="Beat-synced lighting effect engine",
        epilog="Example: python -m tempolux run --config show.json --event drop",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a show")
    run.add_argument("-c", "--config", default="config.json", help="Path to show file (created if missing)")
    run.add_argument("-e", "--event", action="append", help="Trigger an event after start (repeatable)")
    run.add_argument("-d", "--duration", type=float, help="Stop after this many seconds")
    run.add_argument("--debug", action="store_true", help="Verbose logging")
    run.set_defaults(func=cmd_run)

    validate = sub.add_parser("validate", help="Validate a show file")
    validate.add_argument("config", help="Path to show file")
    validate.add_argument("-q", "--quiet", action="store_true", help="Only show errors (no warnings)")
    validate.set_defaults(func=cmd_validate)

    effects = sub.add_parser("effects", help="List available effects")
    effects.add_argument("--markdown", action="store_true", help="Print Markdown reference")
    effects.set_defaults(func=cmd_effects)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
