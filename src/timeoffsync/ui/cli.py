from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import timedelta
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from timeoffsync.app import sync_time_offs, unsync_time_offs
from timeoffsync.config import ConfigurationError, configure_logging, get_sync_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from timeoffsync.config import SyncConfig

log = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Not a number: {value}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Must not be negative: {value}")
    return parsed


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--lookback-days",
        type=_non_negative_int,
        help="Days before now to reconcile (defaults to config)",
    )
    parser.add_argument(
        "--lookahead-days",
        type=_non_negative_int,
        help="Days after now to reconcile (defaults to config)",
    )
    parser.add_argument(
        "--max-runtime",
        type=_non_negative_int,
        help="Seconds after which the run stops taking on work (defaults to config)",
    )
    parser.add_argument(
        "--ephemeral",
        action="store_true",
        help="Keep the failure ledger and run lock in memory instead of the database",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronise Personio absences with Google Calendar out-of-office events"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Reconcile absences and calendar events")
    _add_run_options(sync)
    sync.add_argument(
        "--max-fail-count",
        type=_non_negative_int,
        help="Failed actions per account before moving on (defaults to config)",
    )

    unsync = subparsers.add_parser(
        "unsync",
        help="Delete the absences of synced events with a given title and unlink the events",
    )
    _add_run_options(unsync)
    unsync.add_argument(
        "--title",
        type=str,
        required=True,
        help="Substring of the event title to unsync",
    )

    return parser.parse_args(list(argv))


def _build_config(args: argparse.Namespace) -> SyncConfig:
    config = get_sync_config()
    overrides: dict[str, object] = {}
    if args.lookback_days is not None:
        overrides["lookback_days"] = args.lookback_days
    if args.lookahead_days is not None:
        overrides["lookahead_days"] = args.lookahead_days
    if args.max_runtime is not None:
        overrides["max_runtime"] = timedelta(seconds=args.max_runtime)
    if getattr(args, "max_fail_count", None) is not None:
        overrides["max_fail_count"] = args.max_fail_count
    return replace(config, **overrides) if overrides else config  # pyright: ignore[reportArgumentType]


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.debug else logging.INFO)
    try:
        config = _build_config(parsed_args)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)

    try:
        if parsed_args.command == "sync":
            summary = sync_time_offs(config=config, ephemeral=parsed_args.ephemeral)
        elif parsed_args.command == "unsync":
            summary = unsync_time_offs(
                parsed_args.title, config=config, ephemeral=parsed_args.ephemeral
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    if not summary.completed:
        log.info("Run stopped early, the next run picks up the remaining accounts")


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
