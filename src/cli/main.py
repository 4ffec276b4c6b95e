"""Zaplytics CLI entry points.

This module exposes offline analysis over recorded receipt events.
It maps argparse commands onto session and snapshot calls.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Sequence

from analytics.snapshot_payload import snapshot_to_payload, write_snapshot_json
from core.config import ZaplyticsConfig, load_config_file
from core.constants import CUSTOM_RANGE_NAME, DEFAULT_RANGE_NAME
from core.errors import ZaplyticsError
from core.time_ranges import resolve_window, supported_range_names
from ingest.event_file_source import JsonlEventSource
from service.analytics_session import analyze_source


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="zaplytics", description="Zaplytics receipt analytics CLI"
    )
    parser.add_argument("--config", help="YAML file with config overrides")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_analyze_command(subparsers)
    _add_ranges_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Zaplytics CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "ranges":
        return _run_ranges_command()
    if args.command == "analyze":
        try:
            return _run_analyze_command(_build_config(args.config), args)
        except ZaplyticsError as error:
            print(f"zaplytics_error={error}")
            return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(config_path: str | None) -> ZaplyticsConfig:
    """Build runtime config with an optional YAML override file."""
    config = ZaplyticsConfig.from_env()
    if config_path:
        config = load_config_file(config_path, base=config)
    return config


def _run_analyze_command(config: ZaplyticsConfig, args: argparse.Namespace) -> int:
    """Handle analyze command.

    Args:
        config: Runtime configuration.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    source = JsonlEventSource.from_path(args.events, page_limit=args.page_limit)
    window = resolve_window(args.range, args.now, args.since, args.until)
    clock = (lambda: args.now) if args.now is not None else None
    snapshot = asyncio.run(analyze_source(source, args.user, window, config=config, clock=clock))
    if args.output:
        output_path = Path(args.output).expanduser()
        write_snapshot_json(output_path, snapshot, include_records=args.include_records)
        print(f"snapshot_path={output_path}")
        return 0
    payload = snapshot_to_payload(snapshot, include_records=args.include_records)
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def _run_ranges_command() -> int:
    """Print supported range names, one per line."""
    for range_name in supported_range_names():
        print(range_name)
    return 0


def _add_analyze_command(subparsers: Any) -> None:
    """Register analyze subcommand."""
    parser = subparsers.add_parser("analyze", help="Analyze receipts from a JSONL event file")
    parser.add_argument("events", help="JSONL file with one raw event per line")
    parser.add_argument("--user", required=True, help="Recipient pubkey (hex)")
    parser.add_argument(
        "--range",
        default=DEFAULT_RANGE_NAME,
        choices=supported_range_names(),
        help="Named time range, or custom with --since and --until",
    )
    parser.add_argument(
        "--since", type=int, help=f"Window start, unix seconds ({CUSTOM_RANGE_NAME} only)"
    )
    parser.add_argument(
        "--until", type=int, help=f"Window end, unix seconds ({CUSTOM_RANGE_NAME} only)"
    )
    parser.add_argument("--now", type=int, help="Reference unix time for named ranges")
    parser.add_argument("--page-limit", type=int, help="Simulated relay page cap")
    parser.add_argument("--output", help="Write the snapshot JSON to this file")
    parser.add_argument(
        "--include-records",
        action="store_true",
        help="Include every window record in the payload",
    )


def _add_ranges_command(subparsers: Any) -> None:
    """Register ranges subcommand."""
    subparsers.add_parser("ranges", help="List supported time ranges")
