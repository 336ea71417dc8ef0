"""Quarry CLI entry points.
This module exposes commands that load assets and inspect identifiers.
It maps argparse commands onto pipeline calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from core.asset_key import as_asset_key
from core.config import QuarryConfig
from core.errors import QuarryError
from core.manifest import load_asset_manifest
from pipeline.asset_pipeline import AssetPipeline
from pipeline.dependency_resolver import LoadResult


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="quarry", description="Quarry asset loader CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_load_command(subparsers)
    _add_classify_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Quarry CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "load":
            return _run_load_command(args)
        if args.command == "classify":
            return _run_classify_command(args)
    except QuarryError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _add_load_command(subparsers: Any) -> None:
    """Register load subcommand."""
    load_parser = subparsers.add_parser(
        "load",
        help="Load assets and their dependencies and list the fetched keys",
    )
    load_parser.add_argument("keys", nargs="*", help="Local paths, URLs, or data URIs")
    load_parser.add_argument("--manifest", help="YAML manifest listing assets to load")
    load_parser.add_argument("--base-path", help="Override QUARRY_BASE_PATH for this command")
    load_parser.add_argument("--base-url", help="Fetch local paths relative to this URL")
    load_parser.add_argument(
        "--no-network",
        action="store_true",
        help="Disable network fetching for this command",
    )
    load_parser.add_argument(
        "--max-connections-per-host",
        type=int,
        help="Override QUARRY_MAX_CONNECTIONS_PER_HOST for this command",
    )
    load_parser.add_argument(
        "--json",
        action="store_true",
        help="Print a JSON report with per-round keys instead of rows",
    )


def _add_classify_command(subparsers: Any) -> None:
    """Register classify subcommand."""
    classify_parser = subparsers.add_parser(
        "classify",
        help="Print the source kind of each identifier without fetching",
    )
    classify_parser.add_argument("keys", nargs="+", help="Identifiers to classify")


def _run_load_command(args: argparse.Namespace) -> int:
    """Handle load command.

    Args:
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    config = QuarryConfig.from_env()
    keys = list(args.keys)
    if args.manifest:
        manifest = load_asset_manifest(args.manifest)
        keys.extend(manifest.assets)
        if manifest.base_path is not None:
            config = replace(config, base_path=manifest.base_path)
        if manifest.base_url is not None:
            config = replace(config, base_url=manifest.base_url)
    config = _apply_load_overrides(config, args)
    if not keys:
        print("error: provide asset keys or --manifest", file=sys.stderr)
        return 2
    result = AssetPipeline(config).load_with_report(keys)
    if args.json:
        print(json.dumps(_build_load_report(result), indent=2, sort_keys=True))
        return 0
    for key, data in sorted(result.store.items()):
        print(f"{len(data)}\t{key.value}")
    return 0


def _apply_load_overrides(config: QuarryConfig, args: argparse.Namespace) -> QuarryConfig:
    """Apply command-line overrides on top of env and manifest config.

    Args:
        config: Config built so far.
        args: Parsed CLI args.

    Returns:
        Updated config.
    """
    if args.base_path:
        config = replace(config, base_path=Path(args.base_path).expanduser().resolve())
    if args.base_url:
        config = replace(config, base_url=args.base_url)
    if args.no_network:
        config = replace(config, network_enabled=False)
    if args.max_connections_per_host is not None:
        config = replace(config, max_connections_per_host=args.max_connections_per_host)
    return config


def _build_load_report(result: LoadResult) -> dict[str, object]:
    """Summarize stored sizes and fetch rounds as a JSON-ready dict."""
    return {
        "assets": {key.value: len(data) for key, data in result.store.items()},
        "rounds": [[key.value for key in round_keys] for round_keys in result.rounds],
        "total_bytes": result.store.total_bytes(),
    }


def _run_classify_command(args: argparse.Namespace) -> int:
    """Print ``kind<TAB>key`` rows for each identifier."""
    for raw_key in args.keys:
        key = as_asset_key(raw_key)
        print(f"{key.kind.value}\t{key.value}")
    return 0
