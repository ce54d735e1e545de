#!/usr/bin/env python3
"""Command-line entry point for scrubwatch.

Commands:

- ``analyse <file>...`` lists metadata and flags sensitive fields
- ``wipe <file>`` removes metadata, writing a sanitized copy by default
- ``restore <backup>`` copies a backup back over its original
- ``daemon`` watches the configured directories until interrupted
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from loguru import logger

from app.models.schemas import WipeOptions
from app.utils.config import get_settings
from app.utils.errors import ScrubwatchError
from domains.metadata.analyzer import analyze, analyze_files
from domains.sanitize.fileops import restore_backup
from domains.sanitize.pipeline import wipe_file
from domains.sanitize.report import format_analysis_report, format_wipe_result
from domains.watch_daemon.daemon import Daemon


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        prog="scrubwatch",
        description="Analyse and remove identifying metadata from files.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    analyse = commands.add_parser("analyse", aliases=["analyze"], help="Show file metadata.")
    analyse.add_argument("paths", type=Path, nargs="+")

    wipe = commands.add_parser("wipe", help="Remove metadata from a file.")
    wipe.add_argument("path", type=Path)
    wipe.add_argument(
        "--in-place",
        action="store_true",
        help="Modify the original (a .bak backup is created first).",
    )
    wipe.add_argument("--no-inject", action="store_true", help="Do not inject the profile.")
    wipe.add_argument(
        "--no-backup",
        action="store_true",
        help="Delete the backup after a successful in-place wipe.",
    )
    wipe.add_argument(
        "--secure",
        action="store_true",
        help="Overwrite the backup before deleting it (with --no-backup).",
    )

    restore = commands.add_parser("restore", help="Restore an original from its backup.")
    restore.add_argument("backup", type=Path)

    daemon = commands.add_parser("daemon", help="Watch directories and sanitize new files.")
    daemon.add_argument("--config", type=Path, default=None, help="Watch configuration file.")

    commands.add_parser("version", help="Print the version.")

    return parser.parse_args(argv)


def configure_logging(verbose: bool):
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level="DEBUG" if verbose else get_settings().log_level,
    )


def run_analyse(paths: list[Path]) -> int:
    if len(paths) == 1:
        reports = [analyze(str(paths[0]))]
    else:
        reports = analyze_files([str(p) for p in paths])

    for report in reports:
        print(format_analysis_report(report))
    return 0 if len(reports) == len(paths) else 1


def run_restore(backup: Path) -> int:
    original = restore_backup(str(backup))
    logger.success(f"Restored {original} from {backup}")
    return 0


def run_wipe(args: argparse.Namespace) -> int:
    options = WipeOptions(
        inject_profile=not args.no_inject,
        create_copy=not args.in_place,
        keep_backup=not args.no_backup,
        secure_delete=args.secure,
    )
    result = wipe_file(str(args.path), options)
    print(format_wipe_result(result), end="")
    return 0 if result.success else 1


def run_daemon(config: Optional[Path]) -> int:
    daemon = Daemon(config)
    daemon.run_forever()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "version":
        try:
            print(f"scrubwatch {version('scrubwatch')}")
        except PackageNotFoundError:
            print("scrubwatch (not installed)")
        return 0

    try:
        if args.command in ("analyse", "analyze"):
            return run_analyse(args.paths)
        if args.command == "wipe":
            return run_wipe(args)
        if args.command == "restore":
            return run_restore(args.backup)
        if args.command == "daemon":
            return run_daemon(args.config)
    except ScrubwatchError as e:
        logger.error(str(e))
        return 1

    return 1


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
