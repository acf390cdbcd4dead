# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Texture Shrinker

Recursively downscales textures in place with ImageMagick, optionally
converting them to another format. Images already within the size limit
are passed through unchanged; nothing is ever upscaled.

Prerequisites:
    - Requires: ImageMagick (magick, or convert for v6)
    - Optional: exiftool (dimension preview in dry-run mode)

Usage:
    shrink-textures ~/Mods/Textures -e dds,tga -m 1024 --dry-run
    python -m texture_shrink ~/Mods/Textures -e tif -t png --backup
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Final

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .config import DEFAULT_LOG_NAME, DEFAULT_MAX_EDGE, DEFAULT_SKIP_MARKER, RunConfig
from .engine import MagickEngine
from .errors import SetupError, ValidationError
from .formats import CapabilityTable, load_capabilities
from .pipeline import FAILED_PREVIEW_LIMIT, Outcome, RunSummary, TranscodeResult, run_pipeline
from .probe import ExifProbe, exiftool_available

__all__: Final[list[str]] = ["main", "parse_arguments"]

EXIT_OK: Final[int] = 0
EXIT_SETUP_ERROR: Final[int] = 1
EXIT_FILES_FAILED: Final[int] = 2
EXIT_INTERRUPTED: Final[int] = 130

# Rich console for output
console = Console()

logger = logging.getLogger("texture_shrink")


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="shrink-textures",
        description="Shrink textures in place with ImageMagick (never upscales).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Files are written to a temporary sibling first and only replace the original
once the engine has succeeded. Format conversions delete the original only
after the new file is in place.

Environment variables:
  TEXTURE_SHRINK_MAGICK        ImageMagick binary (default: magick, then convert)
  TEXTURE_SHRINK_MAX_EDGE      Default max edge (default: {DEFAULT_MAX_EDGE})
  TEXTURE_SHRINK_LOG_NAME      Default log file name (default: {DEFAULT_LOG_NAME})
  TEXTURE_SHRINK_SKIP_MARKER   Default skip marker (default: {DEFAULT_SKIP_MARKER})

Examples:
  %(prog)s textures -e png,tga -m 1024           # Shrink PNG and TGA to 1024px
  %(prog)s textures -e tif -t png --backup       # Convert TIFF to PNG, keep .bak copies
  %(prog)s textures -e png --dry-run             # Only log what would happen
  %(prog)s --list-formats                        # Show engine format support
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "root",
        type=Path,
        nargs="?",
        help="Directory to process recursively",
    )
    parser.add_argument(
        "-m",
        "--max-edge",
        type=int,
        default=None,
        metavar="PX",
        help=f"Longest allowed edge in pixels (default: {DEFAULT_MAX_EDGE})",
    )
    parser.add_argument(
        "-e",
        "--ext",
        action="append",
        default=[],
        metavar="EXT",
        help="Input extension(s); repeatable or comma separated (e.g. png,tga)",
    )
    parser.add_argument(
        "-t",
        "--to",
        default="",
        metavar="FORMAT",
        help="Convert to this format (default: keep original format)",
    )
    parser.add_argument(
        "--strip",
        action="store_true",
        help="Strip metadata and embedded profiles",
    )
    parser.add_argument(
        "--max-png-compression",
        action="store_true",
        help="Use the strongest PNG compression when writing PNG",
    )
    parser.add_argument(
        "--skip-marked",
        action="store_true",
        help="Skip files whose name contains the skip marker",
    )
    parser.add_argument(
        "--marker",
        default=None,
        metavar="TEXT",
        help=f"Skip marker used with --skip-marked (default: {DEFAULT_SKIP_MARKER})",
    )
    parser.add_argument(
        "--pixel-art",
        action="store_true",
        help="Resample with nearest neighbour (keeps hard pixel edges)",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Log what would be done without modifying files",
    )
    parser.add_argument(
        "--backup",
        action="store_true",
        help="Copy each original to <name>.bak before the first change",
    )
    parser.add_argument(
        "--log",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write a run log into the target directory (default: on)",
    )
    parser.add_argument(
        "--log-name",
        default=None,
        metavar="NAME",
        help=f"Run log file name (default: {DEFAULT_LOG_NAME})",
    )
    parser.add_argument(
        "--list-formats",
        action="store_true",
        help="List formats the engine can read and write, then exit",
    )
    parser.add_argument(
        "--magick",
        default=None,
        metavar="BIN",
        help="ImageMagick binary to use",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug output",
    )

    args = parser.parse_args(argv)
    if not args.list_formats and args.root is None:
        parser.error("the following arguments are required: root")
    return args


def configure_logging(verbose: bool) -> None:
    """Route library logging through the shared rich console."""
    handler = RichHandler(console=console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


# ═══════════════════════════════════════════════════════════════════
#                        DISPLAY
# ═══════════════════════════════════════════════════════════════════


def print_formats(capabilities: CapabilityTable) -> None:
    if capabilities.is_empty:
        console.print("[yellow]The engine reported no formats.[/]")
        return

    table = Table(title="Engine Formats")
    table.add_column("Format", style="cyan")
    table.add_column("Module")
    table.add_column("Read")
    table.add_column("Write")
    table.add_column("Multi")
    table.add_column("Description", style="dim")

    def mark(value: bool) -> str:
        return "[green]yes[/]" if value else "-"

    for entry in sorted(capabilities, key=lambda e: e.token):
        table.add_row(
            entry.token,
            entry.module,
            mark(entry.readable),
            mark(entry.writable),
            mark(entry.multi_frame),
            entry.description,
        )
    console.print(table)


def print_config(config: RunConfig) -> None:
    table = Table(title="Run Configuration", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.describe():
        table.add_row(key, value)
    console.print(table)


def print_summary(summary: RunSummary, *, dry_run: bool) -> None:
    table = Table(title="Dry Run Summary" if dry_run else "Run Summary")
    table.add_column("Result", style="cyan")
    table.add_column("Files", justify="right")
    table.add_row("[green]OK[/]", str(summary.succeeded))
    table.add_row("[dim]Skipped[/]", str(summary.skipped))
    table.add_row("[red]Failed[/]", str(summary.failed))
    if summary.excluded:
        table.add_row("[dim]Excluded by location[/]", str(summary.excluded))
    if summary.stale_removed:
        table.add_row("[dim]Stale temp files removed[/]", str(summary.stale_removed))
    console.print(table)

    preview = summary.preview_failures(FAILED_PREVIEW_LIMIT)
    if preview:
        console.print("\n[red]Failed files:[/]")
        for path in preview:
            console.print(f"  {escape(str(path))}")
        remaining = summary.failed - len(preview)
        if remaining > 0:
            console.print(f"  [dim]... and {remaining} more[/]")

    if summary.cancelled:
        console.print("[yellow]Run stopped before all files were processed.[/]")
    if summary.log_path is not None:
        console.print(f"\nLog: {summary.log_path}")


def _status_line(result: TranscodeResult) -> str:
    name = escape(result.source.name)
    match result.outcome:
        case Outcome.SUCCEEDED if result.converted and result.destination is not None:
            return f"[green]✓[/] {name} → {escape(result.destination.name)}"
        case Outcome.SUCCEEDED:
            return f"[green]✓[/] {name}"
        case Outcome.FAILED:
            return f"[red]✗[/] {name}: {escape(result.reason)}"
        case _:
            return f"[dim]- {name} ({result.reason})[/]"


# ═══════════════════════════════════════════════════════════════════
#                        MAIN ENTRY POINT
# ═══════════════════════════════════════════════════════════════════


def run(args: argparse.Namespace) -> int:
    """Execute a parsed command line and return the exit code."""
    engine = MagickEngine.detect(args.magick)
    capabilities = load_capabilities(engine)

    if args.list_formats:
        print_formats(capabilities)
        return EXIT_OK

    config = RunConfig.create(
        root=args.root,
        extensions=args.ext,
        max_edge=args.max_edge,
        output_format=args.to,
        strip_metadata=args.strip,
        max_png_compression=args.max_png_compression,
        skip_marked=args.skip_marked,
        skip_marker=args.marker,
        pixel_art=args.pixel_art,
        dry_run=args.dry_run,
        create_backup=args.backup,
        write_log=args.log,
        log_name=args.log_name,
    )
    print_config(config)
    if config.dry_run:
        console.print("[yellow]Dry run: no files will be modified[/]\n")

    with contextlib.ExitStack() as stack:
        probe = None
        if config.dry_run and exiftool_available():
            probe = stack.enter_context(ExifProbe())

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Shrinking textures...", total=None)

            def on_progress(done: int, total: int, result: TranscodeResult) -> None:
                progress.update(task, completed=done, total=total)
                if args.verbose or result.outcome is Outcome.FAILED:
                    progress.console.print(_status_line(result))

            summary = run_pipeline(
                config,
                engine,
                capabilities,
                probe=probe,
                on_progress=on_progress,
            )

    print_summary(summary, dry_run=config.dry_run)
    return EXIT_FILES_FAILED if summary.failed else EXIT_OK


def main(argv: Sequence[str] | None = None) -> None:
    """Script entry point."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    console.print("\n[bold]Texture Shrinker[/] (ImageMagick)\n")

    try:
        code = run(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/]")
        sys.exit(EXIT_INTERRUPTED)
    except ValidationError as e:
        console.print(f"\n[red]Configuration error:[/] {escape(str(e))}")
        sys.exit(EXIT_SETUP_ERROR)
    except SetupError as e:
        console.print(f"\n[red]Setup error:[/] {escape(str(e))}")
        sys.exit(EXIT_SETUP_ERROR)

    sys.exit(code)
