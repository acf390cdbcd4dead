# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Aryan Ameri
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""
Run coordinator.

Per file::

    Pending -> [dry run] -> backup? -> transcode -> commit -> [succeeded]
                                           |          |
                                           +----------+--> [failed]

Files are processed strictly one at a time in resolver order. A failure is
recorded and the run continues; only setup problems abort a run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import Path
from typing import Final, TypeAlias

from .config import RunConfig
from .engine import ConversionEngine, compute_shrink_size, transcode
from .errors import NoFilesError, ValidationError
from .formats import CapabilityTable
from .path_filter import should_skip_by_name
from .replace import commit, discard_temp, ensure_backup, planned_destination, temp_path_for
from .resolver import CandidateFile, resolve
from .run_log import RunLog

__all__: Final[list[str]] = [
    "FAILED_PREVIEW_LIMIT",
    "Outcome",
    "RunSummary",
    "TranscodeResult",
    "process_file",
    "run_pipeline",
    "validate_run",
]

logger = logging.getLogger(__name__)

# Failed paths surfaced to the caller; the log keeps the full list
FAILED_PREVIEW_LIMIT: Final[int] = 10

# Type aliases
Dimensions: TypeAlias = tuple[int, int]
DimensionProbe: TypeAlias = Callable[[Path], Dimensions | None]
ProgressCallback: TypeAlias = Callable[[int, int, "TranscodeResult"], None]
StopCheck: TypeAlias = Callable[[], bool]


# ═══════════════════════════════════════════════════════════════════
#                        RESULTS
# ═══════════════════════════════════════════════════════════════════


class Outcome(StrEnum):
    """Terminal state of one file."""

    SUCCEEDED = auto()
    DRY_RUN = auto()
    SKIPPED = auto()
    FAILED = auto()


@dataclass(frozen=True, slots=True, kw_only=True)
class TranscodeResult:
    """Outcome for a single candidate file."""

    source: Path
    outcome: Outcome
    destination: Path | None = None
    reason: str = ""

    @property
    def converted(self) -> bool:
        return self.destination is not None and self.destination != self.source


@dataclass(frozen=True, slots=True, kw_only=True)
class RunSummary:
    """Read-only totals of a finished run."""

    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    failed_paths: tuple[Path, ...] = ()
    excluded: int = 0
    stale_removed: int = 0
    log_path: Path | None = None
    cancelled: bool = False

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + self.failed

    def preview_failures(self, limit: int = FAILED_PREVIEW_LIMIT) -> tuple[Path, ...]:
        """First ``limit`` failed paths, for display."""
        return self.failed_paths[:limit]


# ═══════════════════════════════════════════════════════════════════
#                        VALIDATION
# ═══════════════════════════════════════════════════════════════════


def validate_run(config: RunConfig, capabilities: CapabilityTable) -> None:
    """Re-check run invariants before anything is touched.

    Raises:
        ValidationError: If the root is missing, no extension is selected,
            or the output format is not writable by the engine.
    """
    if not config.root.exists():
        raise ValidationError(f"Target directory does not exist: {config.root}")
    if not config.root.is_dir():
        raise ValidationError(f"Target path is not a directory: {config.root}")
    if not config.extensions:
        raise ValidationError("no input extensions selected")

    if config.output_format:
        if capabilities.is_empty:
            raise ValidationError(
                f"Cannot convert to {config.output_format!r}: engine formats "
                "unknown, only keeping the original format is available"
            )
        if config.output_format not in capabilities.writable_extensions:
            raise ValidationError(
                f"Output format {config.output_format!r} is not writable by the engine"
            )


# ═══════════════════════════════════════════════════════════════════
#                        PER-FILE PROCESSING
# ═══════════════════════════════════════════════════════════════════


def process_file(
    candidate: CandidateFile,
    config: RunConfig,
    engine: ConversionEngine,
) -> TranscodeResult:
    """Backup, transcode and commit one file.

    Raises:
        TranscodeError: If the engine produced no usable output.
        CommitError: If the output could not be moved into place.
        OSError: If the backup copy fails.
    """
    source = candidate.path
    destination = planned_destination(source, config.output_format)

    if config.create_backup:
        backup = ensure_backup(source)
        if backup is not None:
            logger.debug("Backed up %s", backup)

    temp = temp_path_for(destination)
    try:
        transcode(engine, source, temp, config.transcode_options)
        commit(source, temp, destination)
    finally:
        discard_temp(temp)

    return TranscodeResult(
        source=source, outcome=Outcome.SUCCEEDED, destination=destination
    )


def _plan_dimensions(
    probe: DimensionProbe | None, source: Path, max_edge: int
) -> tuple[Dimensions, Dimensions] | None:
    if probe is None:
        return None
    try:
        dims = probe(source)
    except Exception as exc:
        logger.warning("Could not read dimensions of %s: %s", source, exc)
        return None
    if dims is None:
        return None
    return dims, compute_shrink_size(*dims, max_edge)


def _remove_stale_temps(paths: tuple[Path, ...]) -> int:
    """Delete temp artifacts left by an interrupted earlier run."""
    removed = 0
    for path in paths:
        logger.info("Removing stale temporary file %s", path)
        discard_temp(path)
        if not path.exists():
            removed += 1
    return removed


# ═══════════════════════════════════════════════════════════════════
#                        RUN
# ═══════════════════════════════════════════════════════════════════


def run_pipeline(
    config: RunConfig,
    engine: ConversionEngine,
    capabilities: CapabilityTable,
    *,
    probe: DimensionProbe | None = None,
    on_progress: ProgressCallback | None = None,
    should_stop: StopCheck | None = None,
) -> RunSummary:
    """Shrink every matching file under ``config.root``.

    Args:
        config: Validated run configuration.
        engine: Conversion engine used for every file.
        capabilities: Engine format table, queried once before the run.
        probe: Optional dimension reader used to annotate dry-run lines.
        on_progress: Called as ``(done, total, result)`` after each file.
        should_stop: Checked before each file; returning True ends the run
            early without touching the remaining files.

    Raises:
        SetupError: For problems that prevent the run from starting.
    """
    validate_run(config, capabilities)

    files = resolve(config.root, config.extensions)
    if not files:
        message = f"No files matching {', '.join(config.extensions)} under {config.root}"
        if files.excluded:
            message += f" ({len(files.excluded)} excluded by location)"
        raise NoFilesError(message)
    for path in files.excluded:
        logger.debug("Excluded by location: %s", path)

    total = len(files)
    succeeded = skipped = failed = 0
    failed_paths: list[Path] = []
    cancelled = False

    with RunLog(config.log_path) as run_log:
        run_log.start(config.describe())
        stale_removed = 0 if config.dry_run else _remove_stale_temps(files.stale_temps)

        for index, candidate in enumerate(files, start=1):
            if should_stop is not None and should_stop():
                cancelled = True
                logger.info("Stopping after %d of %d file(s)", index - 1, total)
                break

            source = candidate.path
            destination = planned_destination(source, config.output_format)

            if config.skip_marked and should_skip_by_name(source, config.skip_marker):
                result = TranscodeResult(
                    source=source, outcome=Outcome.SKIPPED, reason="name marker"
                )
                run_log.skipped(source, result.reason)
            elif config.dry_run:
                plan = _plan_dimensions(probe, source, config.max_edge)
                result = TranscodeResult(
                    source=source,
                    outcome=Outcome.DRY_RUN,
                    destination=destination,
                    reason="dry run",
                )
                run_log.dry_run(source, destination, plan)
            else:
                try:
                    result = process_file(candidate, config, engine)
                except Exception as exc:
                    logger.debug("Processing %s failed", source, exc_info=True)
                    result = TranscodeResult(
                        source=source,
                        outcome=Outcome.FAILED,
                        destination=destination,
                        reason=str(exc) or type(exc).__name__,
                    )
                    run_log.failed(source, result.reason)
                else:
                    run_log.ok(source, result.destination)

            match result.outcome:
                case Outcome.SUCCEEDED:
                    succeeded += 1
                case Outcome.FAILED:
                    failed += 1
                    failed_paths.append(source)
                case _:
                    skipped += 1

            if on_progress is not None:
                on_progress(index, total, result)

        run_log.finish(
            succeeded=succeeded,
            skipped=skipped,
            failed=failed,
            failed_paths=failed_paths,
            excluded=len(files.excluded),
            stale_removed=stale_removed,
            cancelled=cancelled,
        )

    return RunSummary(
        succeeded=succeeded,
        skipped=skipped,
        failed=failed,
        failed_paths=tuple(failed_paths),
        excluded=len(files.excluded),
        stale_removed=stale_removed,
        log_path=config.log_path,
        cancelled=cancelled,
    )
