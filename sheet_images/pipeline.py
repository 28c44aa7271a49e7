"""High-level orchestration: collect links, fetch images, rewrite rows."""

from __future__ import annotations

import logging
import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import requests

from .config import BatchConfig
from .content import extract_image_links, replace_image_links
from .images import build_session, download_asset
from .models import (
    AssetError,
    BatchError,
    BatchResult,
    Phase,
    PreflightDecision,
    PreflightReport,
    ProgressEvent,
)
from .tabular import Records, fetch_csv, read_csv, spreadsheet_csv_url, write_csv

logger = logging.getLogger("sheet_images")

ProgressCallback = Callable[[ProgressEvent], None]


class ProgressTracker:
    """Thread-safe step counter shared by the download and rewrite phases."""

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self.total = 0
        self.completed = 0

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.completed / self.total)

    def report(self, phase: Phase, status: str) -> None:
        """Publish the current fraction with a new status line."""
        logger.debug("%s: %s", phase.value, status)
        if self._callback is not None:
            self._callback(ProgressEvent(phase=phase, fraction=self.fraction, status=status))

    def advance_locked(self, phase: Phase, status: str) -> None:
        """Count one finished step; the caller must hold ``lock``."""
        self.completed += 1
        self.report(phase, status)

    def reset(self, total: int) -> None:
        with self._lock:
            self.total = total
            self.completed = 0


def preflight(config: BatchConfig) -> PreflightReport:
    """Look for an image directory or output file left by an earlier run."""
    output_path = Path(config.output_path)
    if output_path.is_dir():
        return PreflightReport(
            decision=PreflightDecision.ABORT,
            existing=[output_path],
            reason=f"Output path '{output_path}' is a directory",
        )
    existing = [path for path in (config.image_dir, output_path) if path.exists()]
    if existing:
        return PreflightReport(
            decision=PreflightDecision.OVERWRITE_REQUESTED,
            existing=existing,
            reason="Existing output would be replaced",
        )
    return PreflightReport(decision=PreflightDecision.PROCEED)


def clear_previous_outputs(paths: Iterable[Path]) -> None:
    """Delete files and directories found by ``preflight``."""
    for path in paths:
        try:
            if path.is_dir():
                shutil.rmtree(path)
            elif path.exists():
                path.unlink()
        except OSError as exc:
            raise BatchError(f"Failed to delete '{path}': {exc}", Phase.IDLE) from exc
        logger.info("Removed %s", path)


def validate_schema(records: Records, columns: Sequence[str]) -> Dict[str, int]:
    """Return the index of each required column in the header row."""
    if len(records) < 2:
        raise BatchError("No data in CSV", Phase.VALIDATING_SCHEMA)
    header_map = {name: index for index, name in enumerate(records[0])}
    for column in columns:
        if column not in header_map:
            raise BatchError(f"Missing required column: {column}", Phase.VALIDATING_SCHEMA)
    return {column: header_map[column] for column in columns}


def _html_cells(row: Sequence[str], indexes: Iterable[int]) -> Iterable[Tuple[int, str]]:
    for index in indexes:
        if index < len(row):
            yield index, row[index]


def collect_references(records: Records, column_indexes: Dict[str, int]) -> Set[str]:
    """Gather the distinct image references cited by all data rows."""
    references: Set[str] = set()
    for row in records[1:]:
        for _, html in _html_cells(row, column_indexes.values()):
            references.update(extract_image_links(html))
    return references


def download_assets(
    references: Iterable[str],
    config: BatchConfig,
    session: requests.Session,
    tracker: ProgressTracker,
) -> Tuple[Dict[str, str], List[str]]:
    """Fetch every reference once and map it to its relative local path.

    Each task records its own result under the tracker's lock. The pool is
    joined before returning, so callers only ever see the complete map.
    """
    pending = sorted(references)
    total_images = len(pending)
    path_map: Dict[str, str] = {}
    failed: List[str] = []
    finished = 0
    if not pending:
        return path_map, failed

    def _fetch(reference: str) -> None:
        nonlocal finished
        relative_path: Optional[str] = None
        try:
            relative_path = download_asset(reference, config, session).relative_path
        except AssetError as exc:
            logger.warning("Error downloading image %s: %s", reference, exc)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error downloading image %s", reference)

        with tracker.lock:
            if relative_path is None:
                failed.append(reference)
            else:
                path_map[reference] = relative_path
            finished += 1
            tracker.advance_locked(
                Phase.DOWNLOADING_ASSETS,
                f"Downloaded {finished} of {total_images} images\nloading {reference}",
            )

    workers = config.max_workers or total_images
    workers = max(1, min(workers, total_images))
    logger.info("Downloading %d image(s) with %d worker(s)", total_images, workers)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_fetch, reference) for reference in pending]
    for future in futures:
        future.result()
    return path_map, sorted(failed)


def rewrite_records(
    records: Records,
    column_indexes: Dict[str, int],
    path_map: Dict[str, str],
    tracker: ProgressTracker,
) -> None:
    """Rewrite the HTML columns of every data row in place."""
    indexes = list(column_indexes.values())
    total_rows = len(records) - 1
    for number, row in enumerate(records[1:], start=1):
        for index, html in list(_html_cells(row, indexes)):
            row[index] = replace_image_links(html, path_map)
        with tracker.lock:
            tracker.advance_locked(
                Phase.REWRITING_ROWS, f"Rewritten {number} of {total_rows} rows"
            )


def process_records(
    records: Records,
    config: BatchConfig,
    session: Optional[requests.Session] = None,
    progress: Optional[ProgressCallback] = None,
) -> BatchResult:
    """Run validation, download, rewrite and output for parsed records."""
    tracker = ProgressTracker(progress)

    tracker.report(Phase.VALIDATING_SCHEMA, "Processing records...")
    column_indexes = validate_schema(records, config.columns)

    tracker.report(Phase.COLLECTING_REFERENCES, "Collecting image links...")
    references = collect_references(records, column_indexes)
    logger.info(
        "Found %d distinct image reference(s) in %d row(s)",
        len(references),
        len(records) - 1,
    )

    tracker.reset(len(references) + len(records) - 1)
    owns_session = session is None
    active_session = build_session() if session is None else session
    try:
        tracker.report(Phase.DOWNLOADING_ASSETS, "Downloading images...")
        path_map, failed = download_assets(references, config, active_session, tracker)
    finally:
        if owns_session:
            active_session.close()

    tracker.report(Phase.REWRITING_ROWS, "Rewriting rows...")
    rewrite_records(records, column_indexes, path_map, tracker)

    tracker.report(Phase.WRITING_OUTPUT, "Writing to output file...")
    write_csv(records, config.output_path, config.separator)

    tracker.report(Phase.COMPLETED, "Completed")
    return BatchResult(
        records=records,
        references=sorted(references),
        path_map=path_map,
        failed=failed,
        output_path=Path(config.output_path),
    )


def load_records(
    source: Union[str, Path],
    session: requests.Session,
    timeout: Optional[float] = None,
) -> Records:
    """Read records from a local CSV path or a Google Sheets link."""
    if isinstance(source, Path):
        return read_csv(source)
    return fetch_csv(spreadsheet_csv_url(source), session, timeout=timeout)


def run_batch(
    source: Union[str, Path],
    config: BatchConfig,
    session: Optional[requests.Session] = None,
    progress: Optional[ProgressCallback] = None,
) -> BatchResult:
    """Validate settings, load the source and process it end to end."""
    config.validate()
    start = time.perf_counter()
    owns_session = session is None
    active_session = build_session() if session is None else session
    try:
        if progress is not None:
            progress(ProgressEvent(Phase.FETCHING_SOURCE, 0.0, "Fetching CSV data..."))
        records = load_records(source, active_session, timeout=config.timeout)
        result = process_records(records, config, active_session, progress)
    except BatchError as exc:
        if progress is not None:
            progress(ProgressEvent(Phase.FAILED, 0.0, str(exc)))
        raise
    finally:
        if owns_session:
            active_session.close()

    logger.info(
        "Finished in %.2fs (%d/%d images localized, %d failed)",
        time.perf_counter() - start,
        result.downloaded,
        len(result.references),
        len(result.failed),
    )
    return result
