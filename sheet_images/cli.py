"""Command-line entry point for the spreadsheet image localizer."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .config import (
    DEFAULT_HASH_LENGTH,
    DEFAULT_HOSTNAME,
    DEFAULT_IMAGEDIR,
    DEFAULT_MAX_WORKERS,
    DEFAULT_OUTPUT,
    DEFAULT_STORAGE_ROOT,
    REQUIRED_COLUMNS,
    BatchConfig,
    parse_separator,
)
from .models import BatchError, ConfigError, PreflightDecision, ProgressEvent
from .pipeline import clear_previous_outputs, preflight, run_batch

logger = logging.getLogger("sheet_images.cli")

Confirm = Callable[[str], bool]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Download images referenced by <img> tags in a spreadsheet's HTML columns, "
            "store them under deterministic names and write a CSV pointing at the local copies."
        ),
    )
    parser.add_argument(
        "source",
        help="Google Spreadsheet URL, or the path to a local CSV file with the same columns",
    )
    parser.add_argument(
        "--hostname",
        default=DEFAULT_HOSTNAME,
        help="Base URL used to resolve host-relative image links",
    )
    parser.add_argument(
        "--imagedir",
        default=DEFAULT_IMAGEDIR,
        help="Path prefix written into the HTML and appended to the storage root",
    )
    parser.add_argument(
        "--output",
        default=DEFAULT_OUTPUT,
        type=Path,
        help="CSV file that receives the updated descriptions",
    )
    parser.add_argument(
        "--separator",
        default="semicolon",
        help="Output field separator: comma, semicolon or tab",
    )
    parser.add_argument(
        "--storage-root",
        default=DEFAULT_STORAGE_ROOT,
        type=Path,
        help="Local directory under which the image directory is created",
    )
    parser.add_argument(
        "--column",
        dest="columns",
        action="append",
        help=(
            "HTML column to scan and rewrite; repeat for several "
            f"(default: {', '.join(REQUIRED_COLUMNS)})"
        ),
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help="Maximum concurrent downloads; 0 starts one worker per image",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: wait indefinitely)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Extra download attempts per image after a failure (default: 0)",
    )
    parser.add_argument(
        "--hash-length",
        type=int,
        default=DEFAULT_HASH_LENGTH,
        help="Number of hex characters of the URL hash used in filenames",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Delete an existing image directory and output file without asking",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Keep the existing image directory and skip images already downloaded",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BatchConfig:
    return BatchConfig(
        hostname=args.hostname,
        imagedir=args.imagedir,
        output_path=args.output,
        separator=parse_separator(args.separator),
        storage_root=args.storage_root,
        columns=tuple(args.columns or REQUIRED_COLUMNS),
        max_workers=args.max_workers,
        timeout=args.timeout,
        retries=args.retries,
        hash_length=args.hash_length,
    )


def _ask(question: str) -> bool:
    if not sys.stdin.isatty():
        return False
    answer = input(f"{question} [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def resolve_conflicts(
    config: BatchConfig,
    force: bool = False,
    resume: bool = False,
    confirm: Optional[Confirm] = None,
) -> bool:
    """Apply the pre-flight decision; return False when the run must stop."""
    confirm = confirm or _ask
    report = preflight(config)
    if report.decision is PreflightDecision.ABORT:
        logger.error("%s, aborting...", report.reason)
        return False
    if report.decision is PreflightDecision.PROCEED:
        return True

    to_remove: List[Path] = []
    for path in report.existing:
        if resume and path == config.image_dir:
            logger.info("Resuming into existing directory %s", path)
            continue
        kind = "directory" if path.is_dir() else "output file"
        if not force and not confirm(
            f"The {kind} '{path}' already exists. Do you want to delete it and proceed?"
        ):
            logger.error("Operation Aborted: '%s' exists", path)
            return False
        to_remove.append(path)
    clear_previous_outputs(to_remove)
    return True


def _log_progress(event: ProgressEvent) -> None:
    logger.debug(
        "[%3.0f%%] %s", event.fraction * 100, event.status.replace("\n", " | ")
    )


def _source(value: str) -> Union[str, Path]:
    candidate = Path(value).expanduser()
    if candidate.is_file():
        return candidate
    return value


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )

    if not args.source.strip():
        logger.error("Please fill in the following fields: Spreadsheet URL")
        return 1

    try:
        config = build_config(args)
        config.validate()
        if not resolve_conflicts(config, force=args.force, resume=args.resume):
            return 1
        result = run_batch(_source(args.source), config, progress=_log_progress)
    except (ConfigError, BatchError) as exc:
        logger.error("%s", exc)
        return 1

    for reference in result.failed:
        logger.warning("Left unchanged: %s", reference)
    logger.info(
        "Images downloaded and data processed successfully. Output saved to %s",
        result.output_path,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
