"""Spreadsheet export URLs plus CSV reading and writing."""

from __future__ import annotations

import csv
import io
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import parse_qs, urlsplit

import requests

from .models import BatchError, Phase

logger = logging.getLogger("sheet_images")

EXPORT_URL_TEMPLATE = (
    "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"
)

Records = List[List[str]]


def _raise_field_size_limit() -> None:
    """Lift the csv module's 128 KiB per-field cap; HTML cells can be larger."""
    limit = sys.maxsize
    while True:
        try:
            csv.field_size_limit(limit)
            return
        except OverflowError:
            limit //= 2


def spreadsheet_csv_url(spreadsheet_url: str) -> str:
    """Translate a Google Sheets link into its CSV export URL.

    The sheet id follows the ``/d/`` path segment. ``gid`` comes from the query
    string, then from a ``#gid=N`` fragment, and defaults to ``0``.
    """
    try:
        parts = urlsplit(spreadsheet_url.strip())
    except ValueError as exc:
        raise BatchError(
            f"Invalid Google Spreadsheet URL: {exc}", Phase.FETCHING_SOURCE
        ) from exc

    segments = parts.path.split("/")
    sheet_id = ""
    for index, segment in enumerate(segments):
        if segment == "d" and index + 1 < len(segments):
            sheet_id = segments[index + 1]
            break
    if not sheet_id:
        raise BatchError("Invalid Google Spreadsheet URL", Phase.FETCHING_SOURCE)

    gid = parse_qs(parts.query).get("gid", [""])[0]
    if not gid and parts.fragment:
        key, sep, value = parts.fragment.partition("=")
        if sep and key == "gid":
            gid = value
    return EXPORT_URL_TEMPLATE.format(sheet_id=sheet_id, gid=gid or "0")


def parse_csv(text: str) -> Records:
    """Parse CSV text, allowing rows of different lengths."""
    _raise_field_size_limit()
    try:
        return list(csv.reader(io.StringIO(text, newline=""), strict=True))
    except csv.Error as exc:
        raise BatchError(f"Failed to parse CSV data: {exc}", Phase.FETCHING_SOURCE) from exc


def fetch_csv(
    csv_url: str,
    session: requests.Session,
    timeout: Optional[float] = None,
) -> Records:
    """Download and parse a CSV export."""
    logger.info("Fetching CSV data from %s", csv_url)
    try:
        resp = session.get(csv_url, timeout=timeout)
    except requests.RequestException as exc:
        raise BatchError(f"Failed to fetch CSV data: {exc}", Phase.FETCHING_SOURCE) from exc
    if resp.status_code != 200:
        raise BatchError(
            f"Failed to fetch CSV data: {resp.status_code} {resp.reason}",
            Phase.FETCHING_SOURCE,
        )
    text = resp.content.decode("utf-8-sig", errors="replace")
    return parse_csv(text)


def read_csv(path: Path) -> Records:
    """Read a local CSV file with the same shape as a spreadsheet export."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise BatchError(f"Failed to read CSV file {path}: {exc}", Phase.FETCHING_SOURCE) from exc
    return parse_csv(text)


def write_csv(records: Sequence[Sequence[str]], path: Path, separator: str) -> None:
    """Write every record, header included, with minimal quoting."""
    try:
        with Path(path).open("w", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, delimiter=separator, lineterminator="\n")
            writer.writerows(records)
    except OSError as exc:
        raise BatchError(f"Failed to write {path}: {exc}", Phase.WRITING_OUTPUT) from exc
    logger.info("Saved %d record(s) to %s", len(records), path)
