"""Image downloading and on-disk persistence."""

from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional

import requests

from .config import USER_AGENT, BatchConfig
from .filenames import synthesize_filename
from .models import AssetError, ResolvedAsset
from .urls import resolve_reference

logger = logging.getLogger("sheet_images")

CHUNK_SIZE = 64 * 1024
REQUEST_HEADERS = {"User-Agent": USER_AGENT, "Accept": "*/*"}


def build_session() -> requests.Session:
    """Create a session carrying the browser-like request headers."""
    session = requests.Session()
    session.headers.update(REQUEST_HEADERS)
    return session


def _expected_length(resp: requests.Response) -> Optional[int]:
    """Declared body size, or None when it cannot be compared with the bytes written."""
    encoding = resp.headers.get("Content-Encoding", "identity").strip().lower()
    if encoding not in ("", "identity"):
        return None
    raw = resp.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        return None
    return length if length > 0 else None


def _stream_to_file(
    session: requests.Session,
    url: str,
    destination: Path,
    timeout: Optional[float],
) -> int:
    partial: Optional[Path] = None
    try:
        with session.get(url, stream=True, timeout=timeout) as resp:
            if not 200 <= resp.status_code < 300:
                raise AssetError(
                    url, f"Failed to download image: {resp.status_code} {resp.reason}"
                )
            expected = _expected_length(resp)
            written = 0
            # per-task file, renamed over the destination once complete
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=destination.parent,
                prefix=destination.name + ".",
                suffix=".part",
                delete=False,
            ) as handle:
                partial = Path(handle.name)
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        handle.write(chunk)
                        written += len(chunk)
            if expected is not None and written != expected:
                raise AssetError(
                    url,
                    f"File size mismatch: expected {expected} bytes, got {written} bytes",
                )
        os.replace(partial, destination)
        partial = None
    except requests.RequestException as exc:
        raise AssetError(url, f"Failed to execute HTTP request: {exc}") from exc
    except OSError as exc:
        raise AssetError(url, f"Failed to save image to file: {exc}") from exc
    finally:
        if partial is not None and partial.exists():
            partial.unlink()
    return written


def download_asset(
    reference: str,
    config: BatchConfig,
    session: requests.Session,
) -> ResolvedAsset:
    """Fetch one image reference and store it under the configured image dir.

    Files that already exist are reported as resolved without touching the
    network. Every failure surfaces as ``AssetError``.
    """
    try:
        absolute_url = resolve_reference(reference, config.hostname)
    except ValueError as exc:
        raise AssetError(reference, str(exc)) from exc

    filename = synthesize_filename(absolute_url, config.hash_length)
    image_dir = config.image_dir
    try:
        image_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise AssetError(reference, f"Failed to create directory: {exc}") from exc

    destination = image_dir / filename
    asset = ResolvedAsset(
        reference=reference,
        absolute_url=absolute_url,
        filename=filename,
        local_path=destination,
        relative_path=config.url_prefix + filename,
    )

    if destination.is_file():
        logger.debug("File already exists: %s", destination)
        asset.downloaded = False
        return asset

    attempts = config.retries + 1
    for attempt in range(1, attempts + 1):
        try:
            written = _stream_to_file(session, absolute_url, destination, config.timeout)
            break
        except AssetError as exc:
            if attempt == attempts:
                raise AssetError(reference, str(exc)) from exc
            logger.debug(
                "Attempt %d/%d failed for %s: %s", attempt, attempts, absolute_url, exc
            )
            time.sleep(0.5 * attempt)

    logger.info("Downloaded image: %s (%d bytes)", destination, written)
    return asset
