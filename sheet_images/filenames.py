"""Deterministic local filenames for remote images."""

from __future__ import annotations

import hashlib
import posixpath
import re
from typing import List, Tuple
from urllib.parse import unquote, urlsplit

from .config import DEFAULT_HASH_LENGTH
from .utils import transliterate

DEFAULT_EXTENSION = ".jpg"
_EXTENSION_PATTERN = re.compile(r"[^a-z0-9]+")


def url_digest(url: str, length: int = DEFAULT_HASH_LENGTH) -> str:
    """Short SHA-1 hex prefix of the absolute URL."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:length]


def _path_segments(url: str) -> List[str]:
    path = urlsplit(url).path
    return [unquote(segment) for segment in path.split("/")]


def _split_extension(basename: str) -> Tuple[str, str]:
    stem, ext = posixpath.splitext(basename)
    ext = _EXTENSION_PATTERN.sub("", ext.lower())
    if not ext:
        return stem, DEFAULT_EXTENSION
    return stem, "." + ext


def synthesize_filename(url: str, hash_length: int = DEFAULT_HASH_LENGTH) -> str:
    """Build ``hash-dirtoken-basename.ext`` for an absolute URL.

    The hash of the full URL keeps files apart; the token built from up to two
    parent directories and the basename only make the name readable. Empty
    parts are dropped, so a URL without a path yields ``<hash>.jpg``.
    """
    segments = _path_segments(url)
    basename = segments[-1] if segments else ""
    parents = [segment for segment in segments[:-1] if segment][-2:]

    stem, extension = _split_extension(basename)
    parts = [
        url_digest(url, hash_length),
        transliterate("_".join(parents)),
        transliterate(stem),
    ]
    name = "-".join(part for part in parts if part)
    return name + extension
