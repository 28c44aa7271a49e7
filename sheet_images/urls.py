"""Turn image references into absolute, fetchable URLs."""

from __future__ import annotations

from urllib.parse import urlsplit


def resolve_reference(reference: str, hostname: str) -> str:
    """Make ``reference`` absolute using ``hostname`` for host-relative paths.

    Protocol-relative references (``//cdn/x.png``) get ``https:``; anything not
    starting with ``http`` is joined onto the hostname with a single slash.
    Raises ``ValueError`` when the result is not a usable http(s) URL.
    """
    if reference.startswith("//"):
        url = "https:" + reference
    elif not reference.startswith("http"):
        url = hostname.rstrip("/") + "/" + reference.lstrip("/")
    else:
        url = reference

    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Invalid image URL: {url}")
    _ = parts.port  # raises ValueError for a malformed port
    return url
