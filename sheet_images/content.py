"""Find and rewrite ``<img src=...>`` references inside HTML text."""

from __future__ import annotations

import re
from typing import List, Mapping

IMG_TAG_PATTERN = re.compile(
    r"""<img\b[^>]*?\ssrc\s*=\s*(?:"(?P<dq>[^"]+)"|'(?P<sq>[^']+)')[^>]*>""",
    re.IGNORECASE,
)


def _src_group(match: re.Match) -> str:
    return "dq" if match.group("dq") is not None else "sq"


def extract_image_links(html: str) -> List[str]:
    """Return every quoted ``src`` value of ``<img>`` tags, in document order."""
    if not html:
        return []
    return [match.group(_src_group(match)) for match in IMG_TAG_PATTERN.finditer(html)]


def replace_image_links(html: str, path_map: Mapping[str, str]) -> str:
    """Swap mapped ``src`` values for their local paths, tag by tag.

    Only the ``src`` value of a matched tag changes; tags whose reference is
    not in ``path_map`` and all text outside the tags are left as they are.
    """
    if not html or not path_map:
        return html

    def _substitute(match: re.Match) -> str:
        group = _src_group(match)
        original = match.group(group)
        replacement = path_map.get(original)
        if replacement is None:
            return match.group(0)
        tag = match.group(0)
        start = match.start(group) - match.start()
        end = match.end(group) - match.start()
        return tag[:start] + replacement + tag[end:]

    return IMG_TAG_PATTERN.sub(_substitute, html)
