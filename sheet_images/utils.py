"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

CYRILLIC_TO_LATIN: Mapping[str, str] = MappingProxyType(
    {
        # Ukrainian
        "А": "A", "Б": "B", "В": "V", "Г": "H", "Ґ": "G", "Д": "D", "Е": "E",
        "Є": "Ye", "Ж": "Zh", "З": "Z", "И": "Y", "І": "I", "Ї": "Yi", "Й": "Y",
        "К": "K", "Л": "L", "М": "M", "Н": "N", "О": "O", "П": "P", "Р": "R",
        "С": "S", "Т": "T", "У": "U", "Ф": "F", "Х": "Kh", "Ц": "Ts", "Ч": "Ch",
        "Ш": "Sh", "Щ": "Shch", "Ю": "Yu", "Я": "Ya", "Ь": "",
        "а": "a", "б": "b", "в": "v", "г": "h", "ґ": "g", "д": "d", "е": "e",
        "є": "ye", "ж": "zh", "з": "z", "и": "y", "і": "i", "ї": "yi", "й": "y",
        "к": "k", "л": "l", "м": "m", "н": "n", "о": "o", "п": "p", "р": "r",
        "с": "s", "т": "t", "у": "u", "ф": "f", "х": "kh", "ц": "ts", "ч": "ch",
        "ш": "sh", "щ": "shch", "ю": "yu", "я": "ya", "ь": "",
        # Russian-only letters
        "Ё": "E", "Ы": "Y", "Э": "E", "Ъ": "",
        "ё": "e", "ы": "y", "э": "e", "ъ": "",
    }
)

_FORBIDDEN_PATTERN = re.compile(r"[^a-z0-9-]+")


def transliterate(value: str) -> str:
    """Convert Cyrillic to Latin and reduce the result to ``[a-z0-9-]``."""
    latin = "".join(CYRILLIC_TO_LATIN.get(char, char) for char in value)
    latin = latin.replace(" ", "-").lower()
    return _FORBIDDEN_PATTERN.sub("", latin)
