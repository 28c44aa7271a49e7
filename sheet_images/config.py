"""Configuration objects and constants for the image localizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .models import ConfigError

DEFAULT_HOSTNAME = "https://site.com.ua"
DEFAULT_IMAGEDIR = "/content/uploads/images/"
DEFAULT_OUTPUT = "output.csv"
DEFAULT_STORAGE_ROOT = "files"
DEFAULT_SEPARATOR = ";"
DEFAULT_MAX_WORKERS = 16
DEFAULT_HASH_LENGTH = 4
REQUIRED_COLUMNS: Tuple[str, ...] = ("body_uk", "body_ru")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0 Safari/537.36"
)

SEPARATORS = {
    "comma": ",",
    ",": ",",
    "semicolon": ";",
    ";": ";",
    "tab": "\t",
    "\\t": "\t",
    "\t": "\t",
}


def parse_separator(value: str) -> str:
    """Map a separator name or literal to the single delimiter character."""
    if value in SEPARATORS:
        return SEPARATORS[value]
    try:
        return SEPARATORS[value.strip().lower()]
    except KeyError:
        raise ConfigError(
            f"Unsupported separator {value!r}; use comma, semicolon or tab"
        ) from None


@dataclass
class BatchConfig:
    """Settings that control fetching, renaming and rewriting."""

    hostname: str = DEFAULT_HOSTNAME
    imagedir: str = DEFAULT_IMAGEDIR
    output_path: Path = Path(DEFAULT_OUTPUT)
    separator: str = DEFAULT_SEPARATOR
    storage_root: Path = Path(DEFAULT_STORAGE_ROOT)
    columns: Tuple[str, ...] = field(default=REQUIRED_COLUMNS)
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout: Optional[float] = None
    retries: int = 0
    hash_length: int = DEFAULT_HASH_LENGTH

    def missing_fields(self) -> List[str]:
        """Return display names of required settings left empty."""
        missing: List[str] = []
        if not self.hostname.strip():
            missing.append("Hostname")
        if not self.imagedir.strip():
            missing.append("Image Directory")
        if not str(self.output_path).strip() or str(self.output_path) == ".":
            missing.append("Output CSV File Name")
        return missing

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ConfigError(
                "Please fill in the following fields: " + ", ".join(missing)
            )
        if self.separator not in {",", ";", "\t"}:
            raise ConfigError(f"Unsupported separator {self.separator!r}")
        if not self.columns:
            raise ConfigError("At least one HTML column is required")
        if self.max_workers < 0:
            raise ConfigError("max_workers must be zero or positive")
        if self.retries < 0:
            raise ConfigError("retries must be zero or positive")
        if not 1 <= self.hash_length <= 40:
            raise ConfigError("hash_length must be between 1 and 40")

    @property
    def image_dir(self) -> Path:
        """Local directory that receives downloaded files."""
        relative = self.imagedir.strip().strip("/")
        if not relative:
            return Path(self.storage_root)
        return Path(self.storage_root) / relative

    @property
    def url_prefix(self) -> str:
        """Path prefix written into rewritten HTML, always ending in a slash."""
        prefix = self.imagedir.strip()
        if not prefix.endswith("/"):
            prefix += "/"
        return prefix
