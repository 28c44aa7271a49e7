"""Data models used throughout the localization pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


class Phase(enum.Enum):
    """Stages a batch moves through, in order."""

    IDLE = "Idle"
    FETCHING_SOURCE = "Fetching CSV data"
    VALIDATING_SCHEMA = "Validating columns"
    COLLECTING_REFERENCES = "Collecting image links"
    DOWNLOADING_ASSETS = "Downloading images"
    REWRITING_ROWS = "Rewriting rows"
    WRITING_OUTPUT = "Writing to output file"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PreflightDecision(enum.Enum):
    """Outcome of checking for leftovers from a previous run."""

    PROCEED = "proceed"
    ABORT = "abort"
    OVERWRITE_REQUESTED = "overwrite_requested"


class ConfigError(ValueError):
    """Required settings are missing or invalid."""


class BatchError(RuntimeError):
    """A failure that stops the whole batch without writing output."""

    def __init__(self, message: str, phase: Phase = Phase.FAILED) -> None:
        super().__init__(message)
        self.phase = phase


class AssetError(RuntimeError):
    """A single image could not be resolved, fetched or stored."""

    def __init__(self, reference: str, message: str) -> None:
        super().__init__(message)
        self.reference = reference


@dataclass
class ResolvedAsset:
    """Downloaded (or already present) image stored on disk."""

    reference: str
    absolute_url: str
    filename: str
    local_path: Path
    relative_path: str
    downloaded: bool = True


@dataclass
class ProgressEvent:
    """Snapshot handed to progress listeners."""

    phase: Phase
    fraction: float
    status: str


@dataclass
class PreflightReport:
    """Paths that stand in the way of a fresh run."""

    decision: PreflightDecision
    existing: List[Path] = field(default_factory=list)
    reason: Optional[str] = None


@dataclass
class BatchResult:
    """Summary of a completed batch."""

    records: List[List[str]]
    references: List[str]
    path_map: Dict[str, str]
    failed: List[str]
    output_path: Optional[Path] = None

    @property
    def downloaded(self) -> int:
        return len(self.path_map)
