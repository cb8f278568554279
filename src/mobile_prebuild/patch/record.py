"""Bookkeeping for a file mutated for one build."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class PatchRecord:
    path: Path
    backup_path: Path | None
    applied: bool = False
