"""
Project-wide filesystem helpers for the mosaic worker.

Provides absolute paths for the few directories the worker and its command-line
caller write to, so that code does not rely on the current working directory
(which varies between CLI runs, spawned worker processes and tests). Importing
this module guarantees that the expected writable folders exist.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


PROJECT_ROOT = Path(__file__).resolve().parent
OUTPUT_DIR = PROJECT_ROOT / "outputs"
LOG_DIR = PROJECT_ROOT / "logs"


def ensure_directories(directories: Iterable[Path]) -> None:
    """Create the given directories (and parents) if they do not exist."""
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


# Ensure writable directories are present once the module is imported.
ensure_directories((OUTPUT_DIR, LOG_DIR))
