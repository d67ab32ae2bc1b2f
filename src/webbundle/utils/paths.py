"""Path and filesystem helper functions."""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path
from typing import Iterable

_CHUNK_SIZE = 1024 * 1024


def ensure_directories(paths: Iterable[Path]) -> list[Path]:
    """Create all directories in the iterable if they do not exist."""

    created_or_existing: list[Path] = []
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)
        created_or_existing.append(directory)
    return created_or_existing


def copy_file(source: Path, destination: Path) -> Path:
    """Copy bytes and metadata from source to destination, replacing it."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, destination)
    return destination


def file_fingerprint(path: Path) -> str:
    """Return the sha256 hex digest of a file's contents."""

    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
