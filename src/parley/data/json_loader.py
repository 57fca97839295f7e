"""Low-level JSON helpers for repositories."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Tuple

from .errors import DataLoadError


def load_json(path: Path) -> object:
    """Load JSON from disk and raise DataLoadError on failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Content file not found: {path}") from exc
    except OSError as exc:
        raise DataLoadError(f"Unable to read content file: {path}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"Invalid JSON in {path}: {exc}") from exc


def find_json_documents(directory: Path) -> List[Tuple[str, Path]]:
    """Return ``(key, path)`` for every JSON file below ``directory``.

    The key is the POSIX relative path without the ``.json`` suffix, so
    ``combat/combat.json`` becomes ``combat/combat``. Results are sorted by key.
    """
    if not directory.is_dir():
        raise DataLoadError(f"Content directory not found: {directory}")
    documents = [
        (path.relative_to(directory).with_suffix("").as_posix(), path) for path in directory.rglob("*.json")
    ]
    return sorted(documents)
