"""Helpers for resolving content file locations."""
from __future__ import annotations

import os
from pathlib import Path

DEFINITIONS_ENV_VAR = "PARLEY_DEFINITIONS"


def get_repo_root() -> Path:
    """Return the repository root."""
    return Path(__file__).resolve().parents[3]


def get_definitions_path(base_path: Path | str | None = None) -> Path:
    """Return the directory containing content definitions.

    An explicit ``base_path`` wins, then the PARLEY_DEFINITIONS environment
    variable, then ``data/definitions`` in the repository.
    """
    if base_path is not None:
        return Path(base_path)
    override = os.environ.get(DEFINITIONS_ENV_VAR)
    if override:
        return Path(override)
    return get_repo_root() / "data" / "definitions"


def get_dialogue_path(base_path: Path | str | None = None) -> Path:
    """Return the directory holding one JSON file per dialogue graph."""
    return get_definitions_path(base_path) / "dialogue"
