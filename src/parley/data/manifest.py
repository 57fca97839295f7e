"""Content manifest naming the entry node and externally owned graphs."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from parley.data import paths
from parley.data.errors import DataValidationError
from parley.data.json_loader import load_json
from parley.domain.defs import PATH_SEPARATOR

MANIFEST_FILENAME = "manifest.json"


@dataclass(frozen=True, slots=True)
class ContentManifest:
    title: str
    entry: str
    external_graphs: Tuple[str, ...] = ()


def load_manifest(base_path: Path | str | None = None) -> ContentManifest:
    """Load ``manifest.json`` from the definitions directory."""
    manifest_path = paths.get_definitions_path(base_path) / MANIFEST_FILENAME
    raw = load_json(manifest_path)
    if not isinstance(raw, dict):
        raise DataValidationError(f"Expected top-level object in {manifest_path}")

    title = raw.get("title", "Untitled")
    if not isinstance(title, str):
        raise DataValidationError("manifest title must be a string.")
    entry = raw.get("entry")
    if not isinstance(entry, str) or PATH_SEPARATOR not in entry:
        raise DataValidationError("manifest entry must be a 'graph/node' reference.")
    external = raw.get("external_graphs", [])
    if not isinstance(external, list) or not all(isinstance(name, str) and name for name in external):
        raise DataValidationError("manifest external_graphs must be a list of graph names.")
    return ContentManifest(title=title, entry=entry, external_graphs=tuple(external))
