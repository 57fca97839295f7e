"""Base repository implementation for directories of JSON content."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Generic, TypeVar

from parley.data import paths
from parley.data.errors import DataValidationError
from parley.data.json_loader import find_json_documents, load_json

T = TypeVar("T")


class RepositoryBase(Generic[T]):
    """Common caching and loading behavior for repositories.

    Every ``*.json`` file below the repository directory becomes one
    definition, keyed by its relative path without the extension.
    """

    def __init__(self, dirname: str, base_path: Path | str | None = None) -> None:
        self._dirname = dirname
        self._base_path = Path(base_path) if base_path is not None else None
        self._definitions: Dict[str, T] | None = None

    def _get_dir_path(self) -> Path:
        return paths.get_definitions_path(self._base_path) / self._dirname

    def _load_raw(self, file_path: Path) -> dict[str, object]:
        raw = load_json(file_path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {file_path}")
        return raw

    def _build(self, key: str, raw: dict[str, object]) -> T:
        """Convert one raw document into a typed definition."""
        raise NotImplementedError

    def _ensure_loaded(self) -> None:
        if self._definitions is None:
            documents = find_json_documents(self._get_dir_path())
            self._definitions = {key: self._build(key, self._load_raw(path)) for key, path in documents}

    def get(self, def_id: str) -> T:
        """Return a definition by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        try:
            return self._definitions[def_id]
        except KeyError as exc:
            raise KeyError(def_id) from exc

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        self._ensure_loaded()
        assert self._definitions is not None
        return [self._definitions[key] for key in sorted(self._definitions.keys())]

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_list(value: object, context: str) -> list[object]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} must be a list.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str):
            raise DataValidationError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_bool(value: object, context: str) -> bool:
        if not isinstance(value, bool):
            raise DataValidationError(f"{context} must be a boolean.")
        return value

    @staticmethod
    def _reject_unknown_keys(data: dict[str, object], allowed: frozenset[str], context: str) -> None:
        unknown = sorted(key for key in data if key not in allowed)
        if unknown:
            raise DataValidationError(f"{context} has unknown field(s): {', '.join(unknown)}")
