"""Session-scoped story flags and substitution variables."""
from __future__ import annotations

import re
from typing import Dict, Iterable, Mapping, Set

from parley.domain.errors import UnknownVariableError

_PLACEHOLDER = re.compile(r"<([A-Za-z_][A-Za-z0-9_]*)>")


class FlagStore:
    """Mutable set of boolean flags plus named string variables.

    Flags are only ever added. Setting a flag twice is a no-op.
    """

    def __init__(self, flags: Iterable[str] = (), variables: Mapping[str, str] | None = None) -> None:
        self._flags: Set[str] = set(flags)
        self._variables: Dict[str, str] = dict(variables or {})

    def is_set(self, flag: str) -> bool:
        return flag in self._flags

    def set(self, flag: str) -> bool:
        """Set a flag and return True if it was not set before."""
        if flag in self._flags:
            return False
        self._flags.add(flag)
        return True

    @property
    def flags(self) -> frozenset[str]:
        return frozenset(self._flags)

    def set_variable(self, name: str, value: str) -> None:
        self._variables[name] = value

    def get_variable(self, name: str) -> str:
        try:
            return self._variables[name]
        except KeyError as exc:
            raise UnknownVariableError(name) from exc

    def substitute(self, text: str, pending: Mapping[str, str] | None = None) -> str:
        """Replace ``<name>`` placeholders with their variable values.

        ``pending`` holds values that are not stored yet and win over stored ones.
        """
        overlay = pending or {}

        def _value(match: re.Match[str]) -> str:
            name = match.group(1)
            if name in overlay:
                return overlay[name]
            return self.get_variable(name)

        return _PLACEHOLDER.sub(_value, text)

    def snapshot(self) -> dict[str, object]:
        """Return a plain-data copy suitable for external persistence."""
        return {"flags": sorted(self._flags), "variables": dict(self._variables)}

    @classmethod
    def from_snapshot(cls, payload: Mapping[str, object]) -> "FlagStore":
        flags = payload.get("flags", [])
        variables = payload.get("variables", {})
        if not isinstance(flags, list) or not all(isinstance(flag, str) for flag in flags):
            raise ValueError("snapshot flags must be a list of strings.")
        if not isinstance(variables, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in variables.items()
        ):
            raise ValueError("snapshot variables must map strings to strings.")
        return cls(flags, variables)

    def __repr__(self) -> str:
        return f"FlagStore(flags={sorted(self._flags)!r}, variables={self._variables!r})"


def placeholders(text: str) -> list[str]:
    """Return the variable names referenced by ``text`` in order of appearance."""
    return _PLACEHOLDER.findall(text)
