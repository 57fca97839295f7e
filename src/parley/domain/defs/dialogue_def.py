"""Dialogue definition structures used by the runtime."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from parley.core.types import LineMode

NEGATION_MARKER = "!"
PATH_SEPARATOR = "/"


@dataclass(frozen=True, slots=True)
class RequirementTerm:
    """Single flag check inside a ``require`` list."""

    flag: str
    negated: bool = False

    @classmethod
    def parse(cls, token: str) -> "RequirementTerm":
        if token.endswith(NEGATION_MARKER):
            return cls(flag=token[: -len(NEGATION_MARKER)], negated=True)
        return cls(flag=token)

    def __str__(self) -> str:
        return f"{self.flag}{NEGATION_MARKER}" if self.negated else self.flag


@dataclass(frozen=True, slots=True)
class ConditionDef:
    """The ``notes`` block gating and mutating a choice."""

    once: str | None = None
    require: Tuple[RequirementTerm, ...] = ()
    apply: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LineDef:
    text: str
    mode: LineMode = "spoken"


@dataclass(frozen=True, slots=True)
class ResponseDef:
    """Player-facing text of a visible choice."""

    text: str
    mode: LineMode = "spoken"


@dataclass(frozen=True, slots=True)
class InputDef:
    """Free-text capture stored into a variable."""

    variable: str


@dataclass(frozen=True, slots=True)
class EndingDef:
    lines: Tuple[LineDef, ...]


@dataclass(frozen=True, slots=True)
class ChoiceDef:
    """Represents a branch on a dialogue node.

    Exactly one of ``jump`` and ``ending`` is set.
    """

    jump: str | None = None
    ending: EndingDef | None = None
    response: ResponseDef | None = None
    input: InputDef | None = None
    display: bool = True
    lock: bool = False
    tag: str | None = None
    notes: ConditionDef = field(default_factory=ConditionDef)

    @property
    def is_hidden(self) -> bool:
        return self.input is None and (not self.display or self.response is None)


@dataclass(frozen=True, slots=True)
class NodeDef:
    """Fully parsed dialogue node."""

    id: str
    prompt: Tuple[LineDef, ...] = ()
    choices: Tuple[ChoiceDef, ...] = ()


@dataclass(frozen=True, slots=True)
class GraphDef:
    """Named collection of nodes, read-only once loaded."""

    name: str
    nodes: Mapping[str, NodeDef] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, node_id: str) -> NodeDef | None:
        return self.nodes.get(node_id)


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Absolute graph + node address."""

    graph: str
    node: str

    def __str__(self) -> str:
        return f"{self.graph}{PATH_SEPARATOR}{self.node}"
