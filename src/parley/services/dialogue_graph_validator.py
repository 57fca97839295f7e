"""Static dialogue graph validation utilities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, MutableMapping, Sequence

from parley.domain.defs import GraphDef, NodeRef
from parley.domain.errors import UnknownNodeError
from parley.domain.flags import placeholders
from parley.domain.graph import GraphRegistry

Severity = str


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


@dataclass(frozen=True, slots=True)
class EntryRoot:
    reference: str
    source: str = "entry_roots"


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def validate_dialogue_graphs(
    graphs: Mapping[str, GraphDef] | Iterable[GraphDef],
    entry_roots: Sequence[EntryRoot] | Sequence[str],
    *,
    external_graphs: Iterable[str] = (),
) -> list[Issue]:
    """Report content defects that would stop a session at runtime.

    Errors cover missing entry nodes, dangling jumps, nodes without choices
    and cycles of unconditional hidden choices. Warnings cover unreachable
    nodes and variables that no input choice ever captures.
    """
    graph_map = dict(graphs) if isinstance(graphs, Mapping) else {graph.name: graph for graph in graphs}
    external = set(external_graphs)
    issues: list[Issue] = []

    edges: dict[NodeRef, list[NodeRef]] = {}
    hidden_edges: MutableMapping[NodeRef, NodeRef] = {}
    captured: set[str] = set()
    referenced: dict[str, NodeRef] = {}

    for graph in graph_map.values():
        for node in graph.nodes.values():
            here = NodeRef(graph=graph.name, node=node.id)
            edges[here] = []
            first_hidden = True
            if not node.choices:
                issues.append(
                    Issue(
                        severity="ERROR",
                        code="EMPTY_NODE",
                        message="Node has no choices.",
                        context={"node": str(here)},
                    )
                )
            for line in node.prompt:
                for name in placeholders(line.text):
                    referenced.setdefault(name, here)
            for index, choice in enumerate(node.choices):
                leads_auto_advance = choice.is_hidden and first_hidden
                if choice.is_hidden:
                    first_hidden = False
                if choice.input is not None:
                    captured.add(choice.input.variable)
                if choice.response is not None:
                    for name in placeholders(choice.response.text):
                        referenced.setdefault(name, here)
                if choice.ending is not None:
                    for line in choice.ending.lines:
                        for name in placeholders(line.text):
                            referenced.setdefault(name, here)
                    continue
                assert choice.jump is not None
                target = _check_jump(here, index, choice.jump, graph_map, external, issues)
                if target is None:
                    continue
                edges[here].append(target)
                if leads_auto_advance and not choice.notes.require and choice.notes.once is None:
                    hidden_edges[here] = target

    roots = _check_entry_roots(_coerce_entry_roots(entry_roots), graph_map, issues)
    _validate_reachability(edges, roots, issues)
    _validate_hidden_cycles(hidden_edges, issues)
    for name in sorted(set(referenced) - captured):
        issues.append(
            Issue(
                severity="WARN",
                code="UNCAPTURED_VARIABLE",
                message="Variable is referenced but no input choice captures it.",
                context={"variable": name, "node": str(referenced[name])},
            )
        )
    return issues


def _check_jump(
    here: NodeRef,
    index: int,
    reference: str,
    graph_map: Mapping[str, GraphDef],
    external: set[str],
    issues: list[Issue],
) -> NodeRef | None:
    context = {"node": str(here), "field_path": f"choices[{index}].jump", "referenced_id": reference}
    try:
        target = GraphRegistry.split_reference(here.graph, reference)
    except UnknownNodeError:
        issues.append(
            Issue(severity="ERROR", code="MISSING_NODE_REF", message="Malformed jump reference.", context=context)
        )
        return None
    if target.graph in external:
        return None
    graph = graph_map.get(target.graph)
    if graph is None or target.node not in graph.nodes:
        issues.append(
            Issue(severity="ERROR", code="MISSING_NODE_REF", message="Choice references missing node.", context=context)
        )
        return None
    return target


def _coerce_entry_roots(entry_roots: Sequence[EntryRoot] | Sequence[str]) -> list[EntryRoot]:
    return [entry if isinstance(entry, EntryRoot) else EntryRoot(reference=str(entry)) for entry in entry_roots]


def _check_entry_roots(
    entry_roots: Sequence[EntryRoot], graph_map: Mapping[str, GraphDef], issues: list[Issue]
) -> list[NodeRef]:
    roots: list[NodeRef] = []
    for entry in entry_roots:
        try:
            ref = GraphRegistry.split_reference(None, entry.reference)
        except UnknownNodeError:
            ref = None
        graph = graph_map.get(ref.graph) if ref is not None else None
        if ref is None or graph is None or ref.node not in graph.nodes:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_ENTRY_ROOT",
                    message="Entry root references missing node.",
                    context={"source": entry.source, "referenced_id": entry.reference},
                )
            )
            continue
        roots.append(ref)
    return roots


def _validate_reachability(
    edges: Mapping[NodeRef, list[NodeRef]], roots: Sequence[NodeRef], issues: list[Issue]
) -> None:
    reachable: set[NodeRef] = set()
    stack = list(roots)
    while stack:
        ref = stack.pop()
        if ref in reachable:
            continue
        reachable.add(ref)
        stack.extend(edges.get(ref, []))
    for ref in sorted(set(edges) - reachable, key=str):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_NODE",
                message="Node is unreachable from entry roots.",
                context={"node": str(ref)},
            )
        )


def _validate_hidden_cycles(hidden_edges: Mapping[NodeRef, NodeRef], issues: list[Issue]) -> None:
    """Find loops made only of hidden choices that no flag can ever break."""
    visited: set[NodeRef] = set()
    reported: set[frozenset[NodeRef]] = set()
    for start in sorted(hidden_edges, key=str):
        if start in visited:
            continue
        path: list[NodeRef] = []
        on_path: set[NodeRef] = set()
        current: NodeRef | None = start
        while current is not None and current not in visited:
            visited.add(current)
            path.append(current)
            on_path.add(current)
            current = hidden_edges.get(current)
        if current is None or current not in on_path:
            continue
        cycle = path[path.index(current) :]
        key = frozenset(cycle)
        if key in reported:
            continue
        reported.add(key)
        cycle_path = " -> ".join(str(ref) for ref in cycle + [cycle[0]])
        issues.append(
            Issue(
                severity="ERROR",
                code="HIDDEN_CHOICE_CYCLE",
                message="Hidden choices loop forever without a player decision.",
                context={"cycle": cycle_path},
            )
        )
