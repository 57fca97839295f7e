"""Registry of loaded dialogue graphs and jump resolution."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Set, Tuple

from parley.domain.defs import PATH_SEPARATOR, GraphDef, NodeDef, NodeRef
from parley.domain.errors import UnknownNodeError

logger = logging.getLogger(__name__)


class GraphRegistry:
    """Maps graph names to graphs and resolves path-like node references.

    ``node`` resolves inside the current graph, while ``combat/combat/main``
    resolves node ``main`` of graph ``combat/combat``. Graphs registered as
    external belong to another subsystem and are never resolved here.
    """

    def __init__(self, graphs: Iterable[GraphDef] = (), external: Iterable[str] = ()) -> None:
        self._graphs: Dict[str, GraphDef] = {}
        self._external: Set[str] = set()
        for graph in graphs:
            self.register(graph)
        for name in external:
            self.register_external(name)

    def register(self, graph: GraphDef) -> None:
        if graph.name in self._graphs or graph.name in self._external:
            raise ValueError(f"Graph '{graph.name}' is already registered.")
        self._graphs[graph.name] = graph

    def register_external(self, name: str) -> None:
        if name in self._graphs:
            raise ValueError(f"Graph '{name}' is loaded and cannot also be external.")
        self._external.add(name)

    def is_external(self, name: str) -> bool:
        return name in self._external

    def get(self, name: str) -> GraphDef:
        try:
            return self._graphs[name]
        except KeyError as exc:
            raise KeyError(name) from exc

    def graphs(self) -> list[GraphDef]:
        return [self._graphs[name] for name in sorted(self._graphs)]

    @property
    def external_graphs(self) -> frozenset[str]:
        return frozenset(self._external)

    @staticmethod
    def split_reference(current_graph: str | None, reference: str) -> NodeRef:
        """Turn a jump reference into an absolute address without lookups."""
        graph_name, sep, node_id = reference.rpartition(PATH_SEPARATOR)
        if not sep:
            if current_graph is None:
                raise UnknownNodeError(reference, "relative reference without a current graph")
            return NodeRef(graph=current_graph, node=reference)
        if not graph_name or not node_id:
            raise UnknownNodeError(reference, "empty graph or node segment")
        return NodeRef(graph=graph_name, node=node_id)

    def resolve(self, current_graph: str | None, reference: str) -> Tuple[GraphDef, NodeDef]:
        target = self.split_reference(current_graph, reference)
        graph = self._graphs.get(target.graph)
        if graph is None:
            if target.graph in self._external:
                raise UnknownNodeError(reference, f"graph '{target.graph}' is owned by another subsystem")
            raise UnknownNodeError(reference, f"no graph named '{target.graph}'")
        node = graph.get(target.node)
        if node is None:
            raise UnknownNodeError(reference, f"graph '{target.graph}' has no node '{target.node}'")
        return graph, node
