"""In-memory relationship graph built from a node snapshot.

build() never fails: dangling targets and one-sided edges are kept as declared
and left for the checker to report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator, Mapping

    from cnet.models import Node


@dataclass(frozen=True)
class Edge:
    source: str
    type: str
    target: str


@dataclass
class Graph:
    """Adjacency keyed by node id; outgoing (type, target) in declaration order."""

    adjacency: dict[str, list[tuple[str, str]]] = field(default_factory=dict)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.adjacency

    def __len__(self) -> int:
        return len(self.adjacency)

    @property
    def node_ids(self) -> list[str]:
        return sorted(self.adjacency)

    def neighbors(self, node_id: str, types: Collection[str] | None = None) -> list[tuple[str, str]]:
        """Outgoing (type, target) pairs, optionally limited to the given types."""
        out = self.adjacency.get(node_id, [])
        if types is None:
            return list(out)
        return [(t, target) for t, target in out if t in types]

    def edges(self) -> Iterator[Edge]:
        for source in self.node_ids:
            for rel_type, target in self.adjacency[source]:
                yield Edge(source, rel_type, target)

    def incoming(self, node_id: str) -> list[Edge]:
        """Edges declared by other nodes that point at node_id."""
        return [e for e in self.edges() if e.target == node_id and e.source != node_id]

    def undirected(self) -> dict[str, set[str]]:
        """Undirected closure restricted to existing nodes (for reachability)."""
        closure: dict[str, set[str]] = {node_id: set() for node_id in self.adjacency}
        for edge in self.edges():
            if edge.target in closure:
                closure[edge.source].add(edge.target)
                closure[edge.target].add(edge.source)
        return closure


def build(nodes: Mapping[str, Node] | Iterable[Node]) -> Graph:
    """Build a Graph from a {id: Node} snapshot (or any iterable of nodes)."""
    values = nodes.values() if hasattr(nodes, "values") else nodes
    adjacency: dict[str, list[tuple[str, str]]] = {}
    for node in sorted(values, key=lambda n: n.id):
        adjacency[node.id] = [(r.type, r.target) for r in node.relationships]
    return Graph(adjacency=adjacency)
