"""Consistency checker: run the network invariants over a snapshot.

    nodes = store.load_all()
    report = check(build(nodes), nodes, root_id="index")
    for defect in report:
        print(defect.kind, defect.node_id, defect.detail)

check() is pure and total. Every finding is returned as a Defect; nothing is
raised, and the report is sorted so that the same snapshot loaded in any order
yields an identical report.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from cnet.models import FLAG_UNDECODABLE, inverse_of

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from cnet.graph import Graph
    from cnet.models import Node


class DefectKind(StrEnum):
    DANGLING_RELATIONSHIP = "DanglingRelationship"
    MISSING_INVERSE = "MissingInverse"
    WRONG_INVERSE_TYPE = "WrongInverseType"
    UNCLASSIFIED_NODE = "UnclassifiedNode"
    UNREACHABLE_NODE = "UnreachableNode"
    UNKNOWN_RELATIONSHIP_TYPE = "UnknownRelationshipType"
    MALFORMED_RELATIONSHIP = "MalformedRelationship"
    MISSING_ROOT = "MissingRoot"
    UNDECODABLE_NODE = "UndecodableNode"


@dataclass(frozen=True, order=True)
class Defect:
    kind: DefectKind
    node_id: str
    detail: str


@dataclass(frozen=True)
class Report:
    defects: tuple[Defect, ...] = ()

    def __iter__(self) -> Iterator[Defect]:
        return iter(self.defects)

    def __len__(self) -> int:
        return len(self.defects)

    @property
    def is_clean(self) -> bool:
        return not self.defects

    def by_kind(self, kind: DefectKind | str) -> list[Defect]:
        return [d for d in self.defects if d.kind == kind]

    def for_node(self, node_id: str) -> list[Defect]:
        return [d for d in self.defects if d.node_id == node_id]

    def counts(self) -> dict[str, int]:
        return dict(Counter(str(d.kind) for d in self.defects))


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def _relationship_defects(graph: Graph, nodes: Mapping[str, Node]) -> Iterator[Defect]:
    for source in graph.node_ids:
        for rel_type, target in graph.neighbors(source):
            inverse = inverse_of(rel_type)
            if inverse is None:
                yield Defect(
                    DefectKind.UNKNOWN_RELATIONSHIP_TYPE,
                    source,
                    f"'{rel_type}' -> {target}: no inverse defined for this type",
                )
                continue
            if target not in nodes:
                yield Defect(
                    DefectKind.DANGLING_RELATIONSHIP,
                    source,
                    f"{rel_type} -> {target}: target does not exist",
                )
                continue
            back = [t for t, dest in graph.neighbors(target) if dest == source]
            if inverse in back:
                continue
            if back:
                yield Defect(
                    DefectKind.WRONG_INVERSE_TYPE,
                    target,
                    f"expected {inverse} -> {source} (for {source} {rel_type}), "
                    f"found {', '.join(sorted(back))}",
                )
            else:
                yield Defect(
                    DefectKind.MISSING_INVERSE,
                    target,
                    f"expected {inverse} -> {source} (for {source} {rel_type})",
                )


def _node_defects(nodes: Mapping[str, Node]) -> Iterator[Defect]:
    for node_id in sorted(nodes):
        node = nodes[node_id]
        if FLAG_UNDECODABLE in node.flags:
            yield Defect(
                DefectKind.UNDECODABLE_NODE,
                node_id,
                "file is not valid UTF-8; loaded with replacement characters",
            )
        missing = node.classification.missing_dimensions()
        if missing:
            yield Defect(
                DefectKind.UNCLASSIFIED_NODE,
                node_id,
                f"missing classification: {', '.join(missing)}",
            )
        for line in node.malformed_relationships:
            yield Defect(DefectKind.MALFORMED_RELATIONSHIP, node_id, f"cannot parse: {line}")


def reachable_from(graph: Graph, root_id: str) -> set[str]:
    """Ids reachable from root_id treating every edge as bidirectional."""
    closure = graph.undirected()
    if root_id not in closure:
        return set()
    visited = {root_id}
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for neighbor in closure[current]:
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)
    return visited


def _reachability_defects(graph: Graph, nodes: Mapping[str, Node], root_id: str) -> Iterator[Defect]:
    if not nodes:
        return
    if root_id not in nodes:
        yield Defect(DefectKind.MISSING_ROOT, root_id, "root node does not exist; reachability not checked")
        return
    reached = reachable_from(graph, root_id)
    for node_id in sorted(nodes):
        if node_id not in reached:
            yield Defect(DefectKind.UNREACHABLE_NODE, node_id, f"not reachable from {root_id}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def check(graph: Graph, nodes: Mapping[str, Node], root_id: str | None = None) -> Report:
    """Return every defect in the snapshot. root_id=None skips reachability."""
    found: set[Defect] = set()
    found.update(_relationship_defects(graph, nodes))
    found.update(_node_defects(nodes))
    if root_id is not None:
        found.update(_reachability_defects(graph, nodes, root_id))
    return Report(defects=tuple(sorted(found)))
