"""Network: one project's store, ledger and config behind a single handle.

Read operations work on a snapshot (load once, operate, discard). Edit
operations save each touched node (one Change History line per node) and
append exactly one ledger entry describing the edit.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cnet.checker import Report, check
from cnet.config import CNetConfig, load_config
from cnet.errors import UnknownNode
from cnet.graph import Graph, build
from cnet.ledger import ChangeLedger, ChangeLedgerEntry
from cnet.models import NodeMetadata, Relationship, inverse_of, today
from cnet.navigation import traverse
from cnet.store import NodeStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cnet.models import Node
    from cnet.navigation import Strategy

logger = logging.getLogger("cnet.network")


@dataclass(frozen=True)
class Snapshot:
    nodes: dict[str, Node]
    graph: Graph


class Network:
    def __init__(self, cfg: CNetConfig) -> None:
        self.cfg = cfg
        self.store = NodeStore(cfg.location)
        self.ledger = ChangeLedger(cfg.ledger_path)

    @classmethod
    def open(cls, root: Path | str | None = None) -> Network:
        return cls(load_config(root))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        nodes = self.store.load_all()
        return Snapshot(nodes=nodes, graph=build(nodes))

    def check(self, root_id: str | None = None) -> Report:
        snap = self.snapshot()
        return check(snap.graph, snap.nodes, root_id=root_id or self.cfg.root_node)

    def traverse(self, start_id: str | None, strategy: Strategy) -> Iterator[str]:
        return traverse(self.snapshot().graph, start_id, strategy)

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def _save(self, node: Node, description: str) -> Node:
        node = dataclasses.replace(node, metadata=dataclasses.replace(node.metadata))
        node.touch(self.cfg.updated_by)
        return self.store.save(node, description)

    def create_node(self, node_id: str, title: str, **fields: Any) -> Node:
        """Create a node and record it in the ledger."""
        date = today()
        fields.setdefault(
            "metadata", NodeMetadata(created_at=date, updated_at=date, updated_by=self.cfg.updated_by),
        )
        node = self.store.create(node_id, title=title, **fields)
        follow_ups = []
        if not node.classification.is_complete:
            follow_ups.append(f"classify {node_id}: missing {', '.join(node.classification.missing_dimensions())}")
        if not node.relationships and node_id != self.cfg.root_node:
            follow_ups.append(f"link {node_id} into the network")
        self.ledger.append(ChangeLedgerEntry.for_edit(
            f"Create {node_id}",
            nodes_modified=[node_id],
            relationships_added=node.relationships,
            follow_ups=follow_ups,
        ))
        return node

    def update_node(self, node: Node, description: str) -> Node:
        """Save an edited node (content, classification, ...) and record it."""
        if not self.store.exists(node.id):
            msg = f"No such node: {node.id}"
            raise UnknownNode(msg)
        saved = self._save(node, description)
        follow_ups = []
        if not saved.classification.is_complete:
            follow_ups.append(
                f"classify {node.id}: missing {', '.join(saved.classification.missing_dimensions())}"
            )
        self.ledger.append(ChangeLedgerEntry.for_edit(
            description, nodes_modified=[node.id], follow_ups=follow_ups,
        ))
        return saved

    def add_relationship(
        self,
        source: str,
        rel_type: str,
        target: str,
        description: str = "",
        *,
        mirror: bool = True,
    ) -> list[Relationship]:
        """Declare source -[rel_type]-> target, and its inverse on target when mirror.

        Returns the relationships actually added (already-declared ones are
        skipped).
        """
        rel_type = rel_type.strip().lower()
        inverse = inverse_of(rel_type)
        if mirror and inverse is None:
            msg = f"Relationship type '{rel_type}' has no inverse; use mirror=False"
            raise ValueError(msg)

        source_node = self.store.require(source)
        if mirror and not self.store.exists(target):
            msg = f"No such node: {target}"
            raise UnknownNode(msg)

        forward = Relationship(source=source, target=target, type=rel_type, description=description)
        added: list[Relationship] = []
        modified: list[str] = []
        follow_ups: list[str] = []

        if not source_node.declares(rel_type, target):
            source_node.relationships = [*source_node.relationships, forward]
            self._save(source_node, f"Add relationship {rel_type} -> {target}")
            added.append(forward)
            modified.append(source)

        # Re-read after the source save so self-loops see the forward edge
        target_node = self.store.get(target)
        back = forward.inverse()
        if target_node is None:
            follow_ups.append(f"create {target} (referenced by {source})")
        elif back is not None and not target_node.declares(back.type, source):
            if mirror:
                target_node.relationships = [*target_node.relationships, back]
                self._save(target_node, f"Add relationship {back.type} -> {source}")
                added.append(back)
                if target not in modified:
                    modified.append(target)
            else:
                follow_ups.append(f"declare {target} -[{back.type}]-> {source}")

        if added:
            self.ledger.append(ChangeLedgerEntry.for_edit(
                f"Link {source} -[{rel_type}]-> {target}",
                nodes_modified=modified,
                relationships_added=added,
                follow_ups=follow_ups,
            ))
        return added

    def remove_relationship(
        self,
        source: str,
        rel_type: str,
        target: str,
        *,
        mirror: bool = True,
    ) -> list[Relationship]:
        """Remove source -[rel_type]-> target (and its inverse on target when mirror)."""
        rel_type = rel_type.strip().lower()
        removed: list[Relationship] = []
        modified: list[str] = []

        source_node = self.store.require(source)
        kept = [r for r in source_node.relationships if not (r.type == rel_type and r.target == target)]
        if len(kept) != len(source_node.relationships):
            removed.extend(r for r in source_node.relationships if r not in kept)
            source_node.relationships = kept
            self._save(source_node, f"Remove relationship {rel_type} -> {target}")
            modified.append(source)

        inverse = inverse_of(rel_type)
        target_node = self.store.get(target) if mirror else None
        if target_node is not None and inverse is not None:
            kept = [r for r in target_node.relationships if not (r.type == inverse and r.target == source)]
            if len(kept) != len(target_node.relationships):
                removed.extend(r for r in target_node.relationships if r not in kept)
                target_node.relationships = kept
                self._save(target_node, f"Remove relationship {inverse} -> {source}")
                modified.append(target)

        if removed:
            self.ledger.append(ChangeLedgerEntry.for_edit(
                f"Unlink {source} -[{rel_type}]-> {target}",
                nodes_modified=modified,
                relationships_modified=removed,
            ))
        return removed

    def remove_node(self, node_id: str, *, detach: bool = False) -> ChangeLedgerEntry:
        """Delete a node, recording the removal.

        With detach=True, relationships in other nodes that point at node_id
        are removed as part of the same edit; otherwise each one becomes a
        follow-up in the ledger entry.
        """
        snap = self.snapshot()
        if node_id not in snap.nodes:
            msg = f"No such node: {node_id}"
            raise UnknownNode(msg)

        incoming = snap.graph.incoming(node_id)
        modified = [node_id]
        detached: list[Relationship] = []
        follow_ups: list[str] = []

        if detach:
            for source in sorted({e.source for e in incoming}):
                node = snap.nodes[source]
                gone = [r for r in node.relationships if r.target == node_id]
                node.relationships = [r for r in node.relationships if r.target != node_id]
                self._save(node, f"Remove relationships to deleted node {node_id}")
                detached.extend(gone)
                modified.append(source)
        else:
            follow_ups.extend(
                f"remove or retarget {e.source} -[{e.type}]-> {node_id}" for e in incoming
            )

        self.store.delete(node_id)
        entry = ChangeLedgerEntry.for_edit(
            f"Remove {node_id}",
            nodes_modified=modified,
            relationships_modified=[*snap.nodes[node_id].relationships, *detached],
            follow_ups=follow_ups,
        )
        self.ledger.append(entry)
        logger.info("removed node %s (%d incoming, detach=%s)", node_id, len(incoming), detach)
        return entry

