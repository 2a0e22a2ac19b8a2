"""Read and write node markdown files.

NodeStore is the public API:
    store = NodeStore("/path/to/context-network")
    nodes = store.load_all()                 # {id: Node}
    node = store.create("foundation/overview", title="Overview")
    node.purpose = "Entry point"
    store.save(node, "Add purpose")

Ids are paths relative to the store root, posix separators, no ".md" suffix.
Absolute ids and ids with empty, "." or ".." segments are rejected with
InvalidNodeId.
Directories starting with "." (e.g. .cnet/ holding the ledger) are never
scanned.

Writes are atomic per node: render to a sibling temp file, then os.replace.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cnet.errors import DuplicateId, InvalidNodeId, UnknownNode
from cnet.markup import parse_node, render_node
from cnet.models import FLAG_UNDECODABLE, ChangeRecord, Node, NodeMetadata, today

if TYPE_CHECKING:
    from collections.abc import Iterator

NODE_SUFFIX = ".md"

logger = logging.getLogger("cnet.store")


def check_id(node_id: str) -> str:
    """Return node_id if it names a file inside the store, else raise InvalidNodeId."""
    parts = node_id.split("/")
    if (
        not node_id
        or node_id.startswith("/")
        or "\\" in node_id
        or any(not part or part.startswith(".") for part in parts)
    ):
        msg = f"Invalid node id: {node_id!r} (use a relative path without '.', '..' or hidden segments)"
        raise InvalidNodeId(msg)
    return node_id


class NodeStore:
    """Markdown-backed node store."""

    def __init__(self, location: Path | str) -> None:
        self.location = Path(location)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _node_path(self, node_id: str) -> Path:
        return self.location / f"{check_id(node_id)}{NODE_SUFFIX}"

    def _node_id(self, path: Path) -> str:
        return path.relative_to(self.location).with_suffix("").as_posix()

    def _node_files(self) -> Iterator[Path]:
        if not self.location.is_dir():
            return
        for path in self.location.rglob(f"*{NODE_SUFFIX}"):
            rel = path.relative_to(self.location)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if path.is_file():
                yield path

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def exists(self, node_id: str) -> bool:
        return self._node_path(node_id).is_file()

    def list_ids(self) -> list[str]:
        """All node ids in the store, sorted."""
        return sorted(self._node_id(p) for p in self._node_files())

    def _read(self, node_id: str, path: Path) -> Node:
        """Parse one node file. Invalid UTF-8 is decoded with replacement characters and flagged."""
        data = path.read_bytes()
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("node %s is not valid UTF-8 (%s at byte %d)", node_id, exc.reason, exc.start)
            node = parse_node(node_id, data.decode("utf-8", errors="replace"))
            node.flags.add(FLAG_UNDECODABLE)
            return node
        return parse_node(node_id, text)

    def get(self, node_id: str) -> Node | None:
        path = self._node_path(node_id)
        if not path.is_file():
            return None
        return self._read(node_id, path)

    def require(self, node_id: str) -> Node:
        node = self.get(node_id)
        if node is None:
            msg = f"No such node: {node_id}"
            raise UnknownNode(msg)
        return node

    def iter_nodes(self) -> Iterator[Node]:
        """Parse every node file. Files that cannot be read at all are logged and skipped."""
        for path in self._node_files():
            node_id = self._node_id(path)
            try:
                node = self._read(node_id, path)
            except OSError:
                logger.exception("failed to read node: %s", path)
                continue
            if node.flags:
                logger.debug("node %s loaded with flags: %s", node_id, ", ".join(sorted(node.flags)))
            yield node

    def load_all(self) -> dict[str, Node]:
        """Snapshot of the whole store, keyed by id. Order is not meaningful."""
        return {node.id: node for node in self.iter_nodes()}

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, node_id: str, **initial_fields: Any) -> Node:
        """Create a new node file. Raises DuplicateId if it already exists."""
        if self.exists(node_id):
            msg = f"Node already exists: {node_id}"
            raise DuplicateId(msg)

        date = today()
        initial_fields.setdefault("title", node_id.rsplit("/", 1)[-1])
        initial_fields.setdefault("metadata", NodeMetadata(created_at=date, updated_at=date))
        node = Node(id=node_id, **initial_fields)
        node.change_history = [*node.change_history, ChangeRecord(date=date, description="Created")]
        node.refresh_flags()
        self._write(node)
        logger.info("created node %s", node_id)
        return node

    def save(self, node: Node, description: str, *, date: str | None = None) -> Node:
        """Write node atomically with one new Change History entry.

        Returns the saved node; the argument is not mutated. A node loaded from
        a file that is not valid UTF-8 is refused, since writing it back would
        replace the undecodable bytes for good.
        """
        if FLAG_UNDECODABLE in node.flags:
            msg = f"Node {node.id} was loaded from a file that is not valid UTF-8; fix the file before editing"
            raise ValueError(msg)
        entry = ChangeRecord(date=date or today(), description=description)
        saved = dataclasses.replace(
            node,
            change_history=[*node.change_history, entry],
            flags=set(node.flags),
        )
        saved.refresh_flags()
        self._write(saved)
        logger.info("saved node %s: %s", node.id, description)
        return saved

    def delete(self, node_id: str) -> None:
        """Remove the node file. Callers record the removal (see Network.remove_node)."""
        path = self._node_path(node_id)
        if not path.is_file():
            msg = f"No such node: {node_id}"
            raise UnknownNode(msg)
        path.unlink()
        logger.info("deleted node %s", node_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _write(self, node: Node) -> None:
        """Render and atomically replace <id>.md."""
        path = self._node_path(node.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Hidden temp name so a concurrent load_all never picks it up
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                f.write(render_node(node))
                f.flush()
                os.fsync(f.fileno())
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
