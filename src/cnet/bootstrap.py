"""Bootstrap: seed bundled template nodes into a new network on `cnet init`.

Template files live in src/cnet/templates/**/*.md and use the node file
format. templates/index.md becomes the configured root node; the placeholder
{root} in any template is replaced by the root node id so the seeded nodes
link to it whatever it is called.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

from cnet.ledger import ChangeLedgerEntry
from cnet.markup import parse_node
from cnet.models import NodeMetadata, today

if TYPE_CHECKING:
    from cnet.network import Network

_ROOT_TEMPLATE = "index"
_ROOT_PLACEHOLDER = "{root}"


def _templates_dir() -> Path:
    """Return path to bundled templates directory."""
    # Works both installed and from source
    try:
        ref = resources.files("cnet") / "templates"
        return Path(str(ref))
    except ModuleNotFoundError:
        return Path(__file__).parent / "templates"


def bootstrap_network(net: Network, *, overwrite: bool = False) -> list[str]:
    """Create the template nodes that don't exist yet. Returns seeded ids."""
    templates_dir = _templates_dir()
    if not templates_dir.exists():
        return []

    root_id = net.cfg.root_node
    date = today()
    seeded: list[str] = []
    relationships = []

    for md_file in sorted(templates_dir.rglob("*.md")):
        rel = md_file.relative_to(templates_dir).with_suffix("").as_posix()
        node_id = root_id if rel == _ROOT_TEMPLATE else rel

        if net.store.exists(node_id):
            if not overwrite:
                continue
            net.store.delete(node_id)

        text = md_file.read_text(encoding="utf-8").replace(_ROOT_PLACEHOLDER, root_id)
        template = parse_node(node_id, text)
        node = net.store.create(
            node_id,
            title=template.title,
            purpose=template.purpose,
            classification=template.classification,
            content=template.content,
            relationships=template.relationships,
            metadata=NodeMetadata(created_at=date, updated_at=date, updated_by=net.cfg.updated_by),
        )
        relationships.extend(node.relationships)
        seeded.append(node_id)

    if seeded:
        net.ledger.append(ChangeLedgerEntry.for_edit(
            "Bootstrap network from templates",
            nodes_modified=seeded,
            relationships_added=relationships,
        ))
    return seeded
