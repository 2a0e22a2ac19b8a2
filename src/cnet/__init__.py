"""Context network: markdown nodes with typed relationships, checked for consistency.

Layout:
    cnet.toml                     # project config
    .context-network.md           # discovery pointer: "Location: ./context-network"
    context-network/
        index.md                  # root node
        <area>/<node>.md          # id = path without .md
        .cnet/
            ledger.jsonl          # append-only change ledger

Node files carry Purpose, Classification, Content, Relationships, Metadata
and Change History sections. Relationships are typed and must be mirrored by
their inverse on the target node; `check` reports every place where they are
not, plus unclassified and unreachable nodes.

Pipeline: discovery.resolve -> NodeStore.load_all -> graph.build ->
checker.check | navigation.traverse. Edits go through Network, which also
appends to the ChangeLedger.
"""

from cnet.checker import Defect, DefectKind, Report, check
from cnet.config import CNetConfig, init_config, load_config
from cnet.graph import Graph, build
from cnet.ledger import ChangeLedger, ChangeLedgerEntry
from cnet.models import Classification, Node, Relationship, RelationshipType
from cnet.navigation import BreadthFirst, ByTask, DepthFirst, traverse
from cnet.network import Network
from cnet.store import NodeStore

__all__ = [
    "BreadthFirst",
    "ByTask",
    "CNetConfig",
    "ChangeLedger",
    "ChangeLedgerEntry",
    "Classification",
    "Defect",
    "DefectKind",
    "DepthFirst",
    "Graph",
    "Network",
    "Node",
    "NodeStore",
    "Relationship",
    "RelationshipType",
    "Report",
    "build",
    "check",
    "init_config",
    "load_config",
    "traverse",
]
