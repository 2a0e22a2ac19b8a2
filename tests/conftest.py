"""
Pytest configuration and fixtures for cnet tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from cnet import discovery
from cnet.config import init_config, load_config
from cnet.models import (
    Abstraction,
    Classification,
    Confidence,
    Node,
    Relationship,
    Stability,
)
from cnet.network import Network

FULL_CLASSIFICATION = Classification(
    domain="Runtime",
    stability=Stability.SEMI_STABLE,
    abstraction=Abstraction.STRUCTURAL,
    confidence=Confidence.ESTABLISHED,
)


def make_node(
    node_id: str,
    *rels: tuple[str, str],
    classification: Classification = FULL_CLASSIFICATION,
) -> Node:
    """Build a node declaring (type, target) relationships, classified by default."""
    return Node(
        id=node_id,
        title=node_id.title(),
        classification=classification,
        relationships=[Relationship(source=node_id, target=t, type=rt) for rt, t in rels],
    )


def as_snapshot(*nodes: Node) -> dict[str, Node]:
    return {n.id: n for n in nodes}


NODE_TEXT = """\
# Overview

## Purpose

Entry point for the runtime notes.

## Classification

- **Domain:** Runtime
- **Stability:** semi-stable
- **Abstraction:** conceptual
- **Confidence:** established

## Content

Some opaque prose.

### Details

More prose.

## Relationships

- [[index]] — is-child-of — Root of the network
- `foundation/architecture` — relates-to

## Metadata

- **Created:** 2026-01-02
- **Last Updated:** 2026-01-05
- **Updated By:** alice

## Change History

- 2026-01-02: Created
- 2026-01-05: Added details
"""


@pytest.fixture
def node_text() -> str:
    return NODE_TEXT


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An initialised project root: cnet.toml + pointer + empty node store."""
    init_config(tmp_path, name="test-net")
    discovery.initialize(tmp_path, "./context-network")
    return tmp_path


@pytest.fixture
def net(project: Path, monkeypatch: pytest.MonkeyPatch) -> Network:
    monkeypatch.setenv("USER", "tester")
    return Network(load_config(project))


# Markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "hypothesis: property-based tests"
    )
