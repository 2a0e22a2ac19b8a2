"""cnet CLI — context network backed by markdown node files.

Commands:
    cnet init [NAME]                 create cnet.toml, discovery pointer, node store
    cnet status                      project summary
    cnet check                       verify the whole network, list defects
    cnet show ID                     dump a node and who links to it
    cnet create ID TITLE             create a node (optionally under a parent)
    cnet classify ID                 set classification dimensions
    cnet link SRC TYPE DST           declare a relationship and its inverse
    cnet unlink SRC TYPE DST         remove a relationship and its inverse
    cnet remove ID                   delete a node, recorded in the ledger
    cnet traverse [START]            list nodes in navigation order
    cnet tasks                       list curated task sequences
    cnet ledger                      show the change ledger
    cnet relocate LOCATION           repoint the discovery pointer
    cnet types                       relationship types and their inverses
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cnet import discovery
from cnet.bootstrap import bootstrap_network
from cnet.checker import DefectKind
from cnet.config import init_config, load_config
from cnet.discovery import DEFAULT_LOCATION
from cnet.errors import AlreadyInitialized, CNetError
from cnet.models import (
    CATEGORIES,
    INVERSES,
    Abstraction,
    Classification,
    Confidence,
    Stability,
)
from cnet.navigation import BREADTH_FIRST, BY_TASK, STRATEGY_NAMES, strategy_for
from cnet.network import Network

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cnet.models import Node

_STABILITY = click.Choice([s.value for s in Stability])
_ABSTRACTION = click.Choice([a.value for a in Abstraction])
_CONFIDENCE = click.Choice([c.value for c in Confidence])

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextlib.contextmanager
def _cli_errors() -> Iterator[None]:
    """Turn cnet errors into a one-line message and exit status 1."""
    try:
        yield
    except (CNetError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _load_net() -> Network:
    with _cli_errors():
        return Network.open()


def _classification_options(f):  # type: ignore[no-untyped-def]
    f = click.option("--confidence", type=_CONFIDENCE, default=None)(f)
    f = click.option("--abstraction", type=_ABSTRACTION, default=None)(f)
    f = click.option("--stability", type=_STABILITY, default=None)(f)
    return click.option("--domain", default=None, help="Domain (free text)")(f)


def _merge_classification(
    base: Classification,
    domain: str | None,
    stability: str | None,
    abstraction: str | None,
    confidence: str | None,
) -> Classification:
    return dataclasses.replace(
        base,
        domain=domain or base.domain,
        stability=Stability(stability) if stability else base.stability,
        abstraction=Abstraction(abstraction) if abstraction else base.abstraction,
        confidence=Confidence(confidence) if confidence else base.confidence,
    )


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="cnet")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
def cli(verbose: bool) -> None:
    """cnet — context network toolkit."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


# ---------------------------------------------------------------------------
# cnet init / relocate
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
@click.option("--location", default=DEFAULT_LOCATION, show_default=True, help="Node store location")
@click.option("--no-bootstrap", is_flag=True, help="Don't seed the root node from templates")
def init(name: str | None, root: str, location: str, no_bootstrap: bool) -> None:
    """Create cnet.toml, the discovery pointer and an empty node store."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("cnet.toml already exists — skipping")

    try:
        store_path = discovery.initialize(root_path, location)
        click.echo(f"Node store: {store_path}")
    except AlreadyInitialized:
        with _cli_errors():
            click.echo(f"Discovery pointer already exists — using {discovery.resolve(root_path)}")

    if no_bootstrap:
        return
    with _cli_errors():
        net = Network(load_config(root_path))
        seeded = bootstrap_network(net)
    if seeded:
        click.echo(f"Seeded nodes: {', '.join(seeded)}")


@cli.command()
@click.argument("location")
def relocate(location: str) -> None:
    """Point the discovery pointer at LOCATION (files are not moved)."""
    with _cli_errors():
        cfg = load_config()
        new_path = discovery.relocate(cfg.root, location)
    click.echo(f"Pointer now resolves to {new_path}")
    if not new_path.is_dir():
        click.echo("Warning: location does not exist yet", err=True)


# ---------------------------------------------------------------------------
# cnet status / check
# ---------------------------------------------------------------------------


@cli.command()
def status() -> None:
    """Show project stats: nodes, defects, ledger size."""
    net = _load_net()
    snap = net.snapshot()
    report = net.check()

    table = Table(title=f"cnet — {net.cfg.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Config", str(net.cfg.config_path))
    table.add_row("Node store", str(net.store.location))
    table.add_row("Root node", net.cfg.root_node)
    table.add_row("", "")
    table.add_row("Nodes", str(len(snap.nodes)))
    table.add_row("Relationships", str(sum(len(n.relationships) for n in snap.nodes.values())))
    table.add_row("Ledger entries", str(len(net.ledger.read_all())))
    table.add_row("Tasks", str(len(net.cfg.tasks)))
    table.add_row("", "")
    if report.is_clean:
        table.add_row("Defects", "[green]none[/green]")
    else:
        for kind, count in sorted(report.counts().items()):
            table.add_row(f"  {kind}", f"[yellow]{count}[/yellow]")
    Console().print(table)


@cli.command("check")
@click.option("--root", "root_id", default=None, help="Reachability root (default: config root_node)")
@click.option(
    "--kind", "kinds", multiple=True,
    type=click.Choice([k.value for k in DefectKind]),
    help="Only show these defect kinds (repeatable)",
)
@click.option("--strict", is_flag=True, help="Exit 1 if any defect is reported")
def check_cmd(root_id: str | None, kinds: tuple[str, ...], strict: bool) -> None:
    """Verify every node and relationship; report defects."""
    net = _load_net()
    report = net.check(root_id)
    defects = [d for d in report if not kinds or d.kind in kinds]

    if not defects:
        click.echo("No defects found")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Kind", style="yellow", no_wrap=True)
    table.add_column("Node", style="cyan")
    table.add_column("Detail")
    for d in defects:
        table.add_row(str(d.kind), escape(d.node_id), escape(d.detail))
    Console().print(table)
    click.echo(f"{len(defects)} defect(s)")
    if strict:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# cnet show
# ---------------------------------------------------------------------------


def _show_incoming(node_id: str, net: Network) -> None:
    """Print relationships declared by other nodes that point at node_id."""
    incoming = net.snapshot().graph.incoming(node_id)
    if not incoming:
        return
    click.echo(f"\nReferenced by ({len(incoming)}):")
    for edge in incoming:
        click.echo(f"  [{edge.source}] {edge.type}")


def _echo_node(node: Node) -> None:
    c = node.classification
    click.echo(f"[{node.id}] {node.title}")
    if node.purpose:
        click.echo(f"  {node.purpose}")
    click.echo(
        f"  domain={c.domain or '-'} stability={c.stability or '-'} "
        f"abstraction={c.abstraction or '-'} confidence={c.confidence or '-'}"
    )
    if node.flags:
        click.echo(f"  flags: {', '.join(sorted(node.flags))}")
    if node.relationships:
        click.echo(f"\nRelationships ({len(node.relationships)}):")
        for r in node.relationships:
            suffix = f"  — {r.description}" if r.description else ""
            click.echo(f"  {r.type} [{r.target}]{suffix}")
    for line in node.malformed_relationships:
        click.echo(f"  (malformed) {line}")


@cli.command()
@click.argument("node_id")
@click.option("--history", is_flag=True, help="Include the Change History")
@click.option("--no-backlinks", is_flag=True, help="Skip relationships pointing at this node")
def show(node_id: str, history: bool, no_backlinks: bool) -> None:
    """Show a node's classification and relationships."""
    net = _load_net()
    with _cli_errors():
        node = net.store.require(node_id)
    _echo_node(node)
    if not no_backlinks:
        _show_incoming(node_id, net)
    if history and node.change_history:
        click.echo("\nChange History:")
        for h in node.change_history:
            click.echo(f"  {h.date}: {h.description}")


# ---------------------------------------------------------------------------
# cnet create / classify
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("node_id")
@click.argument("title")
@click.option("--purpose", default="", help="One-line purpose")
@click.option("--parent", default=None, help="Link as is-child-of PARENT (mirrored)")
@_classification_options
def create(
    node_id: str,
    title: str,
    purpose: str,
    parent: str | None,
    domain: str | None,
    stability: str | None,
    abstraction: str | None,
    confidence: str | None,
) -> None:
    """Create a new node.

    \b
    cnet create foundation/overview "Overview" --parent index \\
        --domain Runtime --stability semi-stable --abstraction conceptual --confidence established
    """
    net = _load_net()
    classification = _merge_classification(Classification(), domain, stability, abstraction, confidence)
    with _cli_errors():
        if parent and not net.store.exists(parent):
            msg = f"No such parent node: {parent}"
            raise click.ClickException(msg)
        node = net.create_node(node_id, title, purpose=purpose, classification=classification)
        click.echo(f"Created [{node.id}] {node.title}")
        if parent:
            net.add_relationship(node_id, "is-child-of", parent)
            click.echo(f"Linked [{node_id}] is-child-of [{parent}]")
    missing = classification.missing_dimensions()
    if missing:
        click.echo(f"Unclassified: missing {', '.join(missing)}", err=True)


@cli.command()
@click.argument("node_id")
@_classification_options
def classify(
    node_id: str,
    domain: str | None,
    stability: str | None,
    abstraction: str | None,
    confidence: str | None,
) -> None:
    """Set one or more classification dimensions of a node."""
    if not any((domain, stability, abstraction, confidence)):
        msg = "Nothing to change: pass at least one of --domain/--stability/--abstraction/--confidence"
        raise click.UsageError(msg)
    net = _load_net()
    with _cli_errors():
        node = net.store.require(node_id)
        node.classification = _merge_classification(
            node.classification, domain, stability, abstraction, confidence,
        )
        changed = [n for n, v in (("domain", domain), ("stability", stability),
                                  ("abstraction", abstraction), ("confidence", confidence)) if v]
        saved = net.update_node(node, f"Classify: {', '.join(changed)}")
    missing = saved.classification.missing_dimensions()
    click.echo(f"Classified [{node_id}]" + (f" (still missing {', '.join(missing)})" if missing else ""))


# ---------------------------------------------------------------------------
# cnet link / unlink / remove
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("source")
@click.argument("rel_type", metavar="TYPE")
@click.argument("target")
@click.option("--description", "-d", default="", help="Relationship description")
@click.option("--one-way", is_flag=True, help="Don't declare the inverse on TARGET")
def link(source: str, rel_type: str, target: str, description: str, one_way: bool) -> None:
    """Declare SOURCE -[TYPE]-> TARGET and the inverse on TARGET."""
    net = _load_net()
    with _cli_errors():
        added = net.add_relationship(source, rel_type, target, description, mirror=not one_way)
    if not added:
        click.echo("Already declared — nothing to do")
        return
    for r in added:
        click.echo(f"Added [{r.source}] {r.type} [{r.target}]")


@cli.command()
@click.argument("source")
@click.argument("rel_type", metavar="TYPE")
@click.argument("target")
@click.option("--one-way", is_flag=True, help="Leave the inverse on TARGET in place")
def unlink(source: str, rel_type: str, target: str, one_way: bool) -> None:
    """Remove SOURCE -[TYPE]-> TARGET and the inverse on TARGET."""
    net = _load_net()
    with _cli_errors():
        removed = net.remove_relationship(source, rel_type, target, mirror=not one_way)
    if not removed:
        click.echo("No such relationship — nothing to do")
        return
    for r in removed:
        click.echo(f"Removed [{r.source}] {r.type} [{r.target}]")


@cli.command()
@click.argument("node_id")
@click.option("--detach", is_flag=True, help="Also remove relationships pointing at the node")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
def remove(node_id: str, detach: bool, yes: bool) -> None:
    """Delete a node. The removal and any dangling links are recorded in the ledger."""
    net = _load_net()
    if not yes:
        click.confirm(f"Delete [{node_id}]?", abort=True)
    with _cli_errors():
        entry = net.remove_node(node_id, detach=detach)
    click.echo(f"Removed [{node_id}]")
    for f in entry.follow_ups:
        click.echo(f"  follow-up: {f}")


# ---------------------------------------------------------------------------
# cnet traverse / tasks
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("start", required=False)
@click.option(
    "--strategy", "-s", default=BREADTH_FIRST, show_default=True,
    type=click.Choice(list(STRATEGY_NAMES)),
)
@click.option("--type", "-t", "types", multiple=True, help="Follow only these relationship types")
@click.option("--task", default=None, help="Task name (by-task strategy)")
@click.option("--limit", "-l", default=0, help="Stop after N nodes (0 = all)")
def traverse(start: str | None, strategy: str, types: tuple[str, ...], task: str | None, limit: int) -> None:
    """List node ids in navigation order starting at START (default: root node)."""
    net = _load_net()
    if strategy != BY_TASK and start is None:
        start = net.cfg.root_node
    with _cli_errors():
        walk = net.traverse(start, strategy_for(strategy, types=set(types), task=task, tasks=net.cfg.tasks))
        for i, node_id in enumerate(walk, start=1):
            click.echo(node_id)
            if limit and i >= limit:
                break


@cli.command()
def tasks() -> None:
    """List curated task sequences from cnet.toml."""
    cfg = _load_net().cfg
    if not cfg.tasks:
        click.echo("No tasks configured (add a [tasks] table to cnet.toml)")
        return
    for name, sequence in sorted(cfg.tasks.items()):
        click.echo(f"{name} ({len(sequence)}): {' → '.join(sequence)}")


# ---------------------------------------------------------------------------
# cnet ledger / types
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--limit", "-l", default=20, show_default=True, help="Most recent N entries (0 = all)")
def ledger(limit: int) -> None:
    """Show the change ledger, most recent last."""
    net = _load_net()
    entries = net.ledger.read_all()
    if limit:
        entries = entries[-limit:]
    if not entries:
        click.echo("Ledger is empty")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Date", no_wrap=True)
    table.add_column("Summary")
    table.add_column("Nodes", style="cyan")
    table.add_column("Relationships")
    table.add_column("Follow-ups", style="yellow")
    for e in entries:
        rels = [f"+ {r}" for r in e.relationships_added] + [f"~ {r}" for r in e.relationships_modified]
        table.add_row(
            e.date,
            escape(e.summary),
            escape("\n".join(e.nodes_modified)),
            escape("\n".join(rels)),
            escape("\n".join(e.follow_ups)),
        )
    Console().print(table)


@cli.command()
def types() -> None:
    """List relationship types, their inverses and categories."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Inverse")
    table.add_column("Category", style="dim")
    for rel_type, inverse in INVERSES.items():
        shown = "(self)" if inverse == rel_type else str(inverse)
        table.add_row(str(rel_type), shown, str(CATEGORIES[rel_type]))
    Console().print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
