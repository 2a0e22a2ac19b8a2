"""Navigation: lazy traversal sequences over a Graph.

    for node_id in traverse(graph, "index", BreadthFirst(types={"is-parent-of"})):
        ...

Strategies are small objects with a walk(graph, start_id) generator. Every
walk keeps a visited set, so cycles (mutual relates-to, parent/child pairs)
never repeat a node, and the graph is only read, so re-running a walk with the
same arguments reproduces the same sequence.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from cnet.errors import UnknownNode, UnknownTask

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator, Mapping, Sequence

    from cnet.graph import Graph

logger = logging.getLogger("cnet.navigation")

BREADTH_FIRST = "breadth-first"
DEPTH_FIRST = "depth-first"
BY_TASK = "by-task"
STRATEGY_NAMES = (BREADTH_FIRST, DEPTH_FIRST, BY_TASK)


class Strategy(Protocol):
    def walk(self, graph: Graph, start_id: str | None) -> Iterator[str]: ...


def _require_start(graph: Graph, start_id: str | None) -> str:
    if start_id is None or start_id not in graph:
        msg = f"Start node not in graph: {start_id}"
        raise UnknownNode(msg)
    return start_id


@dataclass(frozen=True)
class BreadthFirst:
    types: Collection[str] | None = None

    def walk(self, graph: Graph, start_id: str | None) -> Iterator[str]:
        start = _require_start(graph, start_id)
        visited = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            yield current
            for _, target in graph.neighbors(current, self.types):
                if target in graph and target not in visited:
                    visited.add(target)
                    queue.append(target)


@dataclass(frozen=True)
class DepthFirst:
    types: Collection[str] | None = None

    def walk(self, graph: Graph, start_id: str | None) -> Iterator[str]:
        start = _require_start(graph, start_id)
        visited: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            yield current
            # Reversed so the first declared neighbor is explored first
            for _, target in reversed(graph.neighbors(current, self.types)):
                if target in graph and target not in visited:
                    stack.append(target)


@dataclass(frozen=True)
class ByTask:
    """Hand-curated reading order for a named task (the [tasks] config table).

    If start_id appears in the sequence the walk resumes from it; otherwise it
    starts at the beginning. Ids missing from the graph are skipped.
    """

    task: str
    tasks: Mapping[str, Sequence[str]] = field(default_factory=dict)

    def walk(self, graph: Graph, start_id: str | None) -> Iterator[str]:
        if self.task not in self.tasks:
            msg = f"No sequence configured for task: {self.task}"
            raise UnknownTask(msg)
        sequence = list(self.tasks[self.task])
        if start_id is not None and start_id in sequence:
            sequence = sequence[sequence.index(start_id):]
        visited: set[str] = set()
        for node_id in sequence:
            if node_id in visited:
                continue
            visited.add(node_id)
            if node_id not in graph:
                logger.warning("task %s: node %s not in graph, skipping", self.task, node_id)
                continue
            yield node_id


def traverse(graph: Graph, start_id: str | None, strategy: Strategy) -> Iterator[str]:
    """Lazy sequence of node ids produced by strategy, starting at start_id."""
    return strategy.walk(graph, start_id)


def strategy_for(
    name: str,
    *,
    types: Collection[str] | None = None,
    task: str | None = None,
    tasks: Mapping[str, Sequence[str]] | None = None,
) -> Strategy:
    """Build a strategy from its CLI name."""
    if name == BREADTH_FIRST:
        return BreadthFirst(types=types or None)
    if name == DEPTH_FIRST:
        return DepthFirst(types=types or None)
    if name == BY_TASK:
        if not task:
            msg = "by-task traversal needs a task name"
            raise ValueError(msg)
        return ByTask(task=task, tasks=tasks or {})
    msg = f"Unknown strategy: {name} (choose from {', '.join(STRATEGY_NAMES)})"
    raise ValueError(msg)
