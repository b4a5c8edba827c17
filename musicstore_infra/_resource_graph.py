"""Explicit declaration graph for the stack's resources.

Every resource (and every derived value such as the kubeconfig) is a named
node with explicit ``depends_on`` edges. The stack program declares nodes in
``order()`` and hands each resource's dependencies to Pulumi as
``depends_on`` options, so ordering never relies on implicit Output chaining.

Examples
--------
>>> graph = ResourceGraph()
>>> graph.add("cluster")
>>> graph.add("node-pool", depends_on=("cluster",))
>>> graph.order()
['cluster', 'node-pool']
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter

from musicstore_infra._stack_errors import ResourceGraphError


@dataclass(frozen=True, slots=True)
class ResourceNode:
    """A named node and the nodes it must be declared after."""

    name: str
    depends_on: tuple[str, ...] = ()


class ResourceGraph:
    """Dependency graph of declared resources.

    Nodes are kept in insertion order; dependencies may be added before the
    nodes they refer to, but every dependency must exist by the time the
    graph is ordered.
    """

    def __init__(self, nodes: Iterable[ResourceNode] = ()) -> None:
        self._nodes: dict[str, ResourceNode] = {}
        for node in nodes:
            self.add(node.name, node.depends_on)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> tuple[ResourceNode, ...]:
        return tuple(self._nodes.values())

    def add(self, name: str, depends_on: Iterable[str] = ()) -> None:
        """Add a node with its dependency edges.

        Raises
        ------
        ResourceGraphError
            If the name is blank, already present, or depends on itself.
        """
        if not name:
            msg = "resource name must not be blank"
            raise ResourceGraphError(msg)
        if name in self._nodes:
            msg = f"resource {name!r} is already declared"
            raise ResourceGraphError(msg)
        deps = tuple(dict.fromkeys(depends_on))
        if name in deps:
            msg = f"resource {name!r} cannot depend on itself"
            raise ResourceGraphError(msg)
        self._nodes[name] = ResourceNode(name, deps)

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Return the direct dependencies of ``name``."""
        return self._node(name).depends_on

    def ancestors(self, name: str) -> set[str]:
        """Return every node that must be declared before ``name``."""
        seen: set[str] = set()
        pending = list(self._node(name).depends_on)
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            pending.extend(self._node(current).depends_on)
        return seen

    def precedes(self, before: str, after: str) -> bool:
        """Return whether ``before`` is ordered ahead of ``after`` by an edge path."""
        return before in self.ancestors(after)

    def order(self) -> list[str]:
        """Return a topological declaration order.

        Raises
        ------
        ResourceGraphError
            If a dependency is unknown or the edges form a cycle.
        """
        for node in self._nodes.values():
            missing = [dep for dep in node.depends_on if dep not in self._nodes]
            if missing:
                msg = f"resource {node.name!r} depends on unknown {', '.join(missing)}"
                raise ResourceGraphError(msg)

        sorter: TopologicalSorter[str] = TopologicalSorter()
        for node in self._nodes.values():
            sorter.add(node.name, *node.depends_on)
        try:
            return list(sorter.static_order())
        except CycleError as exc:
            cycle = " -> ".join(exc.args[1])
            msg = f"cycle detected: {cycle}"
            raise ResourceGraphError(msg) from exc

    def _node(self, name: str) -> ResourceNode:
        try:
            return self._nodes[name]
        except KeyError:
            msg = f"unknown resource {name!r}"
            raise ResourceGraphError(msg) from None
