"""
Composite constructs: several resources declared as one logical unit.

A construct scopes the ids of the nodes it declares under its own name and
keeps those nodes to itself. Callers see the construct's ``outputs`` and can
depend on the construct as a whole.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .deferred import DeferredValue
from .graph import DependencyGraph
from .resources import ResourceNode


class CompositeConstruct:
    def __init__(self, graph: DependencyGraph, name: str):
        self.graph = graph
        self.name = name
        self._nodes: List[ResourceNode] = []
        self._outputs: Dict[str, DeferredValue] = {}

    def scoped_id(self, local_id: str) -> str:
        return f"{self.name}/{local_id}"

    def declare(self, local_id: str, kind: str, attributes: Optional[Mapping[str, Any]] = None,
                depends_on: Iterable[Any] = ()) -> ResourceNode:
        node = self.graph.add(self.scoped_id(local_id), kind, attributes, depends_on)
        self._nodes.append(node)
        return node

    def export(self, name: str, value: DeferredValue) -> None:
        self._outputs[name] = value

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(node.node_id for node in self._nodes)

    @property
    def outputs(self) -> Mapping[str, DeferredValue]:
        return dict(self._outputs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {len(self._nodes)} resources)"
