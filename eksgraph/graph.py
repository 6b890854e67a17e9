"""
Dependency graph of resource declarations and the execution plan derived
from it.

Edges come from two places: the explicit ``depends_on`` list of each node and
the deferred values embedded in its attributes. Nodes are added one at a time
while constructs are built, so the graph is only checked as a whole, once,
in ``finalize()``.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import networkx as nx
import pulumi
import yaml

from .errors import CyclicDependency, DanglingReference, DuplicateResourceId, GraphFinalized, InvalidConfiguration
from .resources import ResourceNode


def dependency_digraph(node_ids: Sequence[str], dependencies: Mapping[str, FrozenSet[str]]) -> nx.DiGraph:
    """Edges point from a dependency to the node that waits on it."""
    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    graph.add_edges_from((dep, node_id) for node_id in node_ids for dep in dependencies[node_id])
    return graph


def topological_layers(node_ids: Sequence[str],
                       dependencies: Mapping[str, FrozenSet[str]]) -> Tuple[Tuple[str, ...], ...]:
    """Waves of mutually independent nodes, each wave depending only on earlier ones.

    Within a wave nodes keep the order of ``node_ids``. Raises
    ``CyclicDependency`` naming the ids of one cycle if the relation is not a DAG.
    """
    graph = dependency_digraph(node_ids, dependencies)
    position = {node_id: index for index, node_id in enumerate(node_ids)}
    try:
        generations = list(nx.topological_generations(graph))
    except nx.NetworkXUnfeasible:
        # edges run dependency -> dependent; reversed they read "waits on"
        edges = nx.find_cycle(graph)
        cycle = [target for _, target in reversed(edges)]
        raise CyclicDependency(cycle + [cycle[0]])
    return tuple(tuple(sorted(generation, key=position.__getitem__)) for generation in generations)


@dataclass(frozen=True)
class ExecutionPlan:
    """Partial order in which the engine may create resources.

    ``layers`` are waves: everything in one wave only depends on earlier
    waves, so a wave can be created in parallel. ``order`` flattens them.
    """

    layers: Tuple[Tuple[str, ...], ...]
    dependencies: Mapping[str, FrozenSet[str]]
    kinds: Mapping[str, str]

    @property
    def order(self) -> Tuple[str, ...]:
        return tuple(node_id for layer in self.layers for node_id in layer)

    def __len__(self) -> int:
        return len(self.dependencies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layers": [list(layer) for layer in self.layers],
            "resources": [
                {"id": node_id, "kind": self.kinds[node_id], "depends_on": sorted(self.dependencies[node_id])}
                for node_id in self.order
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutionPlan":
        try:
            resources = data["resources"]
            node_ids = [item["id"] for item in resources]
            duplicates = sorted({node_id for node_id in node_ids if node_ids.count(node_id) > 1})
            dependencies = {item["id"]: frozenset(item.get("depends_on") or ()) for item in resources}
            kinds = {item["id"]: item["kind"] for item in resources}
        except (KeyError, TypeError) as e:
            raise InvalidConfiguration(f"Malformed execution plan: {e}") from e
        if duplicates:
            raise DuplicateResourceId(duplicates[0])
        missing = [(node_id, "depends_on", dep) for node_id in node_ids
                   for dep in sorted(dependencies[node_id]) if dep not in dependencies]
        if missing:
            raise DanglingReference(missing)
        return cls(topological_layers(node_ids, dependencies), dependencies, kinds)

    def dump(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False)

    @classmethod
    def load(cls, text: str) -> "ExecutionPlan":
        return cls.from_dict(yaml.safe_load(text))


class DependencyGraph:
    def __init__(self):
        self.nodes: Dict[str, ResourceNode] = {}
        self._plan: Optional[ExecutionPlan] = None

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self.nodes.values())

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def finalized(self) -> bool:
        return self._plan is not None

    def add(self, node_id: str, kind: str, attributes: Optional[Mapping[str, Any]] = None,
            depends_on: Iterable[Any] = ()) -> ResourceNode:
        if self.finalized:
            raise GraphFinalized(node_id)
        if node_id in self.nodes:
            raise DuplicateResourceId(node_id)
        node = ResourceNode.create(node_id, kind, attributes, depends_on)
        self.nodes[node_id] = node
        pulumi.log.debug(f"Declared {kind} '{node_id}' depending on {sorted(node.dependencies)}")
        return node

    def dependencies_of(self, node_id: str) -> FrozenSet[str]:
        return self.nodes[node_id].dependencies

    def edges(self) -> List[Tuple[str, str]]:
        """``(node, dependency)`` pairs, each union edge listed once."""
        return [(node.node_id, dep) for node in self for dep in sorted(node.dependencies)]

    def finalize(self) -> ExecutionPlan:
        if self._plan is not None:
            return self._plan

        missing = []
        for node in self:
            missing.extend((node.node_id, path, value.source_node_id)
                           for path, value in node.references if value.source_node_id not in self.nodes)
            missing.extend((node.node_id, "depends_on", dep)
                           for dep in sorted(node.depends_on) if dep not in self.nodes)
        if missing:
            raise DanglingReference(missing)

        dependencies = {node_id: node.dependencies for node_id, node in self.nodes.items()}
        layers = topological_layers(list(self.nodes), dependencies)
        self._plan = ExecutionPlan(layers, dependencies, {node_id: node.kind for node_id, node in self.nodes.items()})
        pulumi.log.info(f"Finalized graph: {len(self.nodes)} resources in {len(layers)} waves")
        return self._plan
