"""
Resource declarations.

A ResourceNode is one cloud object the engine will create: a ``kind`` naming
the pulumi_aws class (``"<module>.<Class>"``), the arguments it is created
with and the nodes it must be created after.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .deferred import DeferredValue, collect_references
from .errors import CyclicDependency, InvalidConfiguration

COMMON_OUTPUTS = ("id", "arn", "urn")

# Computed attributes the provider reports back, beyond the declared inputs.
KIND_OUTPUTS: Dict[str, Tuple[str, ...]] = {
    "ec2.Subnet": ("availability_zone_id", "owner_id"),
    "iam.Role": ("name", "unique_id", "create_date"),
    "eks.Cluster": ("endpoint", "certificate_authority", "identities", "platform_version", "status", "vpc_config"),
    "eks.NodeGroup": ("resources", "status"),
}


def dependency_ids(depends_on: Iterable[Any]) -> Tuple[str, ...]:
    """Flatten nodes, constructs and plain ids into a tuple of node ids."""
    ids = []
    for item in depends_on:
        if isinstance(item, str):
            ids.append(item)
        elif isinstance(item, ResourceNode):
            ids.append(item.node_id)
        elif hasattr(item, "node_ids"):
            ids.extend(item.node_ids)
        else:
            raise InvalidConfiguration(f"Cannot depend on {item!r}: expected a resource, construct or id")
    return tuple(ids)


@dataclass(frozen=True, eq=False)
class ResourceNode:
    node_id: str
    kind: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    depends_on: FrozenSet[str] = frozenset()
    references: Tuple[Tuple[str, DeferredValue], ...] = ()

    @classmethod
    def create(cls, node_id: str, kind: str, attributes: Optional[Mapping[str, Any]] = None,
               depends_on: Iterable[Any] = ()) -> "ResourceNode":
        if not node_id:
            raise InvalidConfiguration("Resource id must be a non-empty string")
        if "." not in kind:
            raise InvalidConfiguration(f"Resource kind '{kind}' must look like '<module>.<Class>'")
        attributes = dict(attributes or {})
        references = tuple(
            item for key, value in attributes.items() for item in collect_references(value, key)
        )
        explicit = frozenset(dependency_ids(depends_on))
        if node_id in explicit or any(r.source_node_id == node_id for _, r in references):
            raise CyclicDependency([node_id, node_id])
        return cls(node_id, kind, MappingProxyType(attributes), explicit, references)

    @property
    def implicit_dependencies(self) -> FrozenSet[str]:
        return frozenset(r.source_node_id for _, r in self.references)

    @property
    def dependencies(self) -> FrozenSet[str]:
        return self.depends_on | self.implicit_dependencies

    def output_attributes(self) -> FrozenSet[str]:
        return frozenset(COMMON_OUTPUTS) | frozenset(KIND_OUTPUTS.get(self.kind, ())) | frozenset(self.attributes)

    def ref(self, attribute: str = "id") -> DeferredValue:
        root = attribute.split(".", 1)[0]
        if root not in self.output_attributes():
            raise InvalidConfiguration(f"'{attribute}' is not an output of {self.kind} '{self.node_id}'")
        return DeferredValue(self.node_id, attribute)

    @property
    def id_ref(self) -> DeferredValue:
        return self.ref("id")

    @property
    def arn_ref(self) -> DeferredValue:
        return self.ref("arn")
