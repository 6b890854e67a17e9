"""
Deferred values: references to attributes of resources that do not exist yet.

A DeferredValue never carries data. The provisioning engine substitutes the
real value after the source resource has been created; until then the value
only records which node it comes from, which is what dependency discovery
needs.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Tuple

from .errors import InvalidConfiguration

LITERAL_TYPES = (str, int, float, bool, type(None))
SEQUENCE_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class DeferredValue:
    source_node_id: str
    attribute_path: str = "id"

    @property
    def source_node_ids(self) -> Tuple[str, ...]:
        return (self.source_node_id,)

    def __str__(self) -> str:
        return f"${{{self.source_node_id}.{self.attribute_path}}}"


@dataclass(frozen=True)
class DeferredList:
    """The ordered list of each element's eventual value."""

    items: Tuple[DeferredValue, ...]

    @property
    def source_node_ids(self) -> Tuple[str, ...]:
        return tuple(item.source_node_id for item in self.items)

    def __iter__(self) -> Iterator[DeferredValue]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def ref(node: Any, attribute: str = "id") -> DeferredValue:
    return node.ref(attribute)


def ref_list(nodes: Iterable[Any], attribute: str = "id") -> DeferredList:
    return DeferredList(tuple(ref(node, attribute) for node in nodes))


def as_string(value: Any) -> Any:
    # Substitution happens in the engine; nothing to render at build time.
    return value


def as_list(value: Any) -> Any:
    return value


def collect_references(value: Any, path: str) -> Iterator[Tuple[str, DeferredValue]]:
    """Yield ``(attribute_path, reference)`` for every deferred value in ``value``.

    Dicts, lists, tuples, sets and frozensets are walked recursively. Any other
    non-literal type is rejected so an unscanned container can never hide a
    dependency.
    """
    if isinstance(value, DeferredValue):
        yield path, value
    elif isinstance(value, DeferredList):
        for index, item in enumerate(value.items):
            yield f"{path}[{index}]", item
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise InvalidConfiguration(f"Attribute '{path}' has non-string key {key!r}")
            yield from collect_references(item, f"{path}.{key}")
    elif isinstance(value, SEQUENCE_TYPES):
        for index, item in enumerate(value):
            yield from collect_references(item, f"{path}[{index}]")
    elif not isinstance(value, LITERAL_TYPES):
        raise InvalidConfiguration(
            f"Attribute '{path}' holds unsupported value of type {type(value).__name__}"
        )
