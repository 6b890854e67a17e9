"""
Errors raised while building or finalizing a stack's resource graph.

All of them indicate a logic or configuration defect, so none are retried:
they abort the build before anything reaches the provisioning engine.
"""

from typing import Iterable, List, Tuple


class StackBuildError(Exception):
    """Base class for every build/finalize failure."""


class DuplicateResourceId(StackBuildError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Resource id '{node_id}' is already declared in this graph")


class DanglingReference(StackBuildError):
    """One or more references name nodes that are not in the graph.

    ``missing`` holds ``(node_id, attribute_path, missing_id)`` triples; the
    attribute path is ``depends_on`` for explicit dependencies.
    """

    def __init__(self, missing: Iterable[Tuple[str, str, str]]):
        self.missing: List[Tuple[str, str, str]] = list(missing)
        details = ", ".join(f"{node}.{path} -> '{target}'" for node, path, target in self.missing)
        super().__init__(f"Dangling references: {details}")


class CyclicDependency(StackBuildError):
    def __init__(self, cycle: Iterable[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(f"Cyclic dependency between resources: {' -> '.join(self.cycle)}")


class InvalidPlacement(StackBuildError):
    def __init__(self, owner: str, message: str = "no subnets supplied"):
        self.owner = owner
        super().__init__(f"Invalid placement for '{owner}': {message}")


class InvalidConfiguration(StackBuildError, ValueError):
    pass


class GraphFinalized(StackBuildError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Cannot add '{node_id}': graph has already been finalized")
