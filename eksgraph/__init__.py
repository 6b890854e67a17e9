from .cluster import Cluster, ClusterProps
from .config import ClusterConfig, StackConfig, WorkerPoolConfig, load_config
from .construct import CompositeConstruct
from .deferred import DeferredList, DeferredValue, as_list, as_string, ref, ref_list
from .errors import (
    CyclicDependency,
    DanglingReference,
    DuplicateResourceId,
    GraphFinalized,
    InvalidConfiguration,
    InvalidPlacement,
    StackBuildError,
)
from .graph import DependencyGraph, ExecutionPlan
from .resources import ResourceNode
from .stack import StackAssembler, StackBuild
