"""
Top-level build pass: subnets, clusters, then a single finalize.
"""

from dataclasses import dataclass
from typing import Dict, List

import pulumi

from .cluster import Cluster, ClusterProps
from .config import StackConfig
from .deferred import DeferredValue, ref_list
from .errors import InvalidConfiguration
from .graph import DependencyGraph, ExecutionPlan
from .resources import ResourceNode


@dataclass(frozen=True)
class StackBuild:
    graph: DependencyGraph
    plan: ExecutionPlan
    outputs: Dict[str, DeferredValue]


class StackAssembler:
    def __init__(self, config: StackConfig, subnet_prefix: str = "public"):
        self.config = config
        self.subnet_prefix = subnet_prefix
        self.graph = DependencyGraph()
        self.outputs: Dict[str, DeferredValue] = {}
        self.clusters: List[Cluster] = []

    def build(self) -> StackBuild:
        cfg = self.config
        self.graph = DependencyGraph()
        self.outputs = {}
        self.clusters = []
        if len(cfg.public_subnet_cidr_blocks) != len(cfg.availability_zones):
            raise InvalidConfiguration(
                f"{len(cfg.public_subnet_cidr_blocks)} subnet CIDR blocks but "
                f"{len(cfg.availability_zones)} availability zones"
            )
        if cfg.backend is not None:
            pulumi.log.info(f"Remote state coordinates: s3://{cfg.backend.bucket}/{cfg.backend.key}")

        subnets = self.create_subnets(cfg.public_subnet_cidr_blocks, self.subnet_prefix)
        for cluster_cfg in cfg.clusters:
            props = ClusterProps.from_config(
                cluster_cfg,
                subnet_ids=ref_list(subnets),
                tags=cfg.tags,
            )
            cluster = Cluster(self.graph, cluster_cfg.name, props)
            self.clusters.append(cluster)
            for name, value in cluster.outputs.items():
                self.outputs[f"{cluster_cfg.name}.{name}"] = value

        plan = self.graph.finalize()
        return StackBuild(self.graph, plan, dict(self.outputs))

    def create_subnets(self, cidr_blocks: List[str], prefix: str) -> List[ResourceNode]:
        subnets = []
        for number, (cidr_block, zone) in enumerate(zip(cidr_blocks, self.config.availability_zones), start=1):
            subnet = self.graph.add(f"demo-{prefix}-{number}", "ec2.Subnet", {
                "vpc_id": self.config.vpc_id,
                "cidr_block": cidr_block,
                "availability_zone": zone,
                "map_public_ip_on_launch": True,
                "tags": self.config.tags,
            })
            self.outputs[f"{prefix}Subnet{number}"] = subnet.ref("id")
            subnets.append(subnet)
        return subnets
