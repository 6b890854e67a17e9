"""
The EKS cluster construct.

Declares the control-plane role and its policy attachments, the control
plane, the worker role and its attachments, and one managed node group per
configured pool. The wiring matters more than the shapes:

* the control plane waits for its role *and* every attachment, not just
  the role;
* the worker role has no ordering relative to the control-plane side;
* every node group waits for the control plane, the worker role and every
  worker attachment, and node groups never wait on each other.

https://docs.aws.amazon.com/eks/latest/userguide/service_IAM_role.html
https://docs.aws.amazon.com/eks/latest/userguide/create-node-role.html
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import pulumi

from .config import ClusterConfig, WorkerPoolConfig
from .construct import CompositeConstruct
from .deferred import DeferredList, as_list
from .errors import InvalidPlacement
from .graph import DependencyGraph
from .resources import ResourceNode

CLUSTER_POLICY_ARNS = {
    "eks-cluster-policy": "arn:aws:iam::aws:policy/AmazonEKSClusterPolicy",
    "eks-vpc-resource-controller-policy": "arn:aws:iam::aws:policy/AmazonEKSVPCResourceController",
}

WORKER_POLICY_ARNS = {
    "eks-node-policy": "arn:aws:iam::aws:policy/AmazonEKSWorkerNodePolicy",
    "ec2-container-registry-policy": "arn:aws:iam::aws:policy/AmazonEC2ContainerRegistryReadOnly",
    "eks-cni-policy": "arn:aws:iam::aws:policy/AmazonEKS_CNI_Policy",
    # need EBS volumes to store secrets
    "ebs-csi-driver-policy": "arn:aws:iam::aws:policy/service-role/AmazonEBSCSIDriverPolicy",
}

CLUSTER_LOG_TYPES = ["api", "audit", "authenticator"]

Placement = Union[DeferredList, Sequence[Any]]


def assume_role_policy(service: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": service},
                "Action": "sts:AssumeRole",
            }
        ],
    })


@dataclass
class ClusterProps:
    cluster_name: str
    cluster_version: str
    subnet_ids: Placement
    node_groups: Dict[str, WorkerPoolConfig] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: ClusterConfig, subnet_ids: Placement,
                    tags: Optional[Dict[str, str]] = None) -> "ClusterProps":
        return cls(
            cluster_name=config.cluster_name,
            cluster_version=config.cluster_version,
            subnet_ids=subnet_ids,
            node_groups=dict(config.node_groups),
            tags=dict(tags or {}),
        )


class Cluster(CompositeConstruct):
    def __init__(self, graph: DependencyGraph, name: str, props: ClusterProps):
        if len(props.subnet_ids) == 0:
            raise InvalidPlacement(name)
        for pool_name, pool in props.node_groups.items():
            if pool.subnet_ids is not None and len(pool.subnet_ids) == 0:
                raise InvalidPlacement(f"{name}/{pool_name}", "node group subnet list is empty")
        super().__init__(graph, name)
        self.props = props
        self.define_eks_resources()

    def define_eks_resources(self) -> None:
        cluster_role = self.declare("eks-cluster-role", "iam.Role", {
            "name": f"{self.props.cluster_name}-cluster-service",
            "assume_role_policy": assume_role_policy("eks.amazonaws.com"),
            "tags": self.props.tags,
        })
        node_role = self.declare("eks-nodes-role", "iam.Role", {
            "name": f"{self.props.cluster_name}-nodes",
            "assume_role_policy": assume_role_policy("ec2.amazonaws.com"),
            "tags": self.props.tags,
        })

        cluster_policies = self.attach_policies(cluster_role, CLUSTER_POLICY_ARNS)
        cluster = self.declare("k8s-cluster", "eks.Cluster", {
            "name": self.props.cluster_name,
            "version": self.props.cluster_version,
            "role_arn": cluster_role.ref("arn"),
            "vpc_config": {
                "endpoint_public_access": True,
                "endpoint_private_access": True,
                "subnet_ids": as_list(self.props.subnet_ids),
            },
            "enabled_cluster_log_types": list(CLUSTER_LOG_TYPES),
            "tags": self.props.tags,
        }, depends_on=[cluster_role, *cluster_policies])

        worker_policies = self.attach_policies(node_role, WORKER_POLICY_ARNS)
        for pool_name, pool in self.props.node_groups.items():
            node_group = self.declare(f"node-group-{pool_name}", "eks.NodeGroup", {
                **pool.extra_args,
                "cluster_name": cluster.ref("name"),
                "node_group_name": pool_name,
                "node_role_arn": node_role.ref("arn"),
                "subnet_ids": as_list(pool.subnet_ids if pool.subnet_ids is not None else self.props.subnet_ids),
                "instance_types": list(pool.instance_types),
                "ami_type": pool.ami_type,
                "scaling_config": {
                    "min_size": pool.min_size,
                    "max_size": pool.max_size,
                    "desired_size": pool.desired_size,
                },
                "tags": self.props.tags,
            }, depends_on=[cluster, node_role, *worker_policies])
            self.export(f"node_group_{pool_name}_arn", node_group.ref("arn"))

        self.export("cluster_id", cluster.ref("id"))
        self.export("cluster_name", cluster.ref("name"))
        self.export("cluster_arn", cluster.ref("arn"))
        self.export("cluster_endpoint", cluster.ref("endpoint"))
        self.export("cluster_role_arn", cluster_role.ref("arn"))
        self.export("node_role_arn", node_role.ref("arn"))
        pulumi.log.info(
            f"Declared cluster '{self.props.cluster_name}' ({self.props.cluster_version}) "
            f"with {len(self.props.node_groups)} node groups"
        )

    def attach_policies(self, role: ResourceNode, policies: Dict[str, str]) -> List[ResourceNode]:
        # https://www.terraform.io/docs/providers/aws/r/iam_role_policy_attachment
        return [
            self.declare(local_id, "iam.RolePolicyAttachment", {
                "policy_arn": policy_arn,
                "role": role.ref("name"),
            })
            for local_id, policy_arn in policies.items()
        ]
