"""Shared pytest fixtures."""

import pytest

from eksgraph.config import ClusterConfig, StackConfig, WorkerPoolConfig
from eksgraph.graph import DependencyGraph


@pytest.fixture
def graph():
    return DependencyGraph()


@pytest.fixture
def stack_config():
    return StackConfig(
        team="Platform",
        service="eks",
        environment="dev",
        region="us-east-1",
        vpc_id="vpc-123",
        availability_zones=["us-east-1a", "us-east-1b", "us-east-1c"],
        public_subnet_cidr_blocks=["10.0.1.0/24", "10.0.2.0/24", "10.0.3.0/24"],
        clusters=[
            ClusterConfig(
                cluster_name="demo-eks",
                cluster_version="1.29",
                node_groups={
                    "general": WorkerPoolConfig(instance_types=["t3.medium"], max_size=3, desired_size=2),
                    "batch": WorkerPoolConfig(min_size=0, desired_size=0),
                },
            )
        ],
        tags={"Team": "platform"},
    )
