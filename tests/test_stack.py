"""Tests for the top-level stack assembly."""

import pytest

from eksgraph.config import ClusterConfig
from eksgraph.deferred import DeferredList, DeferredValue
from eksgraph.errors import DuplicateResourceId, InvalidConfiguration, InvalidPlacement
from eksgraph.stack import StackAssembler


class TestSubnets:
    def test_one_independent_subnet_per_block(self, stack_config):
        stack_config.clusters = []
        build = StackAssembler(stack_config).build()
        subnets = [node for node in build.graph if node.kind == "ec2.Subnet"]
        assert [s.node_id for s in subnets] == ["demo-public-1", "demo-public-2", "demo-public-3"]
        assert [s.attributes["availability_zone"] for s in subnets] == ["us-east-1a", "us-east-1b", "us-east-1c"]
        assert [s.attributes["cidr_block"] for s in subnets] == stack_config.public_subnet_cidr_blocks
        assert all(s.dependencies == frozenset() for s in subnets)
        assert build.plan.layers == (("demo-public-1", "demo-public-2", "demo-public-3"),)

    def test_mismatched_blocks_and_zones_fail_before_any_node(self, stack_config):
        stack_config.availability_zones = ["us-east-1a", "us-east-1b"]
        assembler = StackAssembler(stack_config)
        with pytest.raises(InvalidConfiguration, match="3 subnet CIDR blocks but 2 availability zones"):
            assembler.build()
        assert len(assembler.graph) == 0

    def test_subnet_outputs(self, stack_config):
        build = StackAssembler(stack_config).build()
        assert build.outputs["publicSubnet1"] == DeferredValue("demo-public-1", "id")
        assert build.outputs["publicSubnet3"] == DeferredValue("demo-public-3", "id")


class TestStackAssembly:
    def test_cluster_is_placed_on_subnets(self, stack_config):
        build = StackAssembler(stack_config).build()
        subnet_ids = build.graph.nodes["demo-cluster/k8s-cluster"].attributes["vpc_config"]["subnet_ids"]
        assert isinstance(subnet_ids, DeferredList)
        assert subnet_ids.source_node_ids == ("demo-public-1", "demo-public-2", "demo-public-3")

    def test_outputs_include_cluster_outputs(self, stack_config):
        build = StackAssembler(stack_config).build()
        assert build.outputs["demo-cluster.cluster_name"] == DeferredValue("demo-cluster/k8s-cluster", "name")
        assert "demo-cluster.node_group_general_arn" in build.outputs

    def test_plan_covers_every_node(self, stack_config):
        build = StackAssembler(stack_config).build()
        assert build.graph.finalized
        assert set(build.plan.order) == set(build.graph.nodes)
        position = {node_id: i for i, node_id in enumerate(build.plan.order)}
        for node_id, dep in build.graph.edges():
            assert position[dep] < position[node_id]

    def test_multiple_clusters(self, stack_config):
        stack_config.clusters.append(ClusterConfig(cluster_name="second", cluster_version="1.30", name="second-cluster"))
        build = StackAssembler(stack_config).build()
        assert "second-cluster/k8s-cluster" in build.graph
        assert "second-cluster.cluster_arn" in build.outputs

    def test_duplicate_cluster_scope_surfaces(self, stack_config):
        stack_config.clusters.append(ClusterConfig(cluster_name="again", cluster_version="1.30"))
        with pytest.raises(DuplicateResourceId):
            StackAssembler(stack_config).build()

    def test_no_subnets_is_invalid_placement(self, stack_config):
        stack_config.public_subnet_cidr_blocks = []
        stack_config.availability_zones = []
        with pytest.raises(InvalidPlacement):
            StackAssembler(stack_config).build()

    def test_build_twice_starts_from_a_fresh_graph(self, stack_config):
        assembler = StackAssembler(stack_config)
        first = assembler.build()
        second = assembler.build()
        assert second.graph is not first.graph
        assert second.plan.order == first.plan.order
        assert second.outputs == first.outputs
