"""Tests for configuration loading."""

import pytest

from eksgraph.config import StackConfig, WorkerPoolConfig, deep_merge, load_config, to_snake_case
from eksgraph.errors import InvalidConfiguration

BASE = """
team: platform
service: eks
environment: dev
region: us-east-1
vpcId: vpc-123
availabilityZones: [us-east-1a, us-east-1b]
publicSubnetCidrBlocks: [10.0.1.0/24, 10.0.2.0/24]
tags:
  Team: platform
eks:
  clusterName: demo-eks
  clusterVersion: 1.29
  nodeGroups:
    general:
      instanceTypes: [t3.medium]
      scalingConfig:
        minSize: 1
        maxSize: 4
        desiredSize: 2
      labels:
        role: general
backend:
  bucket: state-bucket
  key: eks/dev
  region: us-east-1
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(BASE)
    return path


class TestLoadConfig:
    def test_camel_case_keys_are_accepted(self, config_file):
        config = load_config(str(config_file))
        assert config.vpc_id == "vpc-123"
        assert config.availability_zones == ["us-east-1a", "us-east-1b"]
        assert config.tags == {"Team": "platform"}
        cluster = config.clusters[0]
        assert cluster.name == "demo-cluster"
        assert cluster.cluster_version == "1.29"
        pool = cluster.node_groups["general"]
        assert (pool.min_size, pool.max_size, pool.desired_size) == (1, 4, 2)
        assert pool.instance_types == ["t3.medium"]
        assert pool.extra_args == {"labels": {"role": "general"}}
        assert config.backend.bucket == "state-bucket"
        assert config.backend.encrypt is True

    def test_overlay_is_merged(self, config_file, tmp_path):
        overlay = tmp_path / "config.prod.yaml"
        overlay.write_text("environment: prod\ntags:\n  Env: prod\n")
        config = load_config(str(config_file), overlay_path=str(overlay))
        assert config.environment == "prod"
        assert config.tags == {"Team": "platform", "Env": "prod"}

    def test_missing_overlay_is_ignored(self, config_file, tmp_path):
        config = load_config(str(config_file), overlay_path=str(tmp_path / "config.none.yaml"))
        assert config.environment == "dev"

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("team: platform\nservice: eks\nenvironment: dev\n")
        with pytest.raises(InvalidConfiguration, match="region"):
            load_config(str(path))

    def test_invalid_configuration_is_a_value_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestSections:
    def test_clusters_list(self):
        config = StackConfig.from_dict({
            "team": "t", "service": "s", "environment": "e", "region": "eu-west-1",
            "clusters": [{"name": "a", "cluster_name": "a-eks", "cluster_version": "1.29"}],
        })
        assert [c.name for c in config.clusters] == ["a"]
        assert config.clusters[0].node_groups == {}

    def test_cluster_requires_name_and_version(self):
        with pytest.raises(InvalidConfiguration, match="cluster_version"):
            StackConfig.from_dict({
                "team": "t", "service": "s", "environment": "e", "region": "r",
                "clusters": [{"cluster_name": "a"}],
            })

    def test_bad_backend(self):
        with pytest.raises(InvalidConfiguration):
            StackConfig.from_dict({
                "team": "t", "service": "s", "environment": "e", "region": "r",
                "backend": {"bucket": "b"},
            })

    def test_unknown_scaling_key(self):
        with pytest.raises(InvalidConfiguration):
            WorkerPoolConfig.from_dict({"scaling_config": {"max_unavailable": 1}})

    def test_pool_defaults(self):
        pool = WorkerPoolConfig.from_dict(None)
        assert pool.instance_types == ["t2.medium"]
        assert pool.ami_type == "AL2_x86_64"
        assert pool.subnet_ids is None


def test_helpers():
    assert to_snake_case("publicSubnetCidrBlocks") == "public_subnet_cidr_blocks"
    assert deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 3}, "d": [1]}) == {"a": {"b": 3, "c": 2}, "d": [1]}


BASE_KEYS = {"team": "t", "service": "s", "environment": "e", "region": "r"}


@pytest.mark.parametrize("section, value, key", [
    ("clusters", {"a": {"cluster_name": "a", "cluster_version": "1.29"}}, "clusters"),
    ("clusters", ["not-a-cluster"], "clusters"),
    ("eks", {"cluster_name": "a", "cluster_version": "1.29", "node_groups": {"general": "t3.medium"}},
     "node_groups.general"),
    ("eks", {"cluster_name": "a", "cluster_version": "1.29", "node_groups": ["general"]}, "node_groups"),
    ("eks", {"cluster_name": "a", "cluster_version": "1.29",
             "node_groups": {"general": {"scaling_config": 3}}}, "scaling_config"),
    ("tags", ["Team"], "tags"),
    ("availability_zones", "us-east-1a", "availability_zones"),
    ("public_subnet_cidr_blocks", {"a": "10.0.1.0/24"}, "public_subnet_cidr_blocks"),
    ("backend", "s3://bucket", "backend"),
])
def test_malformed_sections_name_the_key(section, value, key):
    with pytest.raises(InvalidConfiguration, match=key):
        StackConfig.from_dict({**BASE_KEYS, section: value})
