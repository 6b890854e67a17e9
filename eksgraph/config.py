"""
This module defines the data structures for our configuration and the YAML
loader that fills them.

Everything here is a literal value; the assembler receives one StackConfig
and reads nothing else from the environment.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from .errors import InvalidConfiguration

REQUIRED_KEYS = ["team", "service", "environment", "region"]
DEFAULT_CLUSTER_SCOPE = "demo-cluster"


def to_snake_case(name: str) -> str:
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def snake_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_snake_case(k): v for k, v in data.items()}


def section(data: Dict[str, Any], key: str, expected: type, default: Any = None) -> Any:
    """Return ``data[key]`` if it has the expected shape, ``default`` when absent."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, expected):
        shape = "mapping" if expected is dict else "list"
        raise InvalidConfiguration(f"Configuration key '{key}' must be a {shape}, got {type(value).__name__}")
    return value


def deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``overlay``; nested mappings merge, anything else replaces."""
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass
class WorkerPoolConfig:
    instance_types: List[str] = field(default_factory=lambda: ["t2.medium"])
    min_size: int = 1
    max_size: int = 1
    desired_size: int = 1
    subnet_ids: Optional[List[str]] = None
    ami_type: str = "AL2_x86_64"
    extra_args: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], name: str = "node_group") -> "WorkerPoolConfig":
        data = snake_keys(section({name: data}, name, dict, {}))
        scaling = snake_keys(section(data, "scaling_config", dict, {}))
        data.pop("scaling_config", None)
        known = {}
        for key in ("instance_types", "min_size", "max_size", "desired_size", "subnet_ids", "ami_type"):
            if key in scaling:
                known[key] = scaling.pop(key)
            if key in data:
                known[key] = data.pop(key)
        if scaling:
            raise InvalidConfiguration(f"Unknown scaling_config keys: {sorted(scaling)}")
        return cls(extra_args=data, **known)


@dataclass
class ClusterConfig:
    cluster_name: str
    cluster_version: str
    name: str = DEFAULT_CLUSTER_SCOPE
    node_groups: Dict[str, WorkerPoolConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: str = "clusters") -> "ClusterConfig":
        data = snake_keys(section({key: data}, key, dict, {}))
        for required in ("cluster_name", "cluster_version"):
            if required not in data:
                raise InvalidConfiguration(f"Missing required cluster configuration key: {required}")
        node_groups = section(data, "node_groups", dict, {})
        return cls(
            cluster_name=data["cluster_name"],
            cluster_version=str(data["cluster_version"]),
            name=data.get("name", DEFAULT_CLUSTER_SCOPE),
            node_groups={
                name: WorkerPoolConfig.from_dict(pool, f"node_groups.{name}") for name, pool in node_groups.items()
            },
        )


@dataclass
class BackendConfig:
    """Remote-state coordinates. Opaque here: Pulumi's own backend owns state."""
    bucket: str
    key: str
    region: str
    encrypt: bool = True


@dataclass
class StackConfig:
    team: str
    service: str
    environment: str
    region: str
    vpc_id: str = ""
    availability_zones: List[str] = field(default_factory=list)
    public_subnet_cidr_blocks: List[str] = field(default_factory=list)
    clusters: List[ClusterConfig] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    backend: Optional[BackendConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StackConfig":
        if not isinstance(data, dict):
            raise InvalidConfiguration("Configuration must be a mapping")
        data = snake_keys(data)
        for key in REQUIRED_KEYS:
            if key not in data:
                raise InvalidConfiguration(f"Missing required configuration key: {key}")

        clusters = [ClusterConfig.from_dict(c) for c in section(data, "clusters", list, [])]
        if data.get("eks"):
            clusters.append(ClusterConfig.from_dict(data["eks"], "eks"))

        backend = section(data, "backend", dict)
        if backend is not None:
            try:
                backend = BackendConfig(**snake_keys(backend))
            except TypeError as e:
                raise InvalidConfiguration(f"Invalid backend configuration: {e}") from e

        return cls(
            team=data["team"],
            service=data["service"],
            environment=data["environment"],
            region=data["region"],
            vpc_id=data.get("vpc_id", ""),
            availability_zones=list(section(data, "availability_zones", list, [])),
            public_subnet_cidr_blocks=list(section(data, "public_subnet_cidr_blocks", list, [])),
            clusters=clusters,
            tags=dict(section(data, "tags", dict, {})),
            backend=backend,
        )


def read_yaml(file_path: str) -> Dict[str, Any]:
    with open(file_path, "r") as file:
        data = yaml.safe_load(file)
    return data or {}


def load_config(file_path: str, overlay_path: Optional[str] = None) -> StackConfig:
    """Load and validate YAML configuration, layering an optional per-environment overlay."""
    config_data = read_yaml(file_path)
    if overlay_path and os.path.exists(overlay_path):
        config_data = deep_merge(config_data, read_yaml(overlay_path))
    return StackConfig.from_dict(config_data)
