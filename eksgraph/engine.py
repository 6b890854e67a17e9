"""
Hands a finalized build to Pulumi.

Each node becomes a pulumi_aws resource created in plan order; deferred
values become the Outputs of resources created earlier in the same pass.
"""

import functools
import inspect
from typing import Any, Dict, Optional

import pulumi
import pulumi_aws as aws

from .config import StackConfig
from .deferred import DeferredList, DeferredValue
from .errors import InvalidConfiguration
from .resources import ResourceNode
from .stack import StackBuild

AWS_REGION_ABBREVIATIONS = {
    "us-east-1": "use1",
    "us-east-2": "use2",
    "us-west-1": "usw1",
    "us-west-2": "usw2",
    "af-south-1": "afs1",
    "ap-east-1": "ape1",
    "ap-south-1": "aps1",
    "ap-northeast-1": "apne1",
    "ap-northeast-2": "apne2",
    "ap-northeast-3": "apne3",
    "ap-southeast-1": "apse1",
    "ap-southeast-2": "apse2",
    "ca-central-1": "cac1",
    "eu-central-1": "euc1",
    "eu-west-1": "euw1",
    "eu-west-2": "euw2",
    "eu-west-3": "euw3",
    "eu-north-1": "eun1",
    "eu-south-1": "eus1",
    "me-south-1": "mes1",
    "sa-east-1": "sae1",
    "us-gov-east-1": "usge1",
    "us-gov-west-1": "usgw1",
    "cn-north-1": "cnn1",
    "cn-northwest-1": "cnnw1",
}


def get_abbreviation(region: str) -> str:
    return AWS_REGION_ABBREVIATIONS.get(region.lower(), region.split("-")[0].lower())


def resolve_value(value: Any, resources: Dict[str, Any]) -> Any:
    if isinstance(value, DeferredValue):
        if value.source_node_id not in resources:
            raise InvalidConfiguration(f"Referenced resource '{value.source_node_id}' has not been created.")
        return functools.reduce(getattr, value.attribute_path.split("."), resources[value.source_node_id])
    elif isinstance(value, DeferredList):
        return [resolve_value(item, resources) for item in value]
    elif isinstance(value, dict):
        return {k: resolve_value(v, resources) for k, v in value.items()}
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [resolve_value(item, resources) for item in value]
    elif isinstance(value, str) and value.startswith("secret:"):
        # Fetch secret from Pulumi config
        return pulumi.Config().require_secret(value[len("secret:"):])
    else:
        return value


class PulumiEngine:
    def __init__(self, config: StackConfig, provider_module: Any = aws):
        self.config = config
        self.aws = provider_module
        self.resources: Dict[str, Any] = {}
        self._provider: Optional[Any] = None

    @property
    def provider(self) -> Any:
        if self._provider is None:
            self._provider = self.aws.Provider("aws", region=self.config.region)
        return self._provider

    def generate_resource_name(self, node_id: str) -> str:
        team = self.config.team.strip().lower()
        service = self.config.service.strip().lower()
        env = self.config.environment.strip().lower()
        reg_abbr = get_abbreviation(self.config.region)
        return f"{team}-{service}-{env}-{reg_abbr}-{node_id.replace('/', '-')}".lower()

    def resource_class(self, kind: str) -> Any:
        module_name, class_name = kind.rsplit(".", 1)
        module = getattr(self.aws, module_name, None)
        if module is None:
            raise InvalidConfiguration(f"AWS module '{module_name}' not found for kind '{kind}'")
        try:
            return getattr(module, class_name)
        except AttributeError:
            raise InvalidConfiguration(f"Resource class '{class_name}' not found in module '{module_name}'")

    def accepts_tags(self, kind: str) -> bool:
        # Resource __init__ only takes *args/**kwargs; the <Class>Args type spells out the inputs.
        module_name, class_name = kind.rsplit(".", 1)
        ArgsClass = getattr(getattr(self.aws, module_name, None), f"{class_name}Args", None)
        if ArgsClass is None:
            return False
        return "tags" in inspect.signature(ArgsClass.__init__).parameters

    def _apply_common_parameters(self, resolved_args: dict, kind: str) -> dict:
        if self.accepts_tags(kind):
            if self.config.tags:
                resolved_args.setdefault("tags", self.config.tags)
        else:
            resolved_args.pop("tags", None)
        return resolved_args

    def create(self, node: ResourceNode) -> Any:
        ResourceClass = self.resource_class(node.kind)
        resolved_args = {key: resolve_value(value, self.resources) for key, value in node.attributes.items()}
        resolved_args = self._apply_common_parameters(resolved_args, node.kind)
        opts = pulumi.ResourceOptions(
            provider=self.provider,
            depends_on=[self.resources[dep] for dep in sorted(node.depends_on)],
        )
        pulumi_name = self.generate_resource_name(node.node_id)
        resource_instance = ResourceClass(pulumi_name, **resolved_args, opts=opts)
        self.resources[node.node_id] = resource_instance
        pulumi.log.info(f"Created resource: {pulumi_name} ({node.kind})")
        return resource_instance

    def apply(self, build: StackBuild) -> Dict[str, Any]:
        for node_id in build.plan.order:
            self.create(build.graph.nodes[node_id])
        return self.resources

    def export_outputs(self, build: StackBuild) -> None:
        for name, value in build.outputs.items():
            pulumi.export(name, resolve_value(value, self.resources))
