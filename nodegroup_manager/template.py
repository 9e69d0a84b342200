# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Worker node stack template and aws-auth identity mapping rendering."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import yaml

from nodegroup_manager.config import NodeGroupRequest
from nodegroup_manager.constants import (
    AWS_AUTH_CONFIGMAP,
    NODE_GROUPS,
    NODE_USERNAME_TEMPLATE,
    NS_KUBE_SYSTEM,
    SSH_INGRESS_RESOURCE,
    TAG_HOSTNAME,
    WORKER_NODE_TEMPLATE,
)


@dataclass(frozen=True)
class WorkerNodeStack:
    """Values substituted into the worker node stack template.

    Attributes:
        description: Stack description.
        tag_key: Provenance tag key propagated to the instances.
        tag_value: Provenance tag value.
        hostname: Submitting host, propagated to the instances.
        enable_ssh: Whether to keep the SSH ingress rule.
    """

    description: str
    tag_key: str
    tag_value: str
    hostname: str
    enable_ssh: bool = False

    @classmethod
    def from_request(cls, req: NodeGroupRequest) -> WorkerNodeStack:
        return cls(
            description=f"{req.cluster_name}-worker-node-stack",
            tag_key=req.tag_key,
            tag_value=req.tag_value,
            hostname=req.hostname,
            enable_ssh=req.enable_ssh,
        )


TemplateRenderer = Callable[[WorkerNodeStack], str]


def load_worker_node_template(path: Path = WORKER_NODE_TEMPLATE) -> dict:
    """Load the base worker node stack template.

    Args:
        path: YAML template file.

    Returns:
        Parsed template as a nested dictionary.
    """
    with open(path) as f:
        return yaml.safe_load(f)


def render_worker_node_template(stack: WorkerNodeStack) -> str:
    """Render the worker node CloudFormation template body.

    Args:
        stack: Values to substitute.

    Returns:
        Template body as a YAML string.
    """
    template = load_worker_node_template()
    template["Description"] = stack.description

    resources = template["Resources"]
    if not stack.enable_ssh:
        resources.pop(SSH_INGRESS_RESOURCE, None)

    asg_tags = resources["NodeGroup"]["Properties"].setdefault("Tags", [])
    asg_tags.extend([
        {"Key": stack.tag_key, "Value": stack.tag_value, "PropagateAtLaunch": True},
        {"Key": TAG_HOSTNAME, "Value": stack.hostname, "PropagateAtLaunch": True},
    ])
    return yaml.safe_dump(template, default_flow_style=False, sort_keys=False)


def node_auth_configmap(role_arn: str) -> dict:
    """Build the aws-auth ConfigMap that lets nodes with *role_arn* join.

    Args:
        role_arn: Node instance role ARN from the stack outputs.

    Returns:
        Kubernetes ConfigMap resource as a dictionary ready for YAML serialization.
    """
    map_roles = [{
        "rolearn": role_arn,
        "username": NODE_USERNAME_TEMPLATE,
        "groups": list(NODE_GROUPS),
    }]
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": AWS_AUTH_CONFIGMAP, "namespace": NS_KUBE_SYSTEM},
        "data": {"mapRoles": yaml.safe_dump(map_roles, default_flow_style=False, sort_keys=False)},
    }


def render_node_auth_configmap(role_arn: str) -> str:
    return yaml.safe_dump(node_auth_configmap(role_arn), default_flow_style=False, sort_keys=False)
