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

"""Configuration classes and the node group request model."""

from __future__ import annotations

import socket
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from nodegroup_manager.constants import (
    CREATE_POLL_INTERVAL_SECONDS,
    CREATE_WARMUP_SECONDS,
    DEFAULT_ASG_MAX,
    DEFAULT_ASG_MIN,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_INSTANCE_TYPE,
    DEFAULT_KUBECTL_PATH,
    DEFAULT_REGION,
    DEFAULT_STATE_FILE,
    DEFAULT_TAG_KEY,
    DEFAULT_VOLUME_SIZE_GB,
    DELETE_POLL_INTERVAL_SECONDS,
    DELETE_SETTLE_SECONDS,
    KUBECTL_APPLY_TIMEOUT_SECONDS,
    KUBECTL_GET_NODES_TIMEOUT_SECONDS,
    MEMBERSHIP_POLL_INTERVAL_SECONDS,
    TAG_HOSTNAME,
    WAIT_BASE_SECONDS,
    WAIT_PER_NODE_SECONDS,
)


# ============================================================================
# Configuration classes
# ============================================================================

class NodeGroupConfig(BaseSettings):
    """Node group configuration, auto-loaded from NODEGROUP_* env vars.

    Attributes:
        cluster_name: Name of the EKS cluster the node group joins.
        node_group_name: CloudFormation stack name for the node group.
        key_pair_name: EC2 key pair attached to the worker nodes.
        tag_key: Tag key stamped on the stack; the value is the cluster name.
        region: AWS region of the cluster.
        kubeconfig_path: Kubeconfig used by kubectl to reach the cluster.
        kubectl_path: kubectl binary name or path.
        state_file: Where the cluster state snapshot is persisted.
        image_id: Worker node AMI.
        instance_type: Worker node EC2 instance type.
        asg_min: Minimum size of the worker node auto scaling group.
        asg_max: Maximum size of the worker node auto scaling group.
        volume_size_gb: Root volume size per worker node.
        vpc_id: VPC the worker nodes run in.
        subnet_ids: Subnets for the auto scaling group.
        security_group_id: Control plane security group.
        enable_ssh: Whether to open port 22 from the control plane group.
    """

    model_config = SettingsConfigDict(env_prefix="NODEGROUP_", extra="ignore")

    cluster_name: str = DEFAULT_CLUSTER_NAME
    node_group_name: str = ""
    key_pair_name: str = ""
    tag_key: str = DEFAULT_TAG_KEY
    region: str = DEFAULT_REGION
    kubeconfig_path: Path = Path.home() / ".kube" / "config"
    kubectl_path: str = DEFAULT_KUBECTL_PATH
    state_file: Path = DEFAULT_STATE_FILE
    image_id: str = ""
    instance_type: str = DEFAULT_INSTANCE_TYPE
    asg_min: int = Field(default=DEFAULT_ASG_MIN, ge=1, le=1000)
    asg_max: int = Field(default=DEFAULT_ASG_MAX, ge=1, le=1000)
    volume_size_gb: int = Field(default=DEFAULT_VOLUME_SIZE_GB, ge=8, le=16384)
    vpc_id: str = ""
    subnet_ids: list[str] = Field(default_factory=list)
    security_group_id: str = ""
    enable_ssh: bool = False


class TimingConfig(BaseSettings):
    """Wait and poll timings in seconds, auto-loaded from NODEGROUP_* env vars.

    Attributes:
        create_warmup: Delay after stack creation is accepted, before polling.
        delete_settle: Delay after stack deletion is accepted, before polling.
        create_poll_interval: Interval between describe calls while creating.
        delete_poll_interval: Interval between describe calls while deleting.
        membership_poll_interval: Interval between kubectl attempts.
        apply_timeout: Timeout for a single ``kubectl apply``.
        get_nodes_timeout: Timeout for a single ``kubectl get nodes``.
        wait_base: Fixed part of every wait budget.
        wait_per_node: Budget added per node of the maximum fleet size.
    """

    model_config = SettingsConfigDict(env_prefix="NODEGROUP_", extra="ignore")

    create_warmup: float = Field(default=CREATE_WARMUP_SECONDS, ge=0)
    delete_settle: float = Field(default=DELETE_SETTLE_SECONDS, ge=0)
    create_poll_interval: float = Field(default=CREATE_POLL_INTERVAL_SECONDS, ge=0)
    delete_poll_interval: float = Field(default=DELETE_POLL_INTERVAL_SECONDS, ge=0)
    membership_poll_interval: float = Field(default=MEMBERSHIP_POLL_INTERVAL_SECONDS, ge=0)
    apply_timeout: float = Field(default=KUBECTL_APPLY_TIMEOUT_SECONDS, gt=0)
    get_nodes_timeout: float = Field(default=KUBECTL_GET_NODES_TIMEOUT_SECONDS, gt=0)
    wait_base: float = Field(default=WAIT_BASE_SECONDS, ge=0)
    wait_per_node: float = Field(default=WAIT_PER_NODE_SECONDS, ge=0)


# ============================================================================
# Node group request
# ============================================================================

@dataclass(frozen=True)
class NodeGroupRequest:
    """Immutable description of the node group to provision.

    Attributes:
        stack_name: CloudFormation stack name (also the node group name).
        cluster_name: EKS cluster the nodes join.
        tag_key: Provenance tag key; ``tag_value`` is its value.
        tag_value: Provenance tag value.
        hostname: Host that submitted the request, recorded as a tag.
        key_pair_name: EC2 key pair for the worker nodes.
        image_id: Worker node AMI.
        instance_type: Worker node instance type.
        asg_min: Minimum fleet size.
        asg_max: Maximum fleet size; also the number of nodes expected Ready.
        volume_size_gb: Root volume size per node.
        vpc_id: VPC identifier.
        subnet_ids: Subnet identifiers.
        security_group_id: Control plane security group identifier.
        enable_ssh: Whether the template opens SSH from the control plane.
    """

    stack_name: str
    cluster_name: str
    tag_key: str
    tag_value: str
    hostname: str
    key_pair_name: str
    image_id: str = ""
    instance_type: str = DEFAULT_INSTANCE_TYPE
    asg_min: int = DEFAULT_ASG_MIN
    asg_max: int = DEFAULT_ASG_MAX
    volume_size_gb: int = DEFAULT_VOLUME_SIZE_GB
    vpc_id: str = ""
    subnet_ids: tuple[str, ...] = ()
    security_group_id: str = ""
    enable_ssh: bool = False

    @classmethod
    def from_config(cls, cfg: NodeGroupConfig, hostname: str | None = None) -> NodeGroupRequest:
        """Build a request from configuration.

        Args:
            cfg: Node group configuration.
            hostname: Submitting host, or None to use the local hostname.

        Returns:
            The immutable request.
        """
        return cls(
            stack_name=cfg.node_group_name,
            cluster_name=cfg.cluster_name,
            tag_key=cfg.tag_key,
            tag_value=cfg.cluster_name,
            hostname=hostname if hostname is not None else socket.gethostname(),
            key_pair_name=cfg.key_pair_name,
            image_id=cfg.image_id,
            instance_type=cfg.instance_type,
            asg_min=cfg.asg_min,
            asg_max=cfg.asg_max,
            volume_size_gb=cfg.volume_size_gb,
            vpc_id=cfg.vpc_id,
            subnet_ids=tuple(cfg.subnet_ids),
            security_group_id=cfg.security_group_id,
            enable_ssh=cfg.enable_ssh,
        )

    def stack_parameters(self) -> list[dict[str, str]]:
        """CloudFormation parameters derived one-to-one from the request."""
        values = {
            "ClusterName": self.cluster_name,
            "NodeGroupName": self.stack_name,
            "KeyName": self.key_pair_name,
            "NodeImageId": self.image_id,
            "NodeInstanceType": self.instance_type,
            "NodeAutoScalingGroupMinSize": str(self.asg_min),
            "NodeAutoScalingGroupMaxSize": str(self.asg_max),
            "NodeVolumeSize": str(self.volume_size_gb),
            "VpcId": self.vpc_id,
            "Subnets": ",".join(self.subnet_ids),
            "ClusterControlPlaneSecurityGroup": self.security_group_id,
        }
        return [{"ParameterKey": key, "ParameterValue": value} for key, value in values.items()]

    def stack_tags(self) -> list[dict[str, str]]:
        """Provenance tags: the configured tag pair plus the submitting host."""
        return [
            {"Key": self.tag_key, "Value": self.tag_value},
            {"Key": TAG_HOSTNAME, "Value": self.hostname},
        ]
