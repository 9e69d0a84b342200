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

"""Constants for stack names, statuses, timings, and resource paths."""

from __future__ import annotations

from pathlib import Path

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
WORKER_NODE_TEMPLATE = TEMPLATES_DIR / "worker-node-stack.yaml"

# -- CloudFormation --
CAPABILITY_IAM = "CAPABILITY_IAM"
OUTPUT_NODE_INSTANCE_ROLE = "NodeInstanceRole"
TAG_HOSTNAME = "HOSTNAME"
SSH_INGRESS_RESOURCE = "ClusterControlPlaneSecurityGroupIngress22"
CF_DELETE_COMPLETE = "DELETE_COMPLETE"
CF_STACK_MISSING_MARKER = "does not exist"
CF_THROTTLING_CODES = ("Throttling", "ThrottlingException", "RequestLimitExceeded")

# -- Identity mapping (aws-auth ConfigMap) --
AWS_AUTH_CONFIGMAP = "aws-auth"
NS_KUBE_SYSTEM = "kube-system"
NODE_USERNAME_TEMPLATE = "system:node:{{EC2PrivateDNSName}}"
NODE_GROUPS = ("system:bootstrappers", "system:nodes")

# -- kubectl --
KUBECTL_UNKNOWN_FLAG = "unknown flag:"
NODE_READY_CONDITION = "Ready"
NODE_READY_STATUS = "True"
MEMBERSHIP_STATUS_TEMPLATE = "{ready} available"

# -- Timings (seconds) --
CREATE_WARMUP_SECONDS = 120
DELETE_SETTLE_SECONDS = 60
CREATE_POLL_INTERVAL_SECONDS = 15
DELETE_POLL_INTERVAL_SECONDS = 5
MEMBERSHIP_POLL_INTERVAL_SECONDS = 5
KUBECTL_APPLY_TIMEOUT_SECONDS = 10
KUBECTL_GET_NODES_TIMEOUT_SECONDS = 30
WAIT_BASE_SECONDS = 300
WAIT_PER_NODE_SECONDS = 120

# -- botocore client --
AWS_CONNECT_TIMEOUT_SECONDS = 10
AWS_READ_TIMEOUT_SECONDS = 30
AWS_MAX_ATTEMPTS = 3

# -- Node group defaults --
DEFAULT_CLUSTER_NAME = "nodegroup-test-cluster"
DEFAULT_TAG_KEY = "nodegroup-manager"
DEFAULT_REGION = "us-west-2"
DEFAULT_INSTANCE_TYPE = "m5.large"
DEFAULT_ASG_MIN = 1
DEFAULT_ASG_MAX = 1
DEFAULT_VOLUME_SIZE_GB = 20
DEFAULT_KUBECTL_PATH = "kubectl"
DEFAULT_STATE_FILE = Path.home() / ".nodegroup-manager" / "state.json"
