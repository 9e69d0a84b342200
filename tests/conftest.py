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

from __future__ import annotations

import json
import threading
from collections.abc import Sequence

import pytest

from nodegroup_manager.cloudformation import StackState, classify_stack_status
from nodegroup_manager.config import NodeGroupRequest, TimingConfig
from nodegroup_manager.errors import PersistenceError
from nodegroup_manager.kubectl import CommandResult, Kubectl
from nodegroup_manager.membership import MembershipVerifier
from nodegroup_manager.reconciler import Reconciler
from nodegroup_manager.stack import StackProvisioner
from nodegroup_manager.state import ClusterState, StateTracker

ROLE_ARN = "arn:aws:iam::123456789012:role/ng-1-NodeInstanceRole-ABC"


def stack_state(raw_status: str, role_arn: str | None = None) -> StackState:
    outputs = {"NodeInstanceRole": role_arn} if role_arn else {}
    return StackState(classify_stack_status(raw_status), raw_status, outputs)


def nodes_json(ready: int, total: int) -> str:
    items = []
    for i in range(total):
        status = "True" if i < ready else "False"
        items.append({
            "metadata": {"name": f"ip-10-0-0-{i}.ec2.internal"},
            "status": {"conditions": [
                {"type": "MemoryPressure", "status": "False"},
                {"type": "Ready", "status": status},
            ]},
        })
    return json.dumps({"apiVersion": "v1", "kind": "List", "items": items})


class MemoryStateStore:
    """StateStore that keeps every snapshot in a list."""

    def __init__(self, initial: ClusterState | None = None, fail: bool = False) -> None:
        self.snapshots: list[ClusterState] = [initial] if initial is not None else []
        self.fail = fail

    def persist(self, state: ClusterState) -> None:
        if self.fail:
            raise PersistenceError("disk full")
        self.snapshots.append(state)

    def load(self) -> ClusterState | None:
        return self.snapshots[-1] if self.snapshots else None

    @property
    def last(self) -> ClusterState:
        return self.snapshots[-1]


class FakeStackClient:
    """StackClient replaying scripted describe responses.

    Each entry of *describes* is a StackState to return or an exception to
    raise; the last entry repeats once the script is exhausted.
    """

    def __init__(self, describes: Sequence[StackState | Exception] = ()) -> None:
        self.describes = list(describes)
        self.created: list[dict] = []
        self.deleted: list[str] = []
        self.describe_calls = 0
        self.create_error: Exception | None = None
        self.delete_error: Exception | None = None

    def create_stack(self, name, *, template_body, parameters, tags, capabilities) -> None:
        if self.create_error is not None:
            raise self.create_error
        self.created.append({
            "name": name,
            "template_body": template_body,
            "parameters": list(parameters),
            "tags": list(tags),
            "capabilities": list(capabilities),
        })

    def describe_stack(self, name: str) -> StackState:
        index = min(self.describe_calls, len(self.describes) - 1)
        self.describe_calls += 1
        response = self.describes[index]
        if isinstance(response, Exception):
            raise response
        return response

    def delete_stack(self, name: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(name)


class FakeCommandRunner:
    """CommandRunner replaying scripted results for apply and get nodes."""

    def __init__(
        self,
        apply: Sequence[CommandResult] = (CommandResult(True, "configmap/aws-auth created"),),
        get_nodes: Sequence[CommandResult] = (),
    ) -> None:
        self.apply_results = list(apply)
        self.get_nodes_results = list(get_nodes)
        self.calls: list[tuple[list[str], float]] = []
        self.applied_files: list[str] = []

    def _next(self, results: list[CommandResult], count: int) -> CommandResult:
        return results[min(count, len(results) - 1)]

    def run(self, args, timeout) -> CommandResult:
        args = list(args)
        self.calls.append((args, timeout))
        if "apply" in args:
            self.applied_files.extend(a.split("=", 1)[1] for a in args if a.startswith("--filename="))
            return self._next(self.apply_results, self.count("apply") - 1)
        return self._next(self.get_nodes_results, self.count("get") - 1)

    def count(self, verb: str) -> int:
        return sum(1 for args, _ in self.calls if verb in args)


@pytest.fixture
def timing() -> TimingConfig:
    return TimingConfig(
        create_warmup=0,
        delete_settle=0,
        create_poll_interval=0.01,
        delete_poll_interval=0.01,
        membership_poll_interval=0.01,
        apply_timeout=1,
        get_nodes_timeout=1,
        wait_base=2,
        wait_per_node=0,
    )


@pytest.fixture
def cancel() -> threading.Event:
    return threading.Event()


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def tracker(store: MemoryStateStore) -> StateTracker:
    return StateTracker(store)


@pytest.fixture
def request_3() -> NodeGroupRequest:
    return NodeGroupRequest(
        stack_name="ng-1",
        cluster_name="test-cluster",
        tag_key="nodegroup-manager",
        tag_value="test-cluster",
        hostname="builder-01",
        key_pair_name="ng-1-key",
        image_id="ami-0123456789abcdef0",
        asg_min=1,
        asg_max=3,
        vpc_id="vpc-1",
        subnet_ids=("subnet-a", "subnet-b"),
        security_group_id="sg-1",
    )


@pytest.fixture
def make_reconciler(tracker, timing, cancel, tmp_path):
    def _make(stack_client: FakeStackClient, runner: FakeCommandRunner) -> Reconciler:
        provisioner = StackProvisioner(stack_client, tracker, timing, cancel)
        verifier = MembershipVerifier(Kubectl(runner), tracker, timing, cancel)
        return Reconciler(provisioner, verifier, tracker, timing, tmp_path / "kubeconfig", cancel)

    return _make
