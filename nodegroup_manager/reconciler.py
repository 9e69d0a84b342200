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

"""Reconciliation workflows that compose stack provisioning and membership."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path

from nodegroup_manager import logger
from nodegroup_manager.cloudformation import Boto3StackClient, StackClient, StackStatus, classify_stack_status
from nodegroup_manager.config import NodeGroupConfig, NodeGroupRequest, TimingConfig
from nodegroup_manager.constants import MEMBERSHIP_STATUS_TEMPLATE
from nodegroup_manager.errors import NodeGroupError, PersistenceError
from nodegroup_manager.kubectl import CommandRunner, Kubectl, SubprocessRunner
from nodegroup_manager.membership import MembershipVerifier
from nodegroup_manager.poller import wait_budget
from nodegroup_manager.stack import StackProvisioner
from nodegroup_manager.state import ClusterState, JsonFileStateStore, StateStore, StateTracker


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a reconciliation that did not raise.

    Attributes:
        state: Final persisted snapshot.
        cancelled: True if the run stopped on the cancellation signal.
        elapsed: Wall-clock seconds spent.
        persistence_error: Last failed state write, if any; the persisted
            snapshot may then be older than ``state``.
    """

    state: ClusterState
    cancelled: bool = False
    elapsed: float = 0.0
    persistence_error: PersistenceError | None = None


class Reconciler:
    """Sequences stack provisioning and membership verification for one node group.

    Owns the cancellation event observed by every wait loop. Errors are
    written into the relevant status field before being re-raised.

    Args:
        provisioner: Stack create/delete.
        verifier: Identity mapping and readiness checks.
        tracker: Current snapshot and its store.
        timing: Wait budget parameters.
        kubeconfig_path: Kubeconfig passed to the verifier.
        cancel: Shared cancellation event.
    """

    def __init__(
        self,
        provisioner: StackProvisioner,
        verifier: MembershipVerifier,
        tracker: StateTracker,
        timing: TimingConfig,
        kubeconfig_path: Path,
        cancel: threading.Event,
    ) -> None:
        self.provisioner = provisioner
        self.verifier = verifier
        self.tracker = tracker
        self.timing = timing
        self.kubeconfig_path = kubeconfig_path
        self.cancel_event = cancel

    @classmethod
    def from_config(
        cls,
        cfg: NodeGroupConfig,
        timing: TimingConfig,
        *,
        stack_client: StackClient | None = None,
        runner: CommandRunner | None = None,
        store: StateStore | None = None,
    ) -> Reconciler:
        """Wire a reconciler from configuration.

        Args:
            cfg: Node group configuration.
            timing: Wait and poll timings.
            stack_client: CloudFormation API, or None for boto3.
            runner: Command runner, or None for subprocess.
            store: State store, or None for the configured state file.

        Returns:
            A reconciler starting from the store's last snapshot.
        """
        cancel = threading.Event()
        tracker = StateTracker.from_store(store if store is not None else JsonFileStateStore(cfg.state_file))
        provisioner = StackProvisioner(
            stack_client if stack_client is not None else Boto3StackClient(region=cfg.region),
            tracker, timing, cancel,
        )
        kubectl = Kubectl(runner if runner is not None else SubprocessRunner(), cfg.kubectl_path)
        verifier = MembershipVerifier(kubectl, tracker, timing, cancel)
        return cls(provisioner, verifier, tracker, timing, cfg.kubeconfig_path, cancel)

    @property
    def state(self) -> ClusterState:
        return self.tracker.state

    @property
    def persistence_error(self) -> PersistenceError | None:
        """Last failed state write, kept so failed runs can report it too."""
        return self.tracker.last_error

    def cancel(self) -> None:
        """Ask every running wait loop to stop at its next check."""
        self.cancel_event.set()

    def budget(self, fleet_size: int) -> float:
        return wait_budget(self.timing.wait_base, self.timing.wait_per_node, fleet_size)

    def create(self, req: NodeGroupRequest) -> ReconcileResult:
        """Provision the node group stack, then wait for its nodes to join.

        Raises:
            NodeGroupError: The first failure, after it was persisted.
        """
        started = time.monotonic()
        budget = self.budget(req.asg_max)
        try:
            role_arn = self.provisioner.create(req, budget)
        except NodeGroupError as err:
            self._record_failure(err, stack_status=str(err))
            raise
        if role_arn is None:
            return self._finish(started, cancelled=True)
        return self._verify(req, role_arn, budget, started)

    def resume(self, req: NodeGroupRequest) -> ReconcileResult:
        """Continue from the persisted snapshot instead of starting over.

        A completed stack with a known role skips straight to membership
        verification; an accepted but unfinished stack is waited on; anything
        else runs a full create.
        """
        state = self.tracker.state
        if not (state.created and state.node_group_name == req.stack_name):
            return self.create(req)

        started = time.monotonic()
        target = MEMBERSHIP_STATUS_TEMPLATE.format(ready=req.asg_max)
        budget = self.budget(req.asg_max)
        status = classify_stack_status(state.stack_status)

        if status is StackStatus.COMPLETE and state.role_arn:
            if state.membership_status == target:
                logger.info("Node group %s already reconciled", req.stack_name)
                return self._finish(started)
            logger.info("Resuming membership verification for %s", req.stack_name)
            return self._verify(req, state.role_arn, budget, started)

        logger.info("Resuming wait for stack %s (last status %r)", req.stack_name, state.stack_status)
        try:
            role_arn = self.provisioner.wait_created(req.stack_name, budget)
        except NodeGroupError as err:
            self._record_failure(err, stack_status=str(err))
            raise
        if role_arn is None:
            return self._finish(started, cancelled=True)
        return self._verify(req, role_arn, budget, started)

    def delete(self, name: str, fleet_size: int) -> ReconcileResult:
        """Delete the node group stack. Membership is not touched.

        Raises:
            NodeGroupError: The first failure, after it was persisted.
        """
        started = time.monotonic()
        try:
            deleted = self.provisioner.delete(name, self.budget(fleet_size))
        except NodeGroupError as err:
            self._record_failure(err, stack_status=str(err))
            raise
        return self._finish(started, cancelled=not deleted)

    def _verify(self, req: NodeGroupRequest, role_arn: str, budget: float, started: float) -> ReconcileResult:
        try:
            joined = self.verifier.verify(role_arn, req.asg_max, self.kubeconfig_path, budget)
        except NodeGroupError as err:
            self._record_failure(err, membership_status=str(err))
            raise
        return self._finish(started, cancelled=not joined)

    def _record_failure(self, err: NodeGroupError, **changes: str) -> None:
        logger.error("Reconciliation failed: %s", err)
        self.tracker.update(**changes)

    def _finish(self, started: float, cancelled: bool = False) -> ReconcileResult:
        self.tracker.sync()
        return ReconcileResult(self.tracker.state, cancelled, time.monotonic() - started, self.tracker.last_error)
