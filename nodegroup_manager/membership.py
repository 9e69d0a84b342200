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

"""Register the node instance role with the cluster and wait for Ready nodes."""

from __future__ import annotations

import tempfile
import threading
import time
from pathlib import Path

from rich.panel import Panel

from nodegroup_manager import console, logger
from nodegroup_manager.config import TimingConfig
from nodegroup_manager.constants import MEMBERSHIP_STATUS_TEMPLATE
from nodegroup_manager.kubectl import Kubectl, count_ready, parse_nodes
from nodegroup_manager.poller import ProbeResult, poll
from nodegroup_manager.state import StateTracker
from nodegroup_manager.template import render_node_auth_configmap
from nodegroup_manager.utils import since


class MembershipVerifier:
    """Applies the aws-auth identity mapping and polls for Ready nodes.

    Args:
        kubectl: kubectl invocations.
        tracker: Receives a state snapshot after every attempt.
        timing: Poll interval and per-command timeouts.
        cancel: Cooperative cancellation event shared with the reconciler.
    """

    def __init__(
        self,
        kubectl: Kubectl,
        tracker: StateTracker,
        timing: TimingConfig,
        cancel: threading.Event,
    ) -> None:
        self.kubectl = kubectl
        self.tracker = tracker
        self.timing = timing
        self.cancel = cancel

    def verify(self, role_arn: str, expected_ready: int, kubeconfig_path: Path, timeout: float) -> bool:
        """Let nodes with *role_arn* join and wait for *expected_ready* Ready nodes.

        The identity mapping is applied once; node readiness is then polled
        within the same *timeout* budget. The rendered ConfigMap lives in a
        temporary file that is removed on every exit path.

        Args:
            role_arn: Node instance role ARN from the stack outputs.
            expected_ready: Number of Ready nodes that counts as success.
            kubeconfig_path: Kubeconfig passed to kubectl.
            timeout: Seconds allowed for apply and readiness together.

        Returns:
            True once enough nodes are Ready, False if cancelled.

        Raises:
            CommandUnsupportedError: If kubectl rejects a flag.
            ConvergenceTimeoutError: If the nodes are not Ready in time.
        """
        console.print(Panel.fit("Enabling node group to join the cluster", style="bold blue"))
        started = time.monotonic()

        tmp = tempfile.NamedTemporaryFile(delete=False, prefix="aws-auth-", suffix=".yaml")
        try:
            tmp.write(render_node_auth_configmap(role_arn).encode())
            tmp.flush()
            tmp.close()
            configmap_path = Path(tmp.name)

            applied = False

            def _probe() -> ProbeResult:
                nonlocal applied
                if not applied:
                    result = self.kubectl.apply(kubeconfig_path, configmap_path, self.timing.apply_timeout)
                    if not result.ok:
                        logger.warning("Failed to apply aws-auth ConfigMap: %s", result.output.strip())
                        status = f"failed to apply aws-auth ConfigMap: {result.output.strip()}"
                        self.tracker.update(membership_status=status)
                        return ProbeResult.transient(status)
                    applied = True
                    logger.info("kubectl apply completed: %s", result.output.strip())

                result = self.kubectl.get_nodes(kubeconfig_path, self.timing.get_nodes_timeout)
                if not result.ok:
                    logger.warning("Failed to get nodes: %s", result.output.strip())
                    status = f"failed to get nodes: {result.output.strip()}"
                    self.tracker.update(membership_status=status)
                    return ProbeResult.transient(status)

                try:
                    nodes = parse_nodes(result.output)
                except ValueError as err:
                    logger.warning("Failed to parse get nodes output: %s", err)
                    self.tracker.update(membership_status=str(err))
                    return ProbeResult.transient(str(err))

                ready = count_ready(nodes)
                logger.info("Worker nodes: %d created, %d ready, %d expected (request started %s)",
                            len(nodes), ready, expected_ready, since(started))
                status = MEMBERSHIP_STATUS_TEMPLATE.format(ready=ready)
                self.tracker.update(membership_status=status)
                if ready == expected_ready:
                    return ProbeResult.success(status)
                return ProbeResult.in_progress(status)

            if not poll(
                _probe,
                interval=self.timing.membership_poll_interval,
                timeout=timeout,
                cancel=self.cancel,
                what=f"{expected_ready} ready worker nodes",
            ):
                return False
        finally:
            tmp.close()
            Path(tmp.name).unlink(missing_ok=True)

        console.print(f"[green]✅ {expected_ready} worker nodes ready (request started {since(started)})[/green]")
        return True
