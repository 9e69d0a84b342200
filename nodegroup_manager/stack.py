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

"""Node group stack creation and deletion."""

from __future__ import annotations

import threading
import time

from rich.panel import Panel

from nodegroup_manager import console, logger
from nodegroup_manager.cloudformation import StackClient, classify_create, classify_delete
from nodegroup_manager.config import NodeGroupRequest, TimingConfig
from nodegroup_manager.constants import CAPABILITY_IAM, CF_DELETE_COMPLETE
from nodegroup_manager.errors import (
    NodeGroupError,
    RequestValidationError,
    RoleNotFoundError,
    StackNotFoundError,
    TerminalStackError,
    TransientAPIError,
)
from nodegroup_manager.poller import ProbeOutcome, ProbeResult, poll, sleep_or_cancel
from nodegroup_manager.state import StateTracker
from nodegroup_manager.template import TemplateRenderer, WorkerNodeStack, render_worker_node_template
from nodegroup_manager.utils import format_elapsed, since


class StackProvisioner:
    """Drives the node group CloudFormation stack to created or deleted.

    Args:
        client: CloudFormation API.
        tracker: Receives a state snapshot after every transition.
        timing: Warm-up, settling and poll intervals.
        cancel: Cooperative cancellation event shared with the reconciler.
        renderer: Produces the template body for a request.
    """

    def __init__(
        self,
        client: StackClient,
        tracker: StateTracker,
        timing: TimingConfig,
        cancel: threading.Event,
        renderer: TemplateRenderer = render_worker_node_template,
    ) -> None:
        self.client = client
        self.tracker = tracker
        self.timing = timing
        self.cancel = cancel
        self.renderer = renderer

    def create(self, req: NodeGroupRequest, timeout: float) -> str | None:
        """Create the node group stack and wait for CREATE_COMPLETE.

        Args:
            req: Node group request.
            timeout: Seconds allowed for the stack to converge after warm-up.

        Returns:
            The node instance role ARN, or None if cancelled.

        Raises:
            RequestValidationError: If the key pair or stack name is empty.
            TerminalStackError: If the stack fails or rolls back.
            RoleNotFoundError: If the stack completes without a role output.
            ConvergenceTimeoutError: If the stack does not complete in time.
        """
        if not req.key_pair_name:
            raise RequestValidationError("cannot create worker node without key name")
        if not req.stack_name:
            raise RequestValidationError("cannot create empty worker node")

        name = req.stack_name
        console.print(Panel.fit(f"Creating node group stack '{name}'", style="bold blue"))
        started = time.monotonic()
        self.client.create_stack(
            name,
            template_body=self.renderer(WorkerNodeStack.from_request(req)),
            parameters=req.stack_parameters(),
            tags=req.stack_tags(),
            capabilities=[CAPABILITY_IAM],
        )
        self.tracker.update(
            node_group_name=name,
            key_pair_name=req.key_pair_name,
            role_arn="",
            created=True,
        )

        console.print(
            f"[yellow]ℹ️  Stack accepted, waiting {format_elapsed(self.timing.create_warmup)} "
            "before polling...[/yellow]"
        )
        if sleep_or_cancel(self.cancel, self.timing.create_warmup):
            logger.info("Interrupted node group stack creation")
            return None
        return self.wait_created(name, timeout, started)

    def wait_created(self, name: str, timeout: float, started: float | None = None) -> str | None:
        """Poll an accepted stack until CREATE_COMPLETE.

        Also used on its own to resume waiting for a stack whose creation was
        accepted by an earlier, interrupted run.

        Args:
            name: Stack name.
            timeout: Seconds allowed for the stack to converge.
            started: ``time.monotonic()`` reading of the request, for reporting.

        Returns:
            The node instance role ARN, or None if cancelled.
        """
        if started is None:
            started = time.monotonic()
        role_arn = ""

        def _probe() -> ProbeResult:
            nonlocal role_arn
            try:
                state = self.client.describe_stack(name)
            except (TransientAPIError, StackNotFoundError) as err:
                logger.warning("Failed to describe stack %s: %s", name, err)
                self.tracker.update(stack_status=str(err))
                return ProbeResult.transient(str(err))

            if state.role_arn:
                if state.role_arn != role_arn:
                    logger.info("Found NodeInstanceRole %s", state.role_arn)
                role_arn = state.role_arn

            outcome = classify_create(state)
            if outcome is ProbeOutcome.SUCCESS:
                self.tracker.update(stack_status=state.raw_status, role_arn=role_arn)
                return ProbeResult.success(state.raw_status)
            self.tracker.update(stack_status=state.raw_status)
            if outcome is ProbeOutcome.FAILURE:
                return ProbeResult.failure(TerminalStackError(name, state.raw_status), state.raw_status)
            logger.info("Creating stack %s (status %s, request started %s)", name, state.raw_status, since(started))
            return ProbeResult.in_progress(state.raw_status)

        try:
            done = poll(
                _probe,
                interval=self.timing.create_poll_interval,
                timeout=timeout,
                cancel=self.cancel,
                what=f"stack {name!r}",
            )
        except NodeGroupError as err:
            logger.info("Failed to create stack %s (status %s, request started %s): %s",
                        name, self.tracker.state.stack_status, since(started), err)
            raise
        if not done:
            return None

        if not role_arn:
            raise RoleNotFoundError("cannot find node group instance role ARN")

        console.print(f"[green]✅ Stack '{name}' created ({self.tracker.state.stack_status}, "
                      f"request started {since(started)})[/green]")
        return role_arn

    def delete(self, name: str, timeout: float) -> bool:
        """Delete the node group stack and wait until it no longer exists.

        A no-op when the stack was never created, or when *name* is not the
        stack recorded in the state. Otherwise the ``created`` flag is cleared
        on every exit path, so repeated deletes succeed.

        Args:
            name: Stack name.
            timeout: Seconds allowed for the deletion after settling.

        Returns:
            True once deleted (or nothing to delete), False if cancelled.
        """
        if not self.tracker.state.created:
            logger.info("Stack %r was never created; nothing to delete", name)
            return True

        tracked = self.tracker.state.node_group_name
        if name != tracked:
            logger.warning("Stack %r is not the tracked node group %r; nothing to delete", name, tracked)
            return True

        try:
            return self._delete(name, timeout)
        finally:
            self.tracker.update(created=False)

    def _delete(self, name: str, timeout: float) -> bool:
        if not name:
            raise RequestValidationError("cannot delete empty worker node")

        console.print(Panel.fit(f"Deleting node group stack '{name}'", style="bold blue"))
        try:
            self.client.delete_stack(name)
        except NodeGroupError as err:
            self.tracker.update(stack_status=str(err), membership_status=str(err))
            raise
        self.tracker.sync()

        console.print(
            f"[yellow]ℹ️  Deletion accepted, waiting {format_elapsed(self.timing.delete_settle)} "
            "before polling...[/yellow]"
        )
        if sleep_or_cancel(self.cancel, self.timing.delete_settle):
            logger.info("Interrupted node group stack deletion")
            return False

        started = time.monotonic()

        def _probe() -> ProbeResult:
            state = None
            error: NodeGroupError | None = None
            try:
                state = self.client.describe_stack(name)
            except NodeGroupError as err:
                error = err

            outcome = classify_delete(error, state)
            if outcome is ProbeOutcome.SUCCESS:
                self.tracker.update(stack_status=CF_DELETE_COMPLETE, membership_status=CF_DELETE_COMPLETE)
                return ProbeResult.success(CF_DELETE_COMPLETE)
            if outcome is ProbeOutcome.IN_PROGRESS:
                self.tracker.update(stack_status=state.raw_status, membership_status=state.raw_status)
                logger.info("Deleting stack %s (status %s, request started %s)", name, state.raw_status, since(started))
                return ProbeResult.in_progress(state.raw_status)

            logger.warning("Failed to describe stack %s: %s", name, error)
            self.tracker.update(stack_status=str(error), membership_status=str(error))
            return ProbeResult.transient(str(error))

        if not poll(
            _probe,
            interval=self.timing.delete_poll_interval,
            timeout=timeout,
            cancel=self.cancel,
            what=f"deletion of stack {name!r}",
        ):
            return False

        console.print(f"[green]✅ Stack '{name}' deleted (request started {since(started)})[/green]")
        return True
