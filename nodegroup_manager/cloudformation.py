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

"""CloudFormation adapter: the stack client and stack status classifiers.

Every string match against CloudFormation statuses and error messages lives
in this module. Callers only see StackState, StackStatus and the error types
from nodegroup_manager.errors.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from nodegroup_manager.constants import (
    AWS_CONNECT_TIMEOUT_SECONDS,
    AWS_MAX_ATTEMPTS,
    AWS_READ_TIMEOUT_SECONDS,
    CF_DELETE_COMPLETE,
    CF_STACK_MISSING_MARKER,
    CF_THROTTLING_CODES,
    OUTPUT_NODE_INSTANCE_ROLE,
)
from nodegroup_manager.errors import NodeGroupError, StackNotFoundError, TransientAPIError
from nodegroup_manager.poller import ProbeOutcome


class StackStatus(Enum):
    """Closed set of stack states the reconciler distinguishes."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    FAILED = "failed"
    ROLLBACK = "rollback"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class StackState:
    """One describe-stack observation.

    Attributes:
        status: Classified status.
        raw_status: CloudFormation's literal status (e.g. ``CREATE_IN_PROGRESS``).
        outputs: Stack outputs by key.
    """

    status: StackStatus
    raw_status: str
    outputs: dict[str, str] = field(default_factory=dict)

    @property
    def role_arn(self) -> str | None:
        """The node instance role output, if the stack exposes it yet."""
        return self.outputs.get(OUTPUT_NODE_INSTANCE_ROLE) or None


def classify_stack_status(raw_status: str) -> StackStatus:
    """Map a CloudFormation stack status literal to a StackStatus."""
    if not raw_status or raw_status == "REVIEW_IN_PROGRESS":
        return StackStatus.PENDING
    if "ROLLBACK" in raw_status:
        return StackStatus.ROLLBACK
    if raw_status.endswith("_FAILED"):
        return StackStatus.FAILED
    if raw_status.endswith("_IN_PROGRESS"):
        return StackStatus.IN_PROGRESS
    if raw_status == CF_DELETE_COMPLETE:
        return StackStatus.NOT_FOUND
    if raw_status.endswith("_COMPLETE"):
        return StackStatus.COMPLETE
    return StackStatus.PENDING


def classify_create(state: StackState) -> ProbeOutcome:
    """Classify an observation made while waiting for stack creation."""
    if state.status in (StackStatus.FAILED, StackStatus.ROLLBACK, StackStatus.NOT_FOUND):
        return ProbeOutcome.FAILURE
    if state.raw_status.startswith("DELETE_"):
        return ProbeOutcome.FAILURE
    if state.status is StackStatus.COMPLETE:
        return ProbeOutcome.SUCCESS
    return ProbeOutcome.IN_PROGRESS


def classify_delete(error: Exception | None, state: StackState | None = None) -> ProbeOutcome:
    """Classify a describe-stack call made while waiting for deletion.

    Args:
        error: The error the describe call raised, or None if it succeeded.
        state: The described stack when the call succeeded.
    """
    if error is None:
        if state is not None and state.status is StackStatus.NOT_FOUND:
            return ProbeOutcome.SUCCESS
        return ProbeOutcome.IN_PROGRESS
    if isinstance(error, StackNotFoundError):
        return ProbeOutcome.SUCCESS
    return ProbeOutcome.TRANSIENT


def is_stack_missing(err: ClientError) -> bool:
    """True if *err* is CloudFormation reporting that the stack does not exist."""
    error = err.response.get("Error", {})
    return error.get("Code") == "ValidationError" and CF_STACK_MISSING_MARKER in error.get("Message", "")


def is_throttled(err: ClientError) -> bool:
    return err.response.get("Error", {}).get("Code", "") in CF_THROTTLING_CODES


class StackClient(Protocol):
    """The subset of the infrastructure-as-code API the provisioner needs."""

    def create_stack(
        self,
        name: str,
        *,
        template_body: str,
        parameters: Sequence[dict[str, str]],
        tags: Sequence[dict[str, str]],
        capabilities: Sequence[str],
    ) -> None:
        ...

    def describe_stack(self, name: str) -> StackState:
        ...

    def delete_stack(self, name: str) -> None:
        ...


class Boto3StackClient:
    """StackClient backed by a boto3 CloudFormation client."""

    def __init__(self, client: Any = None, region: str | None = None) -> None:
        if client is None:
            client = boto3.client(
                "cloudformation",
                region_name=region,
                config=Config(
                    connect_timeout=AWS_CONNECT_TIMEOUT_SECONDS,
                    read_timeout=AWS_READ_TIMEOUT_SECONDS,
                    retries={"max_attempts": AWS_MAX_ATTEMPTS, "mode": "standard"},
                ),
            )
        self._client = client

    def create_stack(
        self,
        name: str,
        *,
        template_body: str,
        parameters: Sequence[dict[str, str]],
        tags: Sequence[dict[str, str]],
        capabilities: Sequence[str],
    ) -> None:
        try:
            self._client.create_stack(
                StackName=name,
                TemplateBody=template_body,
                Parameters=list(parameters),
                Tags=list(tags),
                Capabilities=list(capabilities),
            )
        except (ClientError, BotoCoreError) as err:
            raise _translate(err, "create", name) from err

    def describe_stack(self, name: str) -> StackState:
        try:
            resp = self._client.describe_stacks(StackName=name)
        except (ClientError, BotoCoreError) as err:
            raise _translate(err, "describe", name) from err

        stacks = resp.get("Stacks", [])
        if len(stacks) != 1:
            raise NodeGroupError(f"{name!r} expects 1 stack, got {len(stacks)}")
        stack = stacks[0]
        raw_status = stack.get("StackStatus", "")
        outputs = {
            op["OutputKey"]: op.get("OutputValue", "")
            for op in stack.get("Outputs", [])
            if "OutputKey" in op
        }
        return StackState(classify_stack_status(raw_status), raw_status, outputs)

    def delete_stack(self, name: str) -> None:
        try:
            self._client.delete_stack(StackName=name)
        except (ClientError, BotoCoreError) as err:
            raise _translate(err, "delete", name) from err


def _translate(err: ClientError | BotoCoreError, action: str, name: str) -> NodeGroupError:
    """Turn a botocore error into the reconciler's error taxonomy."""
    if isinstance(err, BotoCoreError):
        return TransientAPIError(f"failed to {action} stack {name!r}: {err}")
    if is_stack_missing(err):
        return StackNotFoundError(f"stack {name!r} does not exist")
    if is_throttled(err) or action == "describe":
        return TransientAPIError(f"failed to {action} stack {name!r}: {err}")
    return NodeGroupError(f"failed to {action} stack {name!r}: {err}")
