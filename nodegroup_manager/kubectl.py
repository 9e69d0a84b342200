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

"""kubectl command runner and node list parsing."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from nodegroup_manager.constants import (
    DEFAULT_KUBECTL_PATH,
    KUBECTL_UNKNOWN_FLAG,
    NODE_READY_CONDITION,
    NODE_READY_STATUS,
)
from nodegroup_manager.errors import CommandUnsupportedError


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of a command."""

    ok: bool
    output: str


class CommandRunner(Protocol):
    """Runs an external command with a timeout."""

    def run(self, args: Sequence[str], timeout: float) -> CommandResult:
        ...


class SubprocessRunner:
    """CommandRunner backed by ``subprocess.run``.

    Timeouts and OS errors are reported as a failed result rather than
    raised, so callers can treat them like any other failed invocation.
    """

    def run(self, args: Sequence[str], timeout: float) -> CommandResult:
        try:
            result = subprocess.run(
                list(args),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
            )
            return CommandResult(result.returncode == 0, result.stdout)
        except (subprocess.SubprocessError, OSError) as exc:
            return CommandResult(False, str(exc))


@dataclass(frozen=True)
class NodeRecord:
    """A node and its condition statuses (e.g. ``{"Ready": "True"}``)."""

    name: str
    conditions: dict[str, str] = field(default_factory=dict)

    @property
    def ready(self) -> bool:
        return self.conditions.get(NODE_READY_CONDITION) == NODE_READY_STATUS


def parse_nodes(output: str) -> list[NodeRecord]:
    """Parse ``kubectl get nodes -o json`` output.

    Args:
        output: JSON document with an ``items`` list of Node resources.

    Returns:
        One NodeRecord per node.

    Raises:
        ValueError: If the output is not a node list.
    """
    try:
        doc = json.loads(output)
    except json.JSONDecodeError as err:
        raise ValueError(f"failed to parse node list: {err}") from err
    if not isinstance(doc, dict) or not isinstance(doc.get("items"), list):
        raise ValueError("failed to parse node list: missing 'items'")

    nodes = []
    for item in doc["items"]:
        conditions = (item.get("status") or {}).get("conditions") or []
        nodes.append(NodeRecord(
            name=(item.get("metadata") or {}).get("name", ""),
            conditions={c.get("type", ""): c.get("status", "") for c in conditions},
        ))
    return nodes


def count_ready(nodes: Sequence[NodeRecord]) -> int:
    return sum(1 for node in nodes if node.ready)


def is_unknown_flag(output: str) -> bool:
    """True if kubectl rejected a flag, i.e. the binary is incompatible."""
    return KUBECTL_UNKNOWN_FLAG in output


class Kubectl:
    """The two kubectl invocations membership verification needs.

    Args:
        runner: Executes the command.
        kubectl_path: kubectl binary name or path.
    """

    def __init__(self, runner: CommandRunner, kubectl_path: str = DEFAULT_KUBECTL_PATH) -> None:
        self.runner = runner
        self.kubectl_path = kubectl_path

    def _run(self, args: list[str], timeout: float) -> CommandResult:
        result = self.runner.run([self.kubectl_path, *args], timeout)
        if not result.ok and is_unknown_flag(result.output):
            raise CommandUnsupportedError(f"unknown flag {result.output.strip()}")
        return result

    def apply(self, kubeconfig: Path, filename: Path, timeout: float) -> CommandResult:
        return self._run([f"--kubeconfig={kubeconfig}", "apply", f"--filename={filename}"], timeout)

    def get_nodes(self, kubeconfig: Path, timeout: float) -> CommandResult:
        return self._run([f"--kubeconfig={kubeconfig}", "get", "nodes", "-o", "json"], timeout)
