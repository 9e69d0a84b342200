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

"""Error types raised while reconciling a node group."""

from __future__ import annotations


class NodeGroupError(RuntimeError):
    """Base class for node group reconciliation failures."""


class RequestValidationError(NodeGroupError):
    """A required request field is missing; raised before any API call."""


class TransientAPIError(NodeGroupError):
    """A describe/create/delete/kubectl call failed for a recoverable reason."""


class StackNotFoundError(NodeGroupError):
    """The stack does not exist (the terminal condition of a delete)."""


class TerminalStackError(NodeGroupError):
    """The stack reached a failed or rollback status."""

    def __init__(self, stack_name: str, status: str) -> None:
        super().__init__(f"failed to create {stack_name!r} ({status!r})")
        self.stack_name = stack_name
        self.status = status


class RoleNotFoundError(NodeGroupError):
    """The stack completed without exposing the node instance role."""


class CommandUnsupportedError(NodeGroupError):
    """kubectl rejected a flag; the binary is incompatible with this tool."""


class ConvergenceTimeoutError(NodeGroupError, TimeoutError):
    """A wait budget ran out before the target state was reached."""

    def __init__(self, what: str, timeout: float, last_status: str) -> None:
        super().__init__(f"{what} did not converge within {timeout:.0f}s (last status {last_status!r})")
        self.what = what
        self.timeout = timeout
        self.last_status = last_status


class PersistenceError(NodeGroupError):
    """The state snapshot could not be written."""
