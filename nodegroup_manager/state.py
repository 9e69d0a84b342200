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

"""Persisted cluster state snapshots and the stores that hold them."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from nodegroup_manager import logger
from nodegroup_manager.errors import PersistenceError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClusterState(BaseModel):
    """Immutable snapshot of the node group's last known state.

    Attributes:
        node_group_name: CloudFormation stack name of the node group.
        key_pair_name: EC2 key pair used by the node group.
        stack_status: Last observed stack status or describe error text.
        membership_status: Last observed membership progress or error text.
        role_arn: Node instance role discovered from the stack outputs.
        created: True once stack creation was accepted, until deleted.
        updated_at: When this snapshot was taken.
    """

    model_config = ConfigDict(frozen=True)

    node_group_name: str = ""
    key_pair_name: str = ""
    stack_status: str = ""
    membership_status: str = ""
    role_arn: str = ""
    created: bool = False
    updated_at: datetime = Field(default_factory=_utc_now)

    def evolve(self, **changes: Any) -> ClusterState:
        """Return a new snapshot with *changes* applied and a fresh timestamp."""
        return self.model_copy(update={**changes, "updated_at": _utc_now()})


class StateStore(Protocol):
    """Holds the persisted cluster state."""

    def persist(self, state: ClusterState) -> None:
        """Write *state*; raise PersistenceError on failure."""
        ...

    def load(self) -> ClusterState | None:
        """Return the last persisted snapshot, or None if there is none."""
        ...


class JsonFileStateStore:
    """StateStore backed by a JSON file, replaced atomically on each write."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def persist(self, state: ClusterState) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(state.model_dump_json(indent=2))
                os.replace(tmp_name, self.path)
            finally:
                Path(tmp_name).unlink(missing_ok=True)
        except OSError as err:
            raise PersistenceError(f"failed to write state to {self.path}: {err}") from err

    def load(self) -> ClusterState | None:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None
        except OSError as err:
            raise PersistenceError(f"failed to read state from {self.path}: {err}") from err
        try:
            return ClusterState.model_validate_json(raw)
        except ValidationError as err:
            raise PersistenceError(f"corrupt state file {self.path}: {err}") from err


class StateTracker:
    """Holds the current snapshot and writes every transition to a store.

    Persistence is best effort: a failed write is logged and remembered in
    ``last_error`` but never aborts the reconciliation step that caused it.
    """

    def __init__(self, store: StateStore, initial: ClusterState | None = None) -> None:
        self.store = store
        self.state = initial if initial is not None else ClusterState()
        self.last_error: PersistenceError | None = None

    @classmethod
    def from_store(cls, store: StateStore) -> StateTracker:
        """Start from the store's last snapshot, or an empty state."""
        return cls(store, store.load())

    def update(self, **changes: Any) -> ClusterState:
        """Apply *changes* to a new snapshot and persist it."""
        self.state = self.state.evolve(**changes)
        self.sync()
        return self.state

    def sync(self) -> None:
        """Persist the current snapshot."""
        try:
            self.store.persist(self.state)
        except PersistenceError as err:
            logger.warning("Failed to persist cluster state: %s", err)
            self.last_error = err
