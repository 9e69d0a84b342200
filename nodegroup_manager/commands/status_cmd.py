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

"""Status command and shared state rendering."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from nodegroup_manager import console
from nodegroup_manager.config import NodeGroupConfig
from nodegroup_manager.errors import PersistenceError
from nodegroup_manager.state import ClusterState, JsonFileStateStore


def state_table(state: ClusterState) -> Table:
    """Render a snapshot as a two-column table."""
    table = Table(title="Node group state", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Node group", state.node_group_name or "-")
    table.add_row("Key pair", state.key_pair_name or "-")
    table.add_row("Stack status", state.stack_status or "-")
    table.add_row("Membership status", state.membership_status or "-")
    table.add_row("Role ARN", state.role_arn or "-")
    table.add_row("Created", "yes" if state.created else "no")
    table.add_row("Updated", state.updated_at.isoformat(timespec="seconds"))
    return table


def report_persistence_error(err: PersistenceError | None) -> None:
    """Warn that the state file may be stale, if a write failed."""
    if err is not None:
        console.print(f"[yellow]⚠️  State was not saved, --resume may not work: {err}[/yellow]")


def report_failure(state: ClusterState, err: Exception, persistence_error: PersistenceError | None = None) -> None:
    """Print an error alongside the last known state."""
    console.print(f"[red]❌ {err}[/red]")
    report_persistence_error(persistence_error)
    console.print(state_table(state))


def status(
    state_file: Path | None = typer.Option(None, "--state-file", help="State file to read"),
) -> None:
    """Show the last persisted node group state."""
    cfg = NodeGroupConfig()
    if state_file is not None:
        cfg = cfg.model_copy(update={"state_file": state_file})

    state = JsonFileStateStore(cfg.state_file).load()
    if state is None:
        console.print(f"[yellow]⚠️  No state found at {cfg.state_file}[/yellow]")
        raise typer.Exit(1)
    console.print(state_table(state))
