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

"""Delete subcommands (node-group)."""

from __future__ import annotations

import typer

from nodegroup_manager import console
from nodegroup_manager.commands.status_cmd import report_failure, report_persistence_error, state_table
from nodegroup_manager.config import NodeGroupConfig, TimingConfig
from nodegroup_manager.errors import NodeGroupError
from nodegroup_manager.reconciler import Reconciler
from nodegroup_manager.utils import cancel_on_signals

app = typer.Typer(help="Delete infrastructure resources.")


@app.command("node-group")
def node_group(
    name: str | None = typer.Option(None, "--name", help="Node group stack name"),
) -> None:
    """Delete the node group stack if this tool created it."""
    cfg = NodeGroupConfig()
    if name is not None:
        cfg = cfg.model_copy(update={"node_group_name": name})

    reconciler = Reconciler.from_config(cfg, TimingConfig())
    cancel_on_signals(reconciler.cancel)
    stack_name = cfg.node_group_name or reconciler.state.node_group_name
    tracked = reconciler.state
    if tracked.created and stack_name != tracked.node_group_name:
        console.print(
            f"[yellow]⚠️  '{stack_name}' is not the node group in the state file "
            f"('{tracked.node_group_name}'); nothing to delete[/yellow]"
        )
        raise typer.Exit(1)

    try:
        result = reconciler.delete(stack_name, cfg.asg_max)
    except NodeGroupError as err:
        report_failure(reconciler.state, err, reconciler.persistence_error)
        raise typer.Exit(1) from err

    if result.cancelled:
        console.print("[yellow]⚠️  Node group deletion interrupted[/yellow]")
    else:
        console.print(f"[green]✅ Node group '{stack_name}' deleted[/green]")
    report_persistence_error(result.persistence_error)
    console.print(state_table(result.state))
