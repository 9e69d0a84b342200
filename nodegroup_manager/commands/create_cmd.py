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

"""Create subcommands (node-group)."""

from __future__ import annotations

import typer

from nodegroup_manager import console
from nodegroup_manager.commands.status_cmd import report_failure, report_persistence_error, state_table
from nodegroup_manager.config import NodeGroupConfig, NodeGroupRequest, TimingConfig
from nodegroup_manager.errors import NodeGroupError
from nodegroup_manager.reconciler import Reconciler
from nodegroup_manager.utils import cancel_on_signals, format_elapsed, require_command

app = typer.Typer(help="Create infrastructure resources.")


@app.command("node-group")
def node_group(
    name: str | None = typer.Option(None, "--name", help="Node group stack name"),
    cluster_name: str | None = typer.Option(None, "--cluster-name", help="EKS cluster name"),
    key_pair: str | None = typer.Option(None, "--key-pair", help="EC2 key pair name"),
    asg_min: int | None = typer.Option(None, "--asg-min", help="Minimum node count"),
    asg_max: int | None = typer.Option(None, "--asg-max", help="Maximum node count, all expected Ready"),
    instance_type: str | None = typer.Option(None, "--instance-type", help="Worker node instance type"),
    image_id: str | None = typer.Option(None, "--image-id", help="Worker node AMI"),
    enable_ssh: bool | None = typer.Option(None, "--enable-ssh/--disable-ssh", help="Open SSH from the control plane"),
    resume: bool = typer.Option(False, "--resume", help="Continue from the persisted state"),
) -> None:
    """Create a node group stack and wait for its nodes to join the cluster."""
    cfg = NodeGroupConfig()
    overrides: dict = {}
    if name is not None:
        overrides["node_group_name"] = name
    if cluster_name is not None:
        overrides["cluster_name"] = cluster_name
    if key_pair is not None:
        overrides["key_pair_name"] = key_pair
    if asg_min is not None:
        overrides["asg_min"] = asg_min
    if asg_max is not None:
        overrides["asg_max"] = asg_max
    if instance_type is not None:
        overrides["instance_type"] = instance_type
    if image_id is not None:
        overrides["image_id"] = image_id
    if enable_ssh is not None:
        overrides["enable_ssh"] = enable_ssh
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    require_command(cfg.kubectl_path)
    req = NodeGroupRequest.from_config(cfg)
    reconciler = Reconciler.from_config(cfg, TimingConfig())
    cancel_on_signals(reconciler.cancel)

    try:
        result = reconciler.resume(req) if resume else reconciler.create(req)
    except NodeGroupError as err:
        report_failure(reconciler.state, err, reconciler.persistence_error)
        raise typer.Exit(1) from err

    if result.cancelled:
        console.print("[yellow]⚠️  Node group creation interrupted; rerun with --resume to continue[/yellow]")
    else:
        console.print(f"[green]✅ Node group '{req.stack_name}' ready in {format_elapsed(result.elapsed)}[/green]")
    report_persistence_error(result.persistence_error)
    console.print(state_table(result.state))
