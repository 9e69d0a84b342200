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

"""
cli.py - Unified CLI for EKS worker node group management.

Subcommands:
    create     Create infrastructure resources (node-group)
    delete     Delete infrastructure resources (node-group)
    status     Show the persisted node group state

Environment Variables:
    All configuration can be overridden via NODEGROUP_* environment variables:
    - NODEGROUP_CLUSTER_NAME (default: nodegroup-test-cluster)
    - NODEGROUP_NODE_GROUP_NAME, NODEGROUP_KEY_PAIR_NAME
    - NODEGROUP_ASG_MIN / NODEGROUP_ASG_MAX (default: 1)
    - NODEGROUP_STATE_FILE (default: ~/.nodegroup-manager/state.json)
    - NODEGROUP_CREATE_WARMUP, NODEGROUP_WAIT_BASE, ... (see config classes)

Examples:
    # Create a node group of 3 nodes
    nodegroup-manager create node-group --name my-ng --key-pair my-key --asg-max 3

    # Continue an interrupted create
    nodegroup-manager create node-group --resume

    # Delete it again
    nodegroup-manager delete node-group

For detailed usage information, run: nodegroup-manager --help
"""

from __future__ import annotations

import logging
import sys

import typer

from nodegroup_manager import console
from nodegroup_manager.commands import create_cmd, delete_cmd, status_cmd

app = typer.Typer(
    help="Unified CLI for EKS worker node group management.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(create_cmd.app, name="create")
app.add_typer(delete_cmd.app, name="delete")
app.command("status")(status_cmd.status)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
