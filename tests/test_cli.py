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

"""Tests for the Typer command-line interface."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from nodegroup_manager.cli import app
from nodegroup_manager.commands import create_cmd, delete_cmd
from nodegroup_manager.errors import StackNotFoundError
from nodegroup_manager.kubectl import CommandResult
from nodegroup_manager.reconciler import Reconciler
from nodegroup_manager.state import ClusterState, JsonFileStateStore

from conftest import ROLE_ARN, FakeCommandRunner, FakeStackClient, nodes_json, stack_state

runner = CliRunner()


@pytest.fixture
def wired(monkeypatch, make_reconciler):
    """Route the commands to a reconciler backed by fakes; returns the configs they built."""
    configs = []

    def _wire(stack_client: FakeStackClient, command_runner: FakeCommandRunner) -> list:
        reconciler = make_reconciler(stack_client, command_runner)

        def _from_config(cfg, timing):
            configs.append(cfg)
            return reconciler

        monkeypatch.setattr(Reconciler, "from_config", staticmethod(_from_config))
        monkeypatch.setattr(create_cmd, "require_command", lambda cmd: None)
        monkeypatch.setattr(create_cmd, "cancel_on_signals", lambda cancel: None)
        monkeypatch.setattr(delete_cmd, "cancel_on_signals", lambda cancel: None)
        return configs

    return _wire


class TestCreateCommand:
    def test_create_node_group(self, wired) -> None:
        configs = wired(
            FakeStackClient([stack_state("CREATE_COMPLETE", ROLE_ARN)]),
            FakeCommandRunner(get_nodes=[CommandResult(True, nodes_json(2, 2))]),
        )

        result = runner.invoke(app, [
            "create", "node-group", "--name", "ng-1", "--key-pair", "ng-1-key", "--asg-max", "2", "--enable-ssh",
        ])

        assert result.exit_code == 0, result.output
        assert "2 available" in result.output
        (cfg,) = configs
        assert cfg.node_group_name == "ng-1"
        assert cfg.asg_max == 2
        assert cfg.enable_ssh is True

    def test_create_failure_exits_nonzero(self, wired) -> None:
        wired(FakeStackClient([stack_state("CREATE_FAILED")]), FakeCommandRunner())

        result = runner.invoke(app, ["create", "node-group", "--name", "ng-1", "--key-pair", "ng-1-key"])

        assert result.exit_code == 1
        assert "CREATE_FAILED" in result.output

    def test_missing_key_pair(self, wired) -> None:
        stack_client = FakeStackClient([stack_state("CREATE_COMPLETE", ROLE_ARN)])
        wired(stack_client, FakeCommandRunner())

        result = runner.invoke(app, ["create", "node-group", "--name", "ng-1", "--key-pair", ""])

        assert result.exit_code == 1
        assert stack_client.created == []

    def test_unsaved_state_is_reported(self, wired, store) -> None:
        store.fail = True
        wired(
            FakeStackClient([stack_state("CREATE_COMPLETE", ROLE_ARN)]),
            FakeCommandRunner(get_nodes=[CommandResult(True, nodes_json(1, 1))]),
        )

        result = runner.invoke(app, ["create", "node-group", "--name", "ng-1", "--key-pair", "ng-1-key"])

        assert result.exit_code == 0, result.output
        assert "State was not saved" in result.output


class TestDeleteCommand:
    def test_delete_uses_persisted_name(self, wired, tracker, monkeypatch) -> None:
        monkeypatch.delenv("NODEGROUP_NODE_GROUP_NAME", raising=False)
        tracker.update(node_group_name="ng-1", created=True)
        stack_client = FakeStackClient([stack_state("DELETE_COMPLETE")])
        wired(stack_client, FakeCommandRunner())

        result = runner.invoke(app, ["delete", "node-group"])

        assert result.exit_code == 0, result.output
        assert stack_client.deleted == ["ng-1"]

    def test_refuses_untracked_name(self, wired, tracker) -> None:
        tracker.update(node_group_name="ng-a", created=True)
        stack_client = FakeStackClient([StackNotFoundError("does not exist")])
        wired(stack_client, FakeCommandRunner())

        result = runner.invoke(app, ["delete", "node-group", "--name", "ng-b"])

        assert result.exit_code == 1
        assert stack_client.deleted == []
        assert tracker.state.created is True


class TestStatusCommand:
    def test_shows_persisted_state(self, tmp_path) -> None:
        path = tmp_path / "state.json"
        JsonFileStateStore(path).persist(ClusterState(node_group_name="ng-1", stack_status="CREATE_COMPLETE"))

        result = runner.invoke(app, ["status", "--state-file", str(path)])

        assert result.exit_code == 0, result.output
        assert "ng-1" in result.output
        assert "CREATE_COMPLETE" in result.output

    def test_no_state(self, tmp_path) -> None:
        result = runner.invoke(app, ["status", "--state-file", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "No state found" in result.output
