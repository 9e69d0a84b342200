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

"""Tests for the CloudFormation adapter and its status classifiers."""

from __future__ import annotations

from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from nodegroup_manager.cloudformation import (
    Boto3StackClient,
    StackStatus,
    classify_create,
    classify_delete,
    classify_stack_status,
)
from nodegroup_manager.errors import NodeGroupError, StackNotFoundError, TransientAPIError
from nodegroup_manager.poller import ProbeOutcome

from conftest import ROLE_ARN, stack_state


@pytest.fixture
def cf_client():
    return boto3.client(
        "cloudformation",
        region_name="us-west-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _describe_response(status: str, outputs: list[dict] | None = None) -> dict:
    stack = {
        "StackName": "ng-1",
        "StackId": "arn:aws:cloudformation:us-west-2:123456789012:stack/ng-1/abc",
        "CreationTime": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "StackStatus": status,
    }
    if outputs is not None:
        stack["Outputs"] = outputs
    return {"Stacks": [stack]}


class TestClassifyStackStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("", StackStatus.PENDING),
            ("REVIEW_IN_PROGRESS", StackStatus.PENDING),
            ("CREATE_IN_PROGRESS", StackStatus.IN_PROGRESS),
            ("DELETE_IN_PROGRESS", StackStatus.IN_PROGRESS),
            ("CREATE_COMPLETE", StackStatus.COMPLETE),
            ("UPDATE_COMPLETE", StackStatus.COMPLETE),
            ("CREATE_FAILED", StackStatus.FAILED),
            ("DELETE_FAILED", StackStatus.FAILED),
            ("ROLLBACK_IN_PROGRESS", StackStatus.ROLLBACK),
            ("ROLLBACK_COMPLETE", StackStatus.ROLLBACK),
            ("DELETE_COMPLETE", StackStatus.NOT_FOUND),
        ],
    )
    def test_status_mapping(self, raw: str, expected: StackStatus) -> None:
        assert classify_stack_status(raw) is expected

    def test_create_classifier(self) -> None:
        assert classify_create(stack_state("CREATE_IN_PROGRESS")) is ProbeOutcome.IN_PROGRESS
        assert classify_create(stack_state("CREATE_COMPLETE", ROLE_ARN)) is ProbeOutcome.SUCCESS
        assert classify_create(stack_state("CREATE_FAILED")) is ProbeOutcome.FAILURE
        assert classify_create(stack_state("ROLLBACK_IN_PROGRESS")) is ProbeOutcome.FAILURE
        assert classify_create(stack_state("DELETE_IN_PROGRESS")) is ProbeOutcome.FAILURE

    def test_delete_classifier(self) -> None:
        assert classify_delete(None) is ProbeOutcome.IN_PROGRESS
        assert classify_delete(None, stack_state("DELETE_IN_PROGRESS")) is ProbeOutcome.IN_PROGRESS
        assert classify_delete(None, stack_state("DELETE_COMPLETE")) is ProbeOutcome.SUCCESS
        assert classify_delete(StackNotFoundError("gone")) is ProbeOutcome.SUCCESS
        assert classify_delete(TransientAPIError("throttled")) is ProbeOutcome.TRANSIENT

    def test_role_arn_output(self) -> None:
        assert stack_state("CREATE_COMPLETE", ROLE_ARN).role_arn == ROLE_ARN
        assert stack_state("CREATE_COMPLETE").role_arn is None


class TestBoto3StackClient:
    def test_describe_parses_status_and_outputs(self, cf_client) -> None:
        stubber = Stubber(cf_client)
        stubber.add_response(
            "describe_stacks",
            _describe_response("CREATE_COMPLETE", [{"OutputKey": "NodeInstanceRole", "OutputValue": ROLE_ARN}]),
            {"StackName": "ng-1"},
        )
        with stubber:
            state = Boto3StackClient(cf_client).describe_stack("ng-1")
        assert state.status is StackStatus.COMPLETE
        assert state.raw_status == "CREATE_COMPLETE"
        assert state.role_arn == ROLE_ARN

    def test_describe_missing_stack(self, cf_client) -> None:
        stubber = Stubber(cf_client)
        stubber.add_client_error(
            "describe_stacks",
            service_error_code="ValidationError",
            service_message="Stack with id ng-1 does not exist",
            http_status_code=400,
        )
        with stubber, pytest.raises(StackNotFoundError):
            Boto3StackClient(cf_client).describe_stack("ng-1")

    def test_describe_throttled_is_transient(self, cf_client) -> None:
        stubber = Stubber(cf_client)
        stubber.add_client_error("describe_stacks", service_error_code="Throttling", http_status_code=400)
        with stubber, pytest.raises(TransientAPIError):
            Boto3StackClient(cf_client).describe_stack("ng-1")

    def test_create_passes_request(self, cf_client, request_3) -> None:
        stubber = Stubber(cf_client)
        stubber.add_response(
            "create_stack",
            {"StackId": "arn:aws:cloudformation:us-west-2:123456789012:stack/ng-1/abc"},
            {
                "StackName": "ng-1",
                "TemplateBody": "body",
                "Parameters": request_3.stack_parameters(),
                "Tags": request_3.stack_tags(),
                "Capabilities": ["CAPABILITY_IAM"],
            },
        )
        with stubber:
            Boto3StackClient(cf_client).create_stack(
                "ng-1",
                template_body="body",
                parameters=request_3.stack_parameters(),
                tags=request_3.stack_tags(),
                capabilities=["CAPABILITY_IAM"],
            )
        stubber.assert_no_pending_responses()

    def test_create_rejected(self, cf_client) -> None:
        stubber = Stubber(cf_client)
        stubber.add_client_error("create_stack", service_error_code="AlreadyExistsException", http_status_code=400)
        with stubber, pytest.raises(NodeGroupError) as exc_info:
            Boto3StackClient(cf_client).create_stack(
                "ng-1", template_body="body", parameters=[], tags=[], capabilities=[],
            )
        assert not isinstance(exc_info.value, TransientAPIError)

    def test_delete(self, cf_client) -> None:
        stubber = Stubber(cf_client)
        stubber.add_response("delete_stack", {}, {"StackName": "ng-1"})
        with stubber:
            Boto3StackClient(cf_client).delete_stack("ng-1")
        stubber.assert_no_pending_responses()
