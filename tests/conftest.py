# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
from typing import Any, Callable, Dict

import aws_cdk as cdk
import aws_cdk.aws_codecommit as codecommit
import pytest


@pytest.fixture
def stack() -> cdk.Stack:
    return cdk.Stack(cdk.App(), "TestStack")


@pytest.fixture
def repository(stack: cdk.Stack) -> codecommit.IRepository:
    return codecommit.Repository.from_repository_name(stack, "Repository", "my-repo")


def _load_sdk_call(resource: Dict[str, Any], phase: str) -> Dict[str, Any]:
    call = resource["Properties"][phase]
    assert isinstance(call, str), f"{phase} call holds unresolved tokens: {call}"
    return json.loads(call)


@pytest.fixture
def load_sdk_call() -> Callable[[Dict[str, Any], str], Dict[str, Any]]:
    """Decode the Create/Update/Delete call of a synthesized AwsCustomResource."""
    return _load_sdk_call
