# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import enum
from typing import Any, Mapping, Optional

import aws_cdk.custom_resources as cr
from constructs import Construct

import constants


class LifecyclePhase(enum.Enum):
    """CloudFormation lifecycle phase, valued by the AwsCustomResource keyword it feeds."""

    CREATE = "on_create"
    UPDATE = "on_update"
    DELETE = "on_delete"


def codecommit_call(
    action: str,
    parameters: Mapping[str, Any],
    physical_resource_id: Optional[cr.PhysicalResourceId] = None,
) -> cr.AwsSdkCall:
    # Absent optional inputs are left out of the request instead of sent as null
    return cr.AwsSdkCall(
        service=constants.CodeCommitApi.SDK_SERVICE,
        action=action,
        parameters={
            name: value for name, value in parameters.items() if value is not None
        },
        physical_resource_id=physical_resource_id,
    )


def create_codecommit_custom_resource(
    scope: Construct,
    id_: str,
    resource_type: str,
    calls: Mapping[LifecyclePhase, cr.AwsSdkCall],
) -> cr.AwsCustomResource:
    """
    Declare a custom resource from a lifecycle-phase-to-call table.

    Without a CREATE entry, CloudFormation creation runs the UPDATE call.
    """
    if not calls:
        raise ValueError(f"{resource_type} needs at least one lifecycle call")

    return cr.AwsCustomResource(
        scope,
        id_,
        resource_type=resource_type,
        policy=cr.AwsCustomResourcePolicy.from_sdk_calls(
            resources=cr.AwsCustomResourcePolicy.ANY_RESOURCE
        ),
        **{phase.value: call for phase, call in calls.items()},
    )
