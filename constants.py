# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import os
from dataclasses import dataclass, field
from typing import List

import aws_cdk as cdk
from aws_cdk import aws_codebuild as codebuild

# The toolchain is deployed to whatever account/region the CDK CLI resolves.
# Outside of the CLI (e.g. unit tests) the stack stays environment-agnostic.
TOOLCHAIN_ENVIRONMENT = cdk.Environment(
    account=os.environ.get("CDK_DEFAULT_ACCOUNT"),
    region=os.environ.get("CDK_DEFAULT_REGION"),
)


# pylint: disable=R0903
class CodeCommitApi:
    SDK_SERVICE = "@aws-sdk/client-codecommit"

    CREATE_APPROVAL_RULE_TEMPLATE = "CreateApprovalRuleTemplateCommand"
    UPDATE_APPROVAL_RULE_TEMPLATE_CONTENT = "UpdateApprovalRuleTemplateContentCommand"
    DELETE_APPROVAL_RULE_TEMPLATE = "DeleteApprovalRuleTemplateCommand"
    ASSOCIATE_APPROVAL_RULE_TEMPLATE = (
        "AssociateApprovalRuleTemplateWithRepositoryCommand"
    )
    DISASSOCIATE_APPROVAL_RULE_TEMPLATE = (
        "DisassociateApprovalRuleTemplateFromRepositoryCommand"
    )

    APPROVAL_RULE_TEMPLATE_ID_RESPONSE_PATH = (
        "approvalRuleTemplate.approvalRuleTemplateId"
    )


# pylint: disable=R0903
class ApprovalRuleTemplateConstants:
    RESOURCE_TYPE = "Custom::ApprovalRuleTemplate"
    ASSOCIATION_RESOURCE_TYPE = "Custom::AssociateApprovalRuleTemplateWithRepository"

    # Only content version CodeCommit accepts
    CONTENT_VERSION = "2018-11-08"
    STATEMENT_TYPE = "Approvers"
    ALL_DESTINATION_REFERENCES = ("*",)

    POOL_MEMBER_TEMPLATE = "CodeCommitApprovers:{name}/*"

    MAX_NAME_LENGTH = 100


@dataclass
class BuildEnvironmentVariable:
    name: str
    event_path: str


# pylint: disable=R0903
class PullRequestTriggerConstants:
    EVENT_SOURCE = "aws.codecommit"
    TRIGGER_EVENTS = ("pullRequestCreated", "pullRequestSourceBranchUpdated")
    # CodeCommit sends the merge flag as a string
    NOT_MERGED = "False"

    SOURCE_VERSION_EVENT_PATH = "$.detail.sourceCommit"
    BUILD_ENVIRONMENT_VARIABLES = (
        BuildEnvironmentVariable(
            name="DESTINATION_COMMIT_ID", event_path="$.detail.destinationCommit"
        ),
        BuildEnvironmentVariable(
            name="SOURCE_COMMIT_ID", event_path="$.detail.sourceCommit"
        ),
        BuildEnvironmentVariable(
            name="PULL_REQUEST_ID", event_path="$.detail.pullRequestId"
        ),
    )

    BUILD_IMAGE = codebuild.LinuxBuildImage.STANDARD_7_0
    BUILD_SPEC_VERSION = 0.2
    RUNTIME_VERSIONS = {"nodejs": "20.x"}

    GET_REVISION_ID_COMMAND = (
        "REVISION_ID=$(aws codecommit get-pull-request --pull-request-id $PULL_REQUEST_ID"
        " | jq -r '.pullRequest.revisionId')"
    )
    APPROVE_COMMAND = (
        "aws codecommit update-pull-request-approval-state"
        " --pull-request-id $PULL_REQUEST_ID --revision-id $REVISION_ID"
        " --approval-state APPROVE --region $AWS_REGION"
    )

    REPOSITORY_ACTIONS = (
        "codecommit:CreatePullRequestApprovalRule",
        "codecommit:GetPullRequest",
        "codecommit:PostCommentForPullRequest",
        "codecommit:UpdatePullRequestApprovalState",
    )

    # The approval is granted by the build project alone
    NUMBER_OF_APPROVALS_NEEDED = 1


@dataclass
class DemoParameters:
    repository_name: str
    branch_filters: List[str]
    prebuild_commands: List[str]
    commands: List[str]
    seed_code_excludes: List[str] = field(default_factory=list)


# pylint: disable=R0903
class Toolchain:
    APP_NAME = "PullRequestApprove"
    REPOSITORY_NAME_CONTEXT_KEY = "repositoryName"
    SEED_CODE_PATH_CONTEXT_KEY = "seedCodePath"

    DEMO_PARAMETERS = DemoParameters(
        repository_name="PullRequestApproveDemo",
        branch_filters=["refs/heads/main"],
        prebuild_commands=[
            "python3 --version",
            "pip install -e '.[test]'",
        ],
        commands=["pytest"],
        seed_code_excludes=[
            "cdk.out",
            ".git",
            ".venv",
            "**/__pycache__",
            "*.egg-info",
        ],
    )
