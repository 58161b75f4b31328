# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from typing import Any, Optional

import aws_cdk as cdk
import aws_cdk.aws_codecommit as codecommit
import aws_cdk.aws_s3_assets as s3_assets
import cdk_nag
from constructs import Construct

import constants
from toolchain.pull_request_trigger_build_project import PullRequestTriggerBuildProject


class ToolchainStack(cdk.Stack):
    def __init__(
        self,
        scope: Construct,
        id_: str,
        demo_parameters: constants.DemoParameters = constants.Toolchain.DEMO_PARAMETERS,
        seed_code_path: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(scope, id_, **kwargs)

        repository = self._create_repository(demo_parameters, seed_code_path)

        self.pull_request_trigger = PullRequestTriggerBuildProject(
            self,
            "PullRequestTriggerBuildProject",
            repository=repository,
            prebuild_commands=demo_parameters.prebuild_commands,
            commands=demo_parameters.commands,
            branch_filters=demo_parameters.branch_filters,
        )

        # The following statement defines a class member used for creating a public class property
        self._repository = repository

        self._create_outputs(repository)
        self._add_cdk_nag_suppressions(self.pull_request_trigger)

    def _create_repository(
        self,
        demo_parameters: constants.DemoParameters,
        seed_code_path: Optional[str],
    ) -> codecommit.Repository:
        code = None
        if seed_code_path is not None:
            code = codecommit.Code.from_asset(
                s3_assets.Asset(
                    self,
                    "CodeAsset",
                    path=seed_code_path,
                    exclude=demo_parameters.seed_code_excludes,
                )
            )

        repository = codecommit.Repository(
            self,
            "Repository",
            repository_name=demo_parameters.repository_name,
            code=code,
        )

        return repository

    def _create_outputs(self, repository: codecommit.Repository) -> None:
        self._repository_clone_url = cdk.CfnOutput(
            self,
            id="RepositoryCloneUrlHttp",
            value=repository.repository_clone_url_http,
        )

        self._build_project_name = cdk.CfnOutput(
            self,
            id="BuildProjectName",
            value=self.pull_request_trigger.build_project.project_name,
        )

    @property
    def repository(self) -> codecommit.Repository:
        return self._repository

    @property
    def repository_clone_url(self) -> cdk.CfnOutput:
        return self._repository_clone_url

    @property
    def build_project_name(self) -> cdk.CfnOutput:
        return self._build_project_name

    def _add_cdk_nag_suppressions(
        self, pull_request_trigger: PullRequestTriggerBuildProject
    ) -> None:
        # --- AwsCustomResource provider (singleton function at the stack root) ---
        aws_managed_policy_suppression = cdk_nag.NagPackSuppression(
            id="AwsSolutions-IAM4",
            reason="The AwsCustomResource provider function uses the AWS managed basic execution policy",
        )
        lambda_runtime_suppression = cdk_nag.NagPackSuppression(
            id="AwsSolutions-L1",
            reason="We have no control over the runtime of the AwsCustomResource provider function",
        )
        cdk_nag.NagSuppressions.add_stack_suppressions(
            self, [aws_managed_policy_suppression, lambda_runtime_suppression]
        )

        # --- Pull request trigger ---
        wildcard_permissions_suppression = cdk_nag.NagPackSuppression(
            id="AwsSolutions-IAM5",
            reason=(
                "Approval rule templates are account-wide and CodeBuild log and report "
                "group permissions are generated by CDK"
            ),
        )
        kms_encrypted_codebuild_project_suppression = cdk_nag.NagPackSuppression(
            id="AwsSolutions-CB4",
            reason="Reduce costs for demo by using the AWS managed key for build artifacts",
        )
        cdk_nag.NagSuppressions.add_resource_suppressions(
            pull_request_trigger,
            [
                wildcard_permissions_suppression,
                kms_encrypted_codebuild_project_suppression,
            ],
            apply_to_children=True,
        )
