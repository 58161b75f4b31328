# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from typing import Any, Dict, Optional, Sequence

import aws_cdk.aws_codebuild as codebuild
import aws_cdk.aws_codecommit as codecommit
import aws_cdk.aws_events as events
import aws_cdk.aws_events_targets as events_targets
from constructs import Construct

import constants
from approval_rules.approval_rule_template import ApprovalMember, ApprovalRuleTemplate


class PullRequestTriggerBuildProject(Construct):
    """
    Build project triggered by opened pull requests and source branch updates.

    After the given commands succeed, the project approves the pull request
    revision it built. The approval rule template associated with the
    repository only counts approvals from the project's own role, so a pull
    request cannot be approved without a passing build.

    The build exposes these environment variables:
    - PULL_REQUEST_ID: The pull request ID
    - DESTINATION_COMMIT_ID: The destination commit ID
    - SOURCE_COMMIT_ID: The source commit ID
    """

    def __init__(
        self,
        scope: Construct,
        id_: str,
        repository: codecommit.IRepository,
        commands: Sequence[str],
        prebuild_commands: Optional[Sequence[str]] = None,
        branch_filters: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__(scope, id_)

        self.build_project = self._create_build_project(
            repository=repository,
            prebuild_commands=prebuild_commands,
            commands=commands,
        )
        repository.grant(
            self.build_project,
            *constants.PullRequestTriggerConstants.REPOSITORY_ACTIONS,
        )

        self.rule = self._create_trigger_rule(
            repository=repository,
            build_project=self.build_project,
            branch_filters=branch_filters,
        )

        if self.build_project.role is None:
            raise ValueError("build_project.role should never be None")

        self.approval_rule_template = ApprovalRuleTemplate(
            self,
            "ApprovalRuleTemplate",
            number_of_approvals_needed=constants.PullRequestTriggerConstants.NUMBER_OF_APPROVALS_NEEDED,
            destination_references=branch_filters,
            approval_pool_members=[ApprovalMember.from_role(self.build_project.role)],
            repositories=[repository],
        )

    def _create_build_project(
        self,
        repository: codecommit.IRepository,
        prebuild_commands: Optional[Sequence[str]],
        commands: Sequence[str],
    ) -> codebuild.Project:
        build_spec = self._create_build_spec(
            prebuild_commands=prebuild_commands,
            commands=commands,
        )

        project = codebuild.Project(
            self,
            "Project",
            source=codebuild.Source.code_commit(repository=repository),
            environment=codebuild.BuildEnvironment(
                build_image=constants.PullRequestTriggerConstants.BUILD_IMAGE,
            ),
            build_spec=build_spec,
        )

        return project

    @staticmethod
    def _create_build_spec(
        prebuild_commands: Optional[Sequence[str]],
        commands: Sequence[str],
    ) -> codebuild.BuildSpec:
        trigger_constants = constants.PullRequestTriggerConstants

        phases: Dict[str, Any] = {
            "install": {
                "runtime-versions": dict(trigger_constants.RUNTIME_VERSIONS),
            },
        }
        if prebuild_commands:
            phases["pre_build"] = {"commands": list(prebuild_commands)}
        # A failing command stops the build before the approval is sent
        phases["build"] = {
            "commands": [
                *commands,
                trigger_constants.GET_REVISION_ID_COMMAND,
                trigger_constants.APPROVE_COMMAND,
            ],
        }

        return codebuild.BuildSpec.from_object_to_yaml(
            {
                "version": trigger_constants.BUILD_SPEC_VERSION,
                "phases": phases,
            }
        )

    def _create_trigger_rule(
        self,
        repository: codecommit.IRepository,
        build_project: codebuild.IProject,
        branch_filters: Optional[Sequence[str]],
    ) -> events.Rule:
        trigger_constants = constants.PullRequestTriggerConstants

        detail: Dict[str, Any] = {
            "isMerged": [trigger_constants.NOT_MERGED],
            "repositoryNames": [repository.repository_name],
            "event": list(trigger_constants.TRIGGER_EVENTS),
        }
        if branch_filters is not None:
            detail["destinationReference"] = list(branch_filters)

        rule = events.Rule(
            self,
            "PullRequestTriggerRule",
            event_pattern=events.EventPattern(
                source=[trigger_constants.EVENT_SOURCE],
                detail=detail,
            ),
            targets=[
                events_targets.CodeBuildProject(
                    build_project,
                    event=self._create_build_input(),
                )
            ],
        )

        return rule

    @staticmethod
    def _create_build_input() -> events.RuleTargetInput:
        trigger_constants = constants.PullRequestTriggerConstants

        return events.RuleTargetInput.from_object(
            {
                "sourceVersion": events.EventField.from_path(
                    trigger_constants.SOURCE_VERSION_EVENT_PATH
                ),
                "environmentVariablesOverride": [
                    {
                        "name": variable.name,
                        "type": "PLAINTEXT",
                        "value": events.EventField.from_path(variable.event_path),
                    }
                    for variable in trigger_constants.BUILD_ENVIRONMENT_VARIABLES
                ],
            }
        )
