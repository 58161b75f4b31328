# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

from typing import Protocol

import aws_cdk as cdk
import aws_cdk.aws_codecommit as codecommit
import aws_cdk.custom_resources as cr
from constructs import Construct

import constants
from approval_rules.codecommit_calls import (
    LifecyclePhase,
    codecommit_call,
    create_codecommit_custom_resource,
)


class IApprovalRuleTemplate(Protocol):
    approval_rule_template_name: str


class AssociateApprovalRuleTemplate(cdk.Resource):
    """
    Associates an approval rule template with a single repository.

    The association call is idempotent and returns nothing reusable, so the
    same call serves creation and updates, and the physical id is the
    (template name, repository name) pair. Changing either side replaces the
    resource, which disassociates the previous pair.
    """

    def __init__(
        self,
        scope: Construct,
        id_: str,
        approval_rule_template: IApprovalRuleTemplate,
        repository: codecommit.IRepository,
    ) -> None:
        super().__init__(scope, id_)

        self.approval_rule_template_name = (
            approval_rule_template.approval_rule_template_name
        )
        self.repository_name = repository.repository_name

        parameters = {
            "approvalRuleTemplateName": self.approval_rule_template_name,
            "repositoryName": self.repository_name,
        }

        create_codecommit_custom_resource(
            self,
            "Resource",
            resource_type=constants.ApprovalRuleTemplateConstants.ASSOCIATION_RESOURCE_TYPE,
            calls={
                LifecyclePhase.UPDATE: codecommit_call(
                    constants.CodeCommitApi.ASSOCIATE_APPROVAL_RULE_TEMPLATE,
                    parameters,
                    physical_resource_id=cr.PhysicalResourceId.of(
                        f"{self.approval_rule_template_name}/{self.repository_name}"
                    ),
                ),
                LifecyclePhase.DELETE: codecommit_call(
                    constants.CodeCommitApi.DISASSOCIATE_APPROVAL_RULE_TEMPLATE,
                    parameters,
                ),
            },
        )
